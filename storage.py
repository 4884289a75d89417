"""
JSON-file persistence for users and journal entries.
Writes are atomic: temp file, copy of the previous file to .bak, then a
single rename over the live file, so readers never see it missing.
"""

import json
import logging
import os
import shutil
import threading
from datetime import date, datetime
from typing import Any, Dict, List, Optional, Tuple

from models import JournalEntry, User, UserStats
from streaks import build_user_stats

logger = logging.getLogger(__name__)


class StorageError(Exception):
    """Raised when the journal file cannot be written."""


def _empty_data() -> Dict[str, Any]:
    return {"users": {}, "entries": {}, "metadata": {"created_at": datetime.now().isoformat()}}


def _naive(value: datetime) -> datetime:
    # Compare everything as local naive time
    if value.tzinfo is not None:
        return value.astimezone().replace(tzinfo=None)
    return value


class JournalStore:
    def __init__(self, path: str):
        self.path = path
        self._lock = threading.RLock()

    # -------------------------------------------------------------------------
    # File access
    # -------------------------------------------------------------------------

    def load(self) -> Dict[str, Any]:
        """Load journal data from file with error handling."""
        if not os.path.exists(self.path):
            return _empty_data()

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            logger.error(f"JSON decode error in {self.path}: {e}")
            return _empty_data()
        except OSError as e:
            logger.error(f"File read error: {e}")
            return _empty_data()

        if not isinstance(data, dict):
            logger.warning("Invalid data format, resetting")
            return _empty_data()

        data.setdefault("users", {})
        data.setdefault("entries", {})
        data.setdefault("metadata", {})
        return data

    def save(self, data: Dict[str, Any]) -> None:
        tmp_file = f"{self.path}.tmp"
        backup_file = f"{self.path}.bak"

        try:
            with open(tmp_file, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2, ensure_ascii=False)

            if os.path.exists(self.path):
                try:
                    shutil.copy2(self.path, backup_file)
                except OSError as e:
                    logger.warning(f"Could not back up {self.path}: {e}")

            os.replace(tmp_file, self.path)
        except OSError as e:
            logger.error(f"Save error: {e}")
            if os.path.exists(tmp_file):
                try:
                    os.remove(tmp_file)
                except OSError:
                    logger.warning(f"Could not remove temp file {tmp_file}")
            raise StorageError(f"Failed to save journal data: {e}") from e

    # -------------------------------------------------------------------------
    # Users
    # -------------------------------------------------------------------------

    def get_user(self, user_id: str) -> Optional[User]:
        raw = self.load()["users"].get(user_id)
        return User.from_dict(raw) if raw else None

    def list_users(self) -> List[User]:
        return [User.from_dict(raw) for raw in self.load()["users"].values()]

    def save_user(self, user: User) -> User:
        with self._lock:
            data = self.load()
            data["users"][user.id] = user.to_dict()
            self.save(data)
        return user

    def ensure_user(self, user_id: str, name: str = "", email: str = "") -> User:
        """Fetch a user, creating an empty profile the first time it is seen."""
        with self._lock:
            user = self.get_user(user_id)
            if user is None:
                user = self.save_user(User(id=user_id, name=name, email=email))
                logger.info(f"Created profile for user {user_id}")
            return user

    # -------------------------------------------------------------------------
    # Entries
    # -------------------------------------------------------------------------

    def _user_entries(self, data: Dict[str, Any], user_id: str) -> List[JournalEntry]:
        return [
            JournalEntry.from_dict(raw)
            for raw in data["entries"].values()
            if raw.get("userId") == user_id
        ]

    def add_entry(self, entry: JournalEntry) -> JournalEntry:
        with self._lock:
            data = self.load()
            data["entries"][entry.id] = entry.to_dict()
            self.save(data)
        return entry

    def update_entry(self, entry: JournalEntry) -> JournalEntry:
        with self._lock:
            data = self.load()
            if entry.id not in data["entries"]:
                raise KeyError(entry.id)
            entry.updated_at = datetime.now()
            data["entries"][entry.id] = entry.to_dict()
            self.save(data)
        return entry

    def get_entry(self, user_id: str, entry_id: str) -> Optional[JournalEntry]:
        raw = self.load()["entries"].get(entry_id)
        if not raw or raw.get("userId") != user_id:
            return None
        return JournalEntry.from_dict(raw)

    def delete_entry(self, user_id: str, entry_id: str) -> bool:
        with self._lock:
            data = self.load()
            raw = data["entries"].get(entry_id)
            if not raw or raw.get("userId") != user_id:
                return False
            del data["entries"][entry_id]
            self.save(data)
        return True

    def find_entries_by_user_and_range(
        self,
        user_id: str,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> List[JournalEntry]:
        """Entries with start <= date <= end; either bound may be open. Unsorted."""
        entries = self._user_entries(self.load(), user_id)
        if start is not None:
            entries = [e for e in entries if _naive(e.date) >= _naive(start)]
        if end is not None:
            entries = [e for e in entries if _naive(e.date) <= _naive(end)]
        return entries

    def find_all_entry_dates_by_user(self, user_id: str) -> List[datetime]:
        return [entry.date for entry in self._user_entries(self.load(), user_id)]

    def list_entries(
        self,
        user_id: str,
        mood: Optional[str] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        page: int = 1,
        limit: int = 20,
    ) -> Tuple[List[JournalEntry], int]:
        """One page of entries, newest first, plus the total match count."""
        entries = self.find_entries_by_user_and_range(user_id, start, end)
        if mood and mood != "all":
            entries = [e for e in entries if e.mood == mood]
        entries.sort(key=lambda e: _naive(e.date), reverse=True)
        offset = (max(page, 1) - 1) * limit
        return entries[offset:offset + limit], len(entries)

    def recompute_user_stats(self, user_id: str, today: Optional[date] = None) -> UserStats:
        """Rebuild UserStats from the full entry history and persist it."""
        with self._lock:
            user = self.ensure_user(user_id)
            user.stats = build_user_stats(self.find_all_entry_dates_by_user(user_id), today=today)
            self.save_user(user)
        logger.info(
            f"Stats for {user_id}: {user.stats.total_entries} entries, "
            f"streak {user.stats.current_streak} (longest {user.stats.longest_streak})"
        )
        return user.stats
