import json
import os
from datetime import date, datetime, timedelta
from unittest.mock import patch

from models import User


def test_missing_or_corrupt_file_loads_empty(store):
    assert store.load()["entries"] == {}
    with open(store.path, "w", encoding="utf-8") as f:
        f.write("{not json")
    data = store.load()
    assert data["users"] == {} and data["entries"] == {}


def test_entry_round_trip(store, make_entry):
    entry = make_entry(text="  Some words written down today.  ", mood="calm", sentiment_score=0.3)
    store.add_entry(entry)

    loaded = store.get_entry("user-1", entry.id)
    assert loaded.text == "Some words written down today."
    assert loaded.word_count == 5
    assert loaded.mood == "calm"
    assert loaded.date == entry.date


def test_word_count_is_derived_from_text_on_load(store, make_entry):
    entry = store.add_entry(make_entry(text="three little words"))
    with open(store.path, encoding="utf-8") as f:
        data = json.load(f)
    data["entries"][entry.id]["wordCount"] = 999
    with open(store.path, "w", encoding="utf-8") as f:
        json.dump(data, f)

    assert store.get_entry("user-1", entry.id).word_count == 3


def test_save_keeps_a_backup(store, make_entry):
    store.add_entry(make_entry())
    store.add_entry(make_entry())
    with open(f"{store.path}.bak", encoding="utf-8") as f:
        assert len(json.load(f)["entries"]) == 1


def test_entries_are_scoped_to_their_user(store, make_entry):
    entry = store.add_entry(make_entry(user_id="alice"))
    assert store.get_entry("bob", entry.id) is None
    assert store.delete_entry("bob", entry.id) is False
    assert store.delete_entry("alice", entry.id) is True
    assert store.get_entry("alice", entry.id) is None


def test_range_query_is_inclusive(store, make_entry):
    base = datetime(2026, 10, 1, 9, 0)
    for n in range(5):
        store.add_entry(make_entry(when=base + timedelta(days=n)))
    store.add_entry(make_entry(user_id="someone-else", when=base))

    found = store.find_entries_by_user_and_range("user-1", base + timedelta(days=1), base + timedelta(days=3))
    assert sorted(e.date.day for e in found) == [2, 3, 4]
    assert len(store.find_entries_by_user_and_range("user-1")) == 5
    assert len(store.find_all_entry_dates_by_user("user-1")) == 5


def test_list_entries_filters_and_paginates(store, make_entry):
    base = datetime(2026, 10, 1, 9, 0)
    for n in range(6):
        store.add_entry(make_entry(when=base + timedelta(days=n), mood="happy" if n % 2 else "sad"))

    page, total = store.list_entries("user-1", page=1, limit=4)
    assert total == 6
    assert [e.date.day for e in page] == [6, 5, 4, 3]

    page, total = store.list_entries("user-1", page=2, limit=4)
    assert [e.date.day for e in page] == [2, 1]

    happy, total = store.list_entries("user-1", mood="happy")
    assert total == 3
    assert all(e.mood == "happy" for e in happy)


def test_update_entry_touches_updated_at(store, make_entry):
    entry = store.add_entry(make_entry())
    entry.updated_at = datetime(2020, 1, 1)
    entry.set_text("A completely different entry text.")
    store.update_entry(entry)

    loaded = store.get_entry("user-1", entry.id)
    assert loaded.text == "A completely different entry text."
    assert loaded.updated_at > datetime(2020, 1, 1)


def test_recompute_user_stats_persists(store, make_entry):
    today = date(2026, 10, 19)
    for n in (0, 1, 2, 6):
        store.add_entry(make_entry(when=datetime(2026, 10, 19 - n, 8, 0)))

    stats = store.recompute_user_stats("user-1", today=today)
    assert (stats.total_entries, stats.current_streak, stats.longest_streak) == (4, 3, 3)
    assert store.get_user("user-1").stats.current_streak == 3


def test_ensure_user_creates_once(store):
    created = store.ensure_user("carol", name="Carol", email="carol@example.com")
    created.name = "Changed"
    store.save_user(created)
    again = store.ensure_user("carol", name="Ignored")
    assert again.name == "Changed"
    assert [u.id for u in store.list_users()] == ["carol"]
    assert isinstance(again, User)


def test_readers_see_the_previous_file_while_a_save_is_in_flight(store, make_entry):
    first = store.add_entry(make_entry())
    real_replace = os.replace
    seen = []

    def replace_and_read(src, dst):
        seen.append(store.get_entry("user-1", first.id))
        return real_replace(src, dst)

    with patch("storage.os.replace", side_effect=replace_and_read):
        store.add_entry(make_entry())

    assert seen and all(entry is not None for entry in seen)
    assert os.path.exists(f"{store.path}.bak")
