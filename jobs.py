"""
Timer-triggered notification jobs.

Each job is independent and stateless: it reads users and entries from the
store, decides who qualifies at `now`, and hands messages to the mailer.
They are exposed as Flask CLI commands so a system cron can run them, e.g.

    * * * * *   flask --app app send-reminders
    0 9 * * 0   flask --app app send-weekly-summaries
"""

import logging
from collections import Counter
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

import click
from flask import current_app
from flask.cli import with_appcontext

from models import User, UserStats
from notifications import Mailer, random_motivational_quote
from stats import aggregate
from storage import JournalStore
from streaks import STREAK_MILESTONES, build_user_stats, to_local_day

logger = logging.getLogger(__name__)

DEFAULT_TOP_EMOTIONS = ["reflective", "thoughtful"]


def _summarize(results: List[Dict[str, Any]]) -> Dict[str, Any]:
    success_count = sum(1 for r in results if r.get("success"))
    return {
        "count": len(results),
        "success_count": success_count,
        "failure_count": len(results) - success_count,
        "results": results,
    }


def _live_stats(store: JournalStore, user: User, now: datetime) -> UserStats:
    return build_user_stats(store.find_all_entry_dates_by_user(user.id), today=now.date())


def _is_anniversary(user: User, now: datetime) -> bool:
    try:
        one_year_ago = now.date().replace(year=now.year - 1)
    except ValueError:
        # Feb 29 has no counterpart last year
        one_year_ago = now.date().replace(year=now.year - 1, day=28)
    return user.created_at.date() == one_year_ago


def _failed(user: User, job_name: str, error: Exception) -> Dict[str, Any]:
    logger.error(f"{job_name} failed for user {user.id}: {error}")
    return {"user_id": user.id, "success": False, "error": str(error)}


def send_daily_reminders(store: JournalStore, mailer: Mailer, now: Optional[datetime] = None) -> Dict[str, Any]:
    """Remind users whose reminder time is now and who have not written today."""
    now = now or datetime.now()
    current_time = now.strftime("%H:%M")
    today = now.date()
    quote = random_motivational_quote(mailer.rng)

    results = []
    for user in store.list_users():
        try:
            reminder = user.daily_reminder
            if not reminder.get("enabled") or reminder.get("time") != current_time:
                continue
            dates = store.find_all_entry_dates_by_user(user.id)
            if any(to_local_day(d) == today for d in dates):
                continue
            result = mailer.send_daily_reminder(user, quote)
            results.append({"user_id": user.id, **result})
        except Exception as e:
            results.append(_failed(user, "Daily reminder", e))

    logger.info(f"Daily reminders at {current_time}: {len(results)} users")
    return _summarize(results)


def check_streak_achievements(store: JournalStore, mailer: Mailer, now: Optional[datetime] = None) -> Dict[str, Any]:
    now = now or datetime.now()
    results = []
    for user in store.list_users():
        if not user.notifications_enabled:
            continue
        try:
            current = _live_stats(store, user, now).current_streak
            if current in STREAK_MILESTONES:
                result = mailer.send_streak_achievement(user, current)
                results.append({"user_id": user.id, "streak": current, **result})
        except Exception as e:
            results.append(_failed(user, "Streak check", e))

    logger.info(f"Streak achievement check: {len(results)} emails")
    return _summarize(results)


def milestones_for(user: User, stats: UserStats, now: datetime) -> List[str]:
    milestones = []
    if stats.total_entries == 1:
        milestones.append("first_entry")
    if stats.current_streak == 7:
        milestones.append("week_streak")
    if stats.current_streak == 30:
        milestones.append("month_streak")
    if stats.total_entries == 100:
        milestones.append("hundred_entries")
    if _is_anniversary(user, now):
        milestones.append("year_anniversary")
    return milestones


def check_milestones(store: JournalStore, mailer: Mailer, now: Optional[datetime] = None) -> Dict[str, Any]:
    now = now or datetime.now()
    results = []
    for user in store.list_users():
        if not user.notifications_enabled:
            continue
        try:
            stats = _live_stats(store, user, now)
            if stats.total_entries == 0:
                continue
            for milestone in milestones_for(user, stats, now):
                result = mailer.send_milestone(user, milestone)
                results.append({"user_id": user.id, "milestone": milestone, **result})
        except Exception as e:
            results.append(_failed(user, "Milestone check", e))

    logger.info(f"Milestone check: {len(results)} emails")
    return _summarize(results)


def top_emotions(entries, limit: int = 3) -> List[str]:
    counts = Counter(
        emotion.get("emotion")
        for entry in entries
        for emotion in entry.emotions
        if isinstance(emotion, dict) and emotion.get("emotion")
    )
    return [emotion for emotion, _ in counts.most_common(limit)] or list(DEFAULT_TOP_EMOTIONS)


def send_weekly_summaries(store: JournalStore, mailer: Mailer, now: Optional[datetime] = None) -> Dict[str, Any]:
    """Summaries for users with at least one entry in the last 7 days."""
    now = now or datetime.now()
    week_ago = now - timedelta(days=7)

    results = []
    for user in store.list_users():
        if not user.notifications_enabled:
            continue
        try:
            entries = store.find_entries_by_user_and_range(user.id, week_ago, now)
            if not entries:
                continue
            summary = aggregate(entries, week_ago, user_stats=user.stats, today=now.date())
            weekly_stats = {
                "entries_this_week": summary.total_entries,
                "average_mood": summary.average_mood,
                "top_emotions": top_emotions(entries),
                "reflection": summary.weekly_reflection,
            }
            result = mailer.send_weekly_summary(user, weekly_stats)
            results.append({"user_id": user.id, **result})
        except Exception as e:
            results.append(_failed(user, "Weekly summary", e))

    logger.info(f"Weekly summaries: {len(results)} users")
    return _summarize(results)


# =============================================================================
# CLI
# =============================================================================

def _run(job) -> None:
    store = current_app.extensions["journal_store"]
    mailer = current_app.extensions["mailer"]
    summary = job(store, mailer)
    click.echo(f"{job.__name__}: {summary['success_count']} sent, {summary['failure_count']} failed")


@click.command("send-reminders")
@with_appcontext
def send_reminders_cli():
    """Send daily reminders due at the current minute."""
    _run(send_daily_reminders)


@click.command("check-streaks")
@with_appcontext
def check_streaks_cli():
    """Congratulate users who reached a streak milestone."""
    _run(check_streak_achievements)


@click.command("check-milestones")
@with_appcontext
def check_milestones_cli():
    """Send first-entry, streak, entry-count and anniversary milestones."""
    _run(check_milestones)


@click.command("send-weekly-summaries")
@with_appcontext
def send_weekly_summaries_cli():
    """Email last week's stats to recently active users."""
    _run(send_weekly_summaries)


def register_commands(app) -> None:
    for command in (send_reminders_cli, check_streaks_cli, check_milestones_cli, send_weekly_summaries_cli):
        app.cli.add_command(command)
