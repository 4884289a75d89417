"""
Plain-text email notifications: welcome, reminders, streak achievements,
milestones and weekly summaries. Delivery failures are logged and reported
in the returned dict, never raised.
"""

import logging
import random
import smtplib
from email.errors import MessageError
from email.mime.text import MIMEText
from typing import Any, Callable, Dict, List, Optional

from config import Config
from models import User

logger = logging.getLogger(__name__)

MOTIVATIONAL_QUOTES = [
    "The best time to start journaling was yesterday. The second best time is now.",
    "Your thoughts matter. Take a moment to capture them.",
    "Writing is thinking on paper.",
    "A journal is a friend who listens without judgment.",
    "Small daily reflections add up to big insights.",
    "Every entry is a step toward understanding yourself better.",
]

REMINDER_SUBJECTS = [
    "Time to reflect on your day",
    "Your journal is waiting for you",
    "A few minutes for yourself today?",
    "How are you feeling today?",
]

MILESTONES: Dict[str, Dict[str, str]] = {
    "first_entry": {
        "title": "Your first journal entry",
        "message": "You wrote your first entry. Every story begins with one page.",
    },
    "week_streak": {
        "title": "One week streak",
        "message": "Seven days in a row. You are building a real habit.",
    },
    "month_streak": {
        "title": "30-day streak",
        "message": "A full month of daily reflection. Consistency is your superpower.",
    },
    "hundred_entries": {
        "title": "100 journal entries",
        "message": "One hundred entries. That is a remarkable record of your journey.",
    },
    "year_anniversary": {
        "title": "One year with FitMind",
        "message": "A year ago you started journaling with us. Thank you for showing up for yourself.",
    },
}


def random_motivational_quote(rng: Optional[random.Random] = None) -> str:
    return (rng or random).choice(MOTIVATIONAL_QUOTES)


class Mailer:
    """SMTP sender. Disabled (every send is a logged no-op) without credentials."""

    def __init__(
        self,
        config: Optional[Config] = None,
        smtp_factory: Callable[..., smtplib.SMTP] = smtplib.SMTP,
        rng: Optional[random.Random] = None,
    ):
        self.config = config or Config()
        self.smtp_factory = smtp_factory
        self.rng = rng or random.Random()
        if not self.enabled:
            logger.info("Email credentials not configured. Email features are disabled.")

    @property
    def enabled(self) -> bool:
        return self.config.email_enabled()

    def build_message(self, to: str, subject: str, body: str) -> MIMEText:
        msg = MIMEText(body, "plain", "utf-8")
        msg["From"] = self.config.EMAIL_FROM
        msg["To"] = to
        msg["Subject"] = subject
        return msg

    def send(self, to: str, subject: str, body: str) -> Dict[str, Any]:
        if not self.enabled:
            logger.warning(f"Skipping email to {to}: email service not configured")
            return {"success": False, "error": "Email service not configured"}
        if not to:
            return {"success": False, "error": "No recipient address"}

        try:
            msg = self.build_message(to, subject, body)
            with self.smtp_factory(self.config.EMAIL_HOST, self.config.EMAIL_PORT, timeout=30) as server:
                server.starttls()
                server.login(self.config.EMAIL_USER, self.config.EMAIL_PASS)
                server.send_message(msg)
        except (smtplib.SMTPException, MessageError, OSError) as e:
            logger.error(f"Failed to send '{subject}' to {to}: {e}")
            return {"success": False, "error": str(e)}

        logger.info(f"Sent '{subject}' to {to}")
        return {"success": True, "message_id": msg.get("Message-ID")}

    # -------------------------------------------------------------------------
    # Message types
    # -------------------------------------------------------------------------

    def _greeting(self, user: User) -> str:
        return f"Hi {user.name}," if user.name else "Hi,"

    def send_welcome(self, user: User) -> Dict[str, Any]:
        body = "\n".join([
            self._greeting(user),
            "",
            "Welcome to FitMind! Your mental wellness journey begins now.",
            "Each entry you write is analyzed for mood, and your streaks and",
            "weekly insights build up as you go.",
            "",
            f"Write your first entry: {self.config.FRONTEND_URL}/journal",
            "",
            "The FitMind team",
        ])
        subject = f"Welcome to FitMind, {user.name}!" if user.name else "Welcome to FitMind!"
        return self.send(user.email, subject, body)

    def send_daily_reminder(self, user: User, quote: Optional[str] = None) -> Dict[str, Any]:
        quote = quote or random_motivational_quote(self.rng)
        body = "\n".join([
            self._greeting(user),
            "",
            "This is your daily reminder to take a few minutes for your journal.",
            "",
            f'"{quote}"',
            "",
            f"Write today's entry: {self.config.FRONTEND_URL}/journal",
            "",
            "The FitMind team",
        ])
        return self.send(user.email, self.rng.choice(REMINDER_SUBJECTS), body)

    def send_streak_achievement(self, user: User, streak_days: int) -> Dict[str, Any]:
        body = "\n".join([
            self._greeting(user),
            "",
            f"You have journaled {streak_days} days in a row. That is a real achievement.",
            "Keep the streak going with today's entry.",
            "",
            f"{self.config.FRONTEND_URL}/stats",
            "",
            "The FitMind team",
        ])
        return self.send(user.email, f"Congratulations! {streak_days}-Day Streak Achievement", body)

    def send_milestone(self, user: User, milestone_type: str) -> Dict[str, Any]:
        milestone = MILESTONES.get(milestone_type)
        if milestone is None:
            return {"success": False, "error": f"Unknown milestone: {milestone_type}"}
        body = "\n".join([
            self._greeting(user),
            "",
            milestone["message"],
            "",
            f"{self.config.FRONTEND_URL}/stats",
            "",
            "The FitMind team",
        ])
        subject = f"{milestone['title']} - {user.name}" if user.name else milestone["title"]
        return self.send(user.email, subject, body)

    def send_weekly_summary(self, user: User, weekly_stats: Dict[str, Any]) -> Dict[str, Any]:
        top_emotions: List[str] = weekly_stats.get("top_emotions") or []
        lines = [
            self._greeting(user),
            "",
            "Here is your week in review:",
            "",
            f"- Entries this week: {weekly_stats.get('entries_this_week', 0)}",
            f"- Average mood: {weekly_stats.get('average_mood', 0)}/10",
        ]
        if top_emotions:
            lines.append(f"- Top emotions: {', '.join(top_emotions)}")
        if weekly_stats.get("reflection"):
            lines.extend(["", weekly_stats["reflection"]])
        lines.extend(["", f"{self.config.FRONTEND_URL}/stats", "", "The FitMind team"])
        return self.send(user.email, "Your Weekly Mental Wellness Summary", "\n".join(lines))
