import random
from datetime import datetime

import pytest

from app import create_app
from config import Config
from models import JournalEntry
from mood_analyzer import MoodAnalyzer
from notifications import Mailer
from storage import JournalStore


class FakeSMTP:
    """Stands in for smtplib.SMTP; flattens and records every message it is asked to send."""

    outbox = []
    fail_with = None

    def __init__(self, host, port, timeout=None):
        self.host = host
        self.port = port
        self.timeout = timeout

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def starttls(self):
        pass

    def login(self, user, password):
        self.user = user

    def send_message(self, msg):
        if self.fail_with is not None:
            raise self.fail_with
        msg.as_bytes()
        self.outbox.append(msg)


@pytest.fixture
def smtp():
    class RecordingSMTP(FakeSMTP):
        outbox = []
    return RecordingSMTP


@pytest.fixture
def email_config():
    return Config({
        "EMAIL_USER": "bot@example.com",
        "EMAIL_PASS": "secret",
        "EMAIL_FROM": "FitMind <bot@example.com>",
        "FRONTEND_URL": "http://localhost:5173",
    })


@pytest.fixture
def mailer(email_config, smtp):
    return Mailer(email_config, smtp_factory=smtp, rng=random.Random(3))


@pytest.fixture
def store(tmp_path):
    return JournalStore(str(tmp_path / "journal.json"))


@pytest.fixture
def fallback_analyzer():
    config = Config({"GROQ_API_KEY": None, "USE_MOCK_AI": True})
    return MoodAnalyzer(config, clock=lambda: 0.0, rng=random.Random(7))


@pytest.fixture
def make_entry():
    def _make(user_id="user-1", text="A perfectly ordinary day at the office.", when=None, **fields):
        entry = JournalEntry(user_id=user_id, text=text, date=when or datetime.now())
        for key, value in fields.items():
            setattr(entry, key, value)
        return entry
    return _make


@pytest.fixture
def app(tmp_path, fallback_analyzer):
    app = create_app({
        "DATA_FILE": str(tmp_path / "journal.json"),
        "GROQ_API_KEY": None,
        "USE_MOCK_AI": True,
        "EMAIL_USER": None,
        "EMAIL_PASS": None,
    })
    app.config["TESTING"] = True
    app.extensions["mood_analyzer"] = fallback_analyzer
    return app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def auth_headers():
    return {"X-User-Id": "user-1"}
