"""
FitMind - Personal Journaling API with AI Mood Insights
Entries are analyzed for mood on save, and stats (streaks, mood trend,
weekly reflection) are computed from the stored history.
"""

import logging
from datetime import datetime
from functools import wraps
from typing import Any, Dict, List, Optional, Tuple, Union

from flask import Blueprint, Flask, current_app, g, jsonify, request
from flask_cors import CORS

from config import Config
from jobs import register_commands
from models import MIN_ENTRY_LENGTH, MOODS, JournalEntry, parse_datetime
from mood_analyzer import MoodAnalyzer
from notifications import Mailer
from stats import STATS_RANGES, aggregate, range_start_for
from storage import JournalStore, StorageError
from streaks import encouragement_message, next_milestone

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

MAX_ENTRY_LENGTH = 50000  # Characters
MAX_PAGE_SIZE = 50

api = Blueprint("api", __name__, url_prefix="/api")


# =============================================================================
# Helpers
# =============================================================================

def _store() -> JournalStore:
    return current_app.extensions["journal_store"]


def _analyzer() -> MoodAnalyzer:
    return current_app.extensions["mood_analyzer"]


def success(data: Any = None, message: Optional[str] = None, status: int = 200):
    body: Dict[str, Any] = {"success": True}
    if message:
        body["message"] = message
    if data is not None:
        body["data"] = data
    return jsonify(body), status


def failure(message: str, status: int, errors: Optional[List[Dict[str, str]]] = None):
    body: Dict[str, Any] = {"success": False, "message": message}
    if errors:
        body["errors"] = errors
    return jsonify(body), status


def validation_failed(errors: List[Dict[str, str]]):
    return failure("Validation failed", 400, errors)


def json_body() -> Optional[Dict[str, Any]]:
    """The JSON request body; {} when absent, None when it is not an object."""
    body = request.get_json(silent=True)
    if body is None:
        return {}
    return body if isinstance(body, dict) else None


def body_not_an_object():
    return validation_failed([{"field": "body", "message": "Request body must be a JSON object"}])


def has_control_chars(value: str) -> bool:
    return any(ord(ch) < 32 or ord(ch) == 127 for ch in value)


def handle_errors(f):
    """Decorator for consistent error handling."""
    @wraps(f)
    def wrapper(*args, **kwargs):
        try:
            return f(*args, **kwargs)
        except StorageError as e:
            logger.error(f"Storage error in {f.__name__}: {e}")
            return failure("Failed to save journal data", 500)
        except Exception as e:
            logger.exception(f"Error in {f.__name__}: {e}")
            return failure("An unexpected error occurred", 500)
    return wrapper


def require_user(f):
    """Resolve the caller from the X-User-Id header set by the auth gateway."""
    @wraps(f)
    def wrapper(*args, **kwargs):
        user_id = (request.headers.get("X-User-Id") or "").strip()
        if not user_id:
            return failure("Authentication required", 401)
        g.user = _store().ensure_user(user_id)
        return f(*args, **kwargs)
    return wrapper


def validate_text(text: Any, required: bool = True) -> Tuple[Optional[str], List[Dict[str, str]]]:
    """Validate entry text. Returns (trimmed text, errors)."""
    if text is None:
        if required:
            return None, [{"field": "text", "message": "Journal text is required"}]
        return None, []
    if not isinstance(text, str):
        return None, [{"field": "text", "message": "Text must be a string"}]
    text = text.strip()
    if not text and required:
        return None, [{"field": "text", "message": "Journal text is required"}]
    if len(text) < MIN_ENTRY_LENGTH:
        return None, [{
            "field": "text",
            "message": f"Journal entry must be at least {MIN_ENTRY_LENGTH} characters long",
        }]
    if len(text) > MAX_ENTRY_LENGTH:
        return None, [{
            "field": "text",
            "message": f"Text exceeds maximum length of {MAX_ENTRY_LENGTH} characters",
        }]
    return text, []


def parse_date_param(value: Any, field: str, errors: List[Dict[str, str]]) -> Optional[datetime]:
    if value in (None, ""):
        return None
    try:
        return parse_datetime(value)
    except (TypeError, ValueError):
        errors.append({"field": field, "message": f"{field} must be a valid ISO date"})
        return None


def parse_int_param(name: str, default: int, low: int, high: Optional[int],
                    errors: List[Dict[str, str]]) -> int:
    raw = request.args.get(name)
    if raw is None:
        return default
    try:
        value = int(raw)
    except ValueError:
        value = None
    if value is None or value < low or (high is not None and value > high):
        bounds = f"between {low} and {high}" if high is not None else f"at least {low}"
        errors.append({"field": name, "message": f"{name} must be an integer {bounds}"})
        return default
    return value


# =============================================================================
# Health
# =============================================================================

@api.route("/health", methods=["GET"])
def health():
    return jsonify({
        "message": "FitMind API is running!",
        "timestamp": datetime.now().isoformat(),
        "ai_enabled": current_app.config["FITMIND"].ai_enabled(),
    })


# =============================================================================
# Journal Routes
# =============================================================================

@api.route("/journal", methods=["POST"])
@handle_errors
@require_user
def create_entry():
    """Create a journal entry with mood analysis."""
    body = json_body()
    if body is None:
        return body_not_an_object()
    text, errors = validate_text(body.get("text"))
    entry_date = parse_date_param(body.get("date"), "date", errors)
    if errors:
        return validation_failed(errors)

    logger.info(f"Analyzing journal entry for user {g.user.id}")
    analysis = _analyzer().analyze(text)

    entry = JournalEntry(user_id=g.user.id, text=text, date=entry_date or datetime.now())
    entry.apply_analysis(analysis)
    _store().add_entry(entry)
    _store().recompute_user_stats(g.user.id)

    payload = entry.to_dict()
    payload["analysisSource"] = analysis.source
    return success(payload, "Journal entry created successfully", 201)


@api.route("/journal", methods=["GET"])
@handle_errors
@require_user
def list_entries():
    """List entries newest first, with optional filters and pagination."""
    errors: List[Dict[str, str]] = []
    page = parse_int_param("page", 1, 1, None, errors)
    limit = parse_int_param("limit", 20, 1, MAX_PAGE_SIZE, errors)
    mood = request.args.get("mood")
    if mood and mood != "all" and mood not in MOODS:
        errors.append({"field": "mood", "message": "Invalid mood filter"})
    start = parse_date_param(request.args.get("startDate"), "startDate", errors)
    end = parse_date_param(request.args.get("endDate"), "endDate", errors)
    if errors:
        return validation_failed(errors)

    entries, total = _store().list_entries(g.user.id, mood=mood, start=start, end=end, page=page, limit=limit)
    return success({
        "entries": [entry.to_dict() for entry in entries],
        "pagination": {
            "totalPages": (total + limit - 1) // limit,
            "currentPage": page,
            "total": total,
            "limit": limit,
        },
    })


@api.route("/journal/stats", methods=["GET"])
@handle_errors
@require_user
def get_stats():
    """Aggregate statistics for the week, month or year."""
    range_name = request.args.get("range", "week")
    if range_name not in STATS_RANGES:
        return validation_failed([{"field": "range", "message": "Range must be week, month, or year"}])

    start = range_start_for(range_name)
    entries = _store().find_entries_by_user_and_range(g.user.id, start=start)
    entries.sort(key=lambda e: e.date.timestamp(), reverse=True)

    result = aggregate(entries, start, user_stats=g.user.stats)
    payload = result.to_dict()
    payload["range"] = range_name
    return success(payload)


@api.route("/journal/export", methods=["GET"])
@handle_errors
@require_user
def export_entries():
    """Export all journal entries for the caller."""
    entries = _store().find_entries_by_user_and_range(g.user.id)
    entries.sort(key=lambda e: e.date.timestamp(), reverse=True)
    logger.info(f"Exporting {len(entries)} journal entries for user {g.user.id}")
    return jsonify({
        "success": True,
        "message": "Journal entries exported successfully",
        "data": [entry.to_dict() for entry in entries],
        "count": len(entries),
        "exportedAt": datetime.now().isoformat(),
    })


@api.route("/journal/<entry_id>", methods=["GET"])
@handle_errors
@require_user
def get_entry(entry_id: str):
    entry = _store().get_entry(g.user.id, entry_id)
    if not entry:
        return failure("Journal entry not found", 404)
    return success(entry.to_dict())


@api.route("/journal/<entry_id>", methods=["PUT"])
@handle_errors
@require_user
def update_entry(entry_id: str):
    """Update an entry; changed text is re-analyzed."""
    entry = _store().get_entry(g.user.id, entry_id)
    if not entry:
        return failure("Journal entry not found", 404)

    body = json_body()
    if body is None:
        return body_not_an_object()
    text, errors = validate_text(body.get("text"), required=False)
    entry_date = parse_date_param(body.get("date"), "date", errors)
    if errors:
        return validation_failed(errors)

    if text and text != entry.text:
        entry.set_text(text)
        entry.apply_analysis(_analyzer().analyze(text))
    if entry_date:
        entry.date = entry_date

    _store().update_entry(entry)
    _store().recompute_user_stats(g.user.id)
    return success(entry.to_dict(), "Journal entry updated successfully")


@api.route("/journal/<entry_id>", methods=["DELETE"])
@handle_errors
@require_user
def delete_entry(entry_id: str):
    if not _store().delete_entry(g.user.id, entry_id):
        return failure("Journal entry not found", 404)
    _store().recompute_user_stats(g.user.id)
    return success(message="Journal entry deleted successfully")


# =============================================================================
# Analysis & Profile Routes
# =============================================================================

@api.route("/analyze", methods=["POST"])
@handle_errors
@require_user
def analyze_text():
    """Analyze text without saving it."""
    body = json_body()
    if body is None:
        return body_not_an_object()
    text, errors = validate_text(body.get("text"))
    if errors:
        return validation_failed(errors)
    return success(_analyzer().analyze(text).to_dict())


@api.route("/users/me", methods=["GET"])
@handle_errors
@require_user
def get_profile():
    return success(g.user.to_dict())


@api.route("/users/me", methods=["PUT"])
@handle_errors
@require_user
def update_profile():
    """Update name, email and notification preferences."""
    body = json_body()
    if body is None:
        return body_not_an_object()
    user = g.user
    previous_email = user.email
    errors: List[Dict[str, str]] = []

    for field in ("name", "email"):
        if field in body:
            if not isinstance(body[field], str):
                errors.append({"field": field, "message": f"{field} must be a string"})
            elif has_control_chars(body[field]):
                errors.append({"field": field, "message": f"{field} must not contain control characters"})
            else:
                setattr(user, field, body[field].strip())

    preferences = body.get("preferences")
    if preferences is not None:
        if not isinstance(preferences, dict):
            errors.append({"field": "preferences", "message": "preferences must be an object"})
        else:
            if "notifications" in preferences:
                user.preferences["notifications"] = bool(preferences["notifications"])
            reminder = preferences.get("dailyReminder")
            if isinstance(reminder, dict):
                current = dict(user.daily_reminder)
                if "enabled" in reminder:
                    current["enabled"] = bool(reminder["enabled"])
                if "time" in reminder:
                    try:
                        datetime.strptime(str(reminder["time"]), "%H:%M")
                        current["time"] = str(reminder["time"])
                    except ValueError:
                        errors.append({"field": "dailyReminder.time", "message": "Time must be HH:MM"})
                user.preferences["dailyReminder"] = current

    if errors:
        return validation_failed(errors)
    _store().save_user(user)

    if user.email and not previous_email:
        result = current_app.extensions["mailer"].send_welcome(user)
        if not result.get("success"):
            logger.warning(f"Welcome email for user {user.id} not sent: {result.get('error')}")
    return success(user.to_dict(), "Profile updated successfully")


@api.route("/users/me/stats", methods=["GET"])
@handle_errors
@require_user
def get_user_stats():
    """Persisted streak stats plus encouragement and the next milestone."""
    stats = g.user.stats
    return success({
        **stats.to_dict(),
        "encouragement": encouragement_message(stats.current_streak, stats.total_entries),
        "nextMilestone": next_milestone(stats.current_streak),
    })


# =============================================================================
# App Factory
# =============================================================================

def create_app(config: Union[Config, Dict[str, Any], None] = None) -> Flask:
    if not isinstance(config, Config):
        config = Config(config)

    app = Flask(__name__)
    app.config["FITMIND"] = config
    CORS(app, origins=[config.FRONTEND_URL, *config.CORS_ORIGINS], supports_credentials=True)

    app.extensions["journal_store"] = JournalStore(config.DATA_FILE)
    app.extensions["mood_analyzer"] = MoodAnalyzer(config)
    app.extensions["mailer"] = Mailer(config)

    app.register_blueprint(api)
    register_commands(app)

    if config.ai_enabled():
        logger.info("Groq API configured for mood analysis")
    else:
        logger.warning("AI analysis disabled (no GROQ_API_KEY or USE_MOCK_AI set); using fallback analysis")
    return app


if __name__ == "__main__":
    logger.info("Starting FitMind server...")
    create_app().run(debug=True, port=5000)
