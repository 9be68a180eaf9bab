"""
Quart application serving the daily briefs JSON API.
"""
import logging
from datetime import date
from functools import wraps
from typing import Optional

from quart import Quart, current_app, g, jsonify, request
from quart_cors import cors

from core.errors import AuthError, DayNotCachedError, FutureDateError
from services.cache_store import CacheStore
from services.config import AppConfig
from services.database import Database
from services.identity import IdentityStore, Principal
from workflows.orchestrator import DailyBriefOrchestrator, build_orchestrator

logger = logging.getLogger(__name__)

EXTENSION_KEY = "daily_briefs"
MAX_HISTORY_DAYS = 30


class Services:
    """Collaborators shared by every request."""

    def __init__(
        self,
        database: Database,
        orchestrator: DailyBriefOrchestrator,
        cache: CacheStore,
        identity: IdentityStore,
    ):
        self.database = database
        self.orchestrator = orchestrator
        self.cache = cache
        self.identity = identity


def get_services() -> Services:
    return current_app.extensions[EXTENSION_KEY]


def error_response(message: str, status: int):
    return jsonify({"error": message}), status


# ==================== Decorators ====================

async def resolve_principal(header: str) -> Principal:
    """Resolve an Authorization header to a principal or raise AuthError."""
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise AuthError("Missing bearer token")

    principal = await get_services().identity.get_principal(token.strip())
    if principal is None:
        raise AuthError("Invalid or expired token")
    return principal


def bearer_required(f):
    """Decorator to require a valid bearer token for a route."""
    @wraps(f)
    async def decorated_function(*args, **kwargs):
        try:
            g.principal = await resolve_principal(request.headers.get("Authorization", ""))
        except AuthError as e:
            return error_response(str(e), 401)
        return await f(*args, **kwargs)
    return decorated_function


def create_app(
    config: AppConfig,
    database: Database,
    orchestrator: Optional[DailyBriefOrchestrator] = None,
) -> Quart:
    """Build the API app around one database and one orchestrator."""
    app = Quart(__name__)
    app = cors(app, allow_origin="*")

    app.extensions[EXTENSION_KEY] = Services(
        database=database,
        orchestrator=orchestrator or build_orchestrator(config, database),
        cache=CacheStore(database),
        identity=IdentityStore(database),
    )

    # ==================== Startup ====================

    @app.before_serving
    async def startup():
        """Initialize database tables on startup."""
        services = get_services()
        await services.database.init_tables()
        await services.identity.cleanup_expired_sessions()
        logger.info("API started, database initialized")

    # ==================== Routes ====================

    @app.route("/health")
    async def health():
        return jsonify({"status": "ok"})

    @app.route("/aggregate-daily-content", methods=["POST"])
    @bearer_required
    async def aggregate_daily_content():
        """Today's briefs, built on first miss, or the cached briefs of a past date."""
        body = await request.get_json(silent=True)
        if body is None:
            body = {}
        if not isinstance(body, dict):
            return error_response("Request body must be a JSON object", 400)

        orchestrator = get_services().orchestrator
        day = body.get("date")

        if day is not None:
            try:
                day = date.fromisoformat(str(day)).isoformat()
            except ValueError:
                return error_response(f"Invalid date '{day}', expected YYYY-MM-DD", 400)

        logger.info(f"Brief requested by {g.principal.email} for {day or 'today'}")

        try:
            if day is None:
                payload = await orchestrator.get_or_build_today()
            else:
                payload = await orchestrator.get_or_build(day)
        except FutureDateError as e:
            return error_response(str(e), 400)
        except DayNotCachedError as e:
            return error_response(str(e), 404)
        except Exception as e:
            logger.exception(f"Aggregation failed: {e}")
            return error_response(str(e) or e.__class__.__name__, 500)

        return jsonify(payload.model_dump(mode="json"))

    @app.route("/aggregate-daily-content/history")
    @bearer_required
    async def aggregate_history():
        """Cached payloads of the last N days, newest first."""
        raw_days = request.args.get("days", "7")
        try:
            days = int(raw_days)
        except ValueError:
            return error_response(f"Invalid days '{raw_days}'", 400)
        if not 1 <= days <= MAX_HISTORY_DAYS:
            return error_response(f"days must be between 1 and {MAX_HISTORY_DAYS}", 400)

        try:
            payloads = await get_services().cache.recent(days)
        except Exception as e:
            logger.exception(f"History read failed: {e}")
            return error_response(str(e) or e.__class__.__name__, 500)

        return jsonify({"days": days, "payloads": [p.model_dump(mode="json") for p in payloads]})

    return app
