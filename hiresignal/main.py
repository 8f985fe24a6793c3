"""
HireSignal - Main Flask Application
Entry point for the web server and API routes.
"""

import logging
from functools import wraps
from pathlib import Path
from typing import Any, Dict, Optional

from flask import Flask, current_app, g, jsonify, request
from flask_cors import CORS

from .config import AppConfig, ConfigManager, get_config_manager
from .errors import (
    AuthenticationError,
    AuthorizationError,
    BadRequestError,
    PipelineError,
)
from .models.records import DecisionType
from .orchestrator import FOCUS_MODES, Orchestrator
from .store.repositories import IdentityRepository
from .utils.logging import setup_logging
from .utils.memory import MemoryMonitor

logger = logging.getLogger(__name__)


def create_app(
    config_path: Optional[str] = None,
    config: Optional[AppConfig] = None,
    orchestrator: Optional[Orchestrator] = None
) -> Flask:
    """
    Create and configure the Flask application.

    Args:
        config_path: Optional path to the directory holding ``config/``.
        config: Already-built configuration. Skips loading from disk.
        orchestrator: Pre-wired orchestrator (tests inject one with a seeded store).

    Returns:
        Configured Flask application.
    """
    if config is not None:
        config_manager = ConfigManager(config.base_path)
        config_manager.use(config)
    else:
        base_path = Path(config_path) if config_path else Path(__file__).parent.parent
        config_manager = get_config_manager(base_path)
        config = config_manager.load()

    setup_logging(config)

    app = Flask(__name__)
    CORS(app, origins=config.server.cors_origins)

    orchestrator = orchestrator or Orchestrator(config)
    app.config["HIRESIGNAL_CONFIG_MANAGER"] = config_manager
    app.config["HIRESIGNAL_ORCHESTRATOR"] = orchestrator
    app.config["HIRESIGNAL_IDENTITY"] = IdentityRepository(orchestrator.store)

    register_error_handlers(app)
    register_routes(app)

    logger.info("HireSignal started (model=%s, data_dir=%s)", config.inference.model, config.data_dir)
    return app


def require_role(view):
    """Resolve the bearer token to a user and check the user holds an allowed role."""

    @wraps(view)
    def wrapper(*args, **kwargs):
        header = request.headers.get("Authorization", "")
        if not header.startswith("Bearer "):
            raise AuthenticationError("Authorization required")

        identity: IdentityRepository = _app_value("HIRESIGNAL_IDENTITY")
        user_id = identity.user_for_token(header[len("Bearer "):].strip())
        if not user_id:
            raise AuthenticationError("Invalid authorization")

        allowed = _app_value("HIRESIGNAL_CONFIG_MANAGER").config.server.allowed_roles
        if not set(identity.roles_for_user(user_id)) & set(allowed):
            logger.warning("User %s denied: requires one of %s", user_id, allowed)
            raise AuthorizationError("Recruiter access required")

        g.actor_id = user_id
        return view(*args, **kwargs)

    return wrapper


def _app_value(key: str) -> Any:
    return current_app.config[key]


def _json_body() -> Dict[str, Any]:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def _required(data: Dict[str, Any], *names: str) -> Dict[str, str]:
    missing = [name for name in names if not data.get(name)]
    if missing:
        raise BadRequestError(f"{' and '.join(missing)} {'is' if len(missing) == 1 else 'are'} required")
    return {name: str(data[name]) for name in names}


def _focus_mode(data: Dict[str, Any]) -> str:
    focus_mode = data.get("focusMode") or "balanced"
    if focus_mode not in FOCUS_MODES:
        raise BadRequestError(f"focusMode must be one of: {', '.join(FOCUS_MODES)}")
    return focus_mode


def _bulk_response(result) -> Dict[str, Any]:
    body = {"success": True}
    if result.pool_size == 0:
        body["message"] = "no subjects"
    elif result.processed + result.errors + result.cancelled == 0 and result.skipped == result.pool_size:
        body["message"] = "All candidates already assessed"
    else:
        body["message"] = "Bulk run complete"
    body.update(result.to_dict())
    return body


def register_error_handlers(app: Flask):
    """Map pipeline errors to JSON responses with their status codes."""

    @app.errorhandler(PipelineError)
    def handle_pipeline_error(error: PipelineError):
        if error.status_code >= 500:
            logger.error("Request failed: %s", error.message)
        return jsonify({"success": False, "error": error.message}), error.status_code

    @app.errorhandler(404)
    def handle_not_found(error):
        return jsonify({"success": False, "error": "Not found"}), 404

    @app.errorhandler(405)
    def handle_method_not_allowed(error):
        return jsonify({"success": False, "error": "Method not allowed"}), 405

    @app.errorhandler(Exception)
    def handle_unexpected(error: Exception):
        logger.exception("Unhandled error")
        return jsonify({"success": False, "error": "Internal server error"}), 500


def register_routes(app: Flask):
    """Register all application routes."""

    def orchestrator() -> Orchestrator:
        return app.config["HIRESIGNAL_ORCHESTRATOR"]

    # =========================================================================
    # Health
    # =========================================================================

    @app.route("/api/health", methods=["GET"])
    def health():
        """Service status, inference reachability and memory."""
        config_manager = app.config["HIRESIGNAL_CONFIG_MANAGER"]
        return jsonify({
            "status": "ok",
            "inference_reachable": orchestrator().runtime.check_health(),
            "memory": MemoryMonitor().get_status(),
            "config": config_manager.get_summary()
        })

    # =========================================================================
    # Offer Likelihood API
    # =========================================================================

    @app.route("/api/likelihood", methods=["POST"])
    @require_role
    def assess_likelihood():
        """Score one candidate for one job."""
        data = _json_body()
        fields = _required(data, "contextId", "subjectId")
        record = orchestrator().assess_likelihood(fields["contextId"], fields["subjectId"], g.actor_id)
        return jsonify({
            "success": True,
            "result": record.to_dict(),
            "recordId": record.id,
            "createdAt": record.created_at
        })

    @app.route("/api/likelihood/bulk", methods=["POST"])
    @require_role
    def bulk_assess_likelihood():
        """Score every candidate with a prior signal for the job."""
        data = _json_body()
        fields = _required(data, "contextId")
        result = orchestrator().bulk_assess_likelihood(fields["contextId"], g.actor_id)
        return jsonify(_bulk_response(result))

    @app.route("/api/likelihood", methods=["GET"])
    @require_role
    def get_likelihood():
        """Current offer likelihood for (candidate, job)."""
        fields = _required(request.args, "contextId", "subjectId")
        row = orchestrator().current_record(DecisionType.OFFER_LIKELIHOOD, fields["contextId"], fields["subjectId"])
        if not row:
            return jsonify({"success": True, "exists": False})
        return jsonify({
            "success": True,
            "exists": True,
            "result": row,
            "recordId": row["id"],
            "createdAt": row["created_at"]
        })

    # =========================================================================
    # Interview Kit API
    # =========================================================================

    @app.route("/api/kits", methods=["POST"])
    @require_role
    def generate_kit():
        """Build an interview kit for one candidate and job."""
        data = _json_body()
        fields = _required(data, "contextId", "subjectId")
        record = orchestrator().generate_kit(
            fields["contextId"], fields["subjectId"], g.actor_id, _focus_mode(data)
        )
        return jsonify({
            "success": True,
            "kit": record.to_dict(),
            "kitId": record.id
        })

    @app.route("/api/kits/bulk", methods=["POST"])
    @require_role
    def bulk_generate_kits():
        """Build kits for every candidate with a prior signal for the job."""
        data = _json_body()
        fields = _required(data, "contextId")
        result = orchestrator().bulk_generate_kits(fields["contextId"], g.actor_id, _focus_mode(data))
        return jsonify(_bulk_response(result))

    @app.route("/api/kits", methods=["GET"])
    @require_role
    def get_kit():
        """Current interview kit for (candidate, job)."""
        fields = _required(request.args, "contextId", "subjectId")
        row = orchestrator().current_record(DecisionType.INTERVIEW_KIT, fields["contextId"], fields["subjectId"])
        if not row:
            return jsonify({"success": True, "exists": False})
        return jsonify({
            "success": True,
            "exists": True,
            "kit": row,
            "kitId": row["id"],
            "focusMode": row["focus_mode"],
            "createdAt": row["created_at"]
        })
