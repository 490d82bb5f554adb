"""Safety Service HTTP handler.

Every user message passes through /assess before it reaches the AI
companion. The response tells the chat client whether to show crisis
helplines; crisis events are logged server-side.

No PII in logs - user identifiers go through hash_pii().
"""
import logging
import os
from typing import Optional

from flask import Flask, jsonify, request

from mannmitra.shared.models import CrisisResolution
from mannmitra.shared.utils import configure_pii_salt, hash_pii
from .assessor import RiskAssessor
from .config import ServiceConfig
from .crisis_log import CrisisEventLog, CrisisEventNotFoundError, InvalidResolutionTransitionError
from .crisis_publisher import CrisisEventPublisher
from .escalation import EscalationPolicy
from .pipeline import SafetyPipeline
from .session_window import SessionWindowStore

logger = logging.getLogger(__name__)


DEV_PII_SALT = "default_dev_salt_change_in_production_32chars"


def build_pipeline(config: ServiceConfig) -> SafetyPipeline:
    """Build a pipeline with fresh collaborators from configuration."""
    policy = EscalationPolicy(config.escalation)
    return SafetyPipeline(
        assessor=RiskAssessor(config=config.safety),
        policy=policy,
        session_store=SessionWindowStore(config.escalation),
        event_log=CrisisEventLog(),
        publisher=CrisisEventPublisher(config.publisher),
        helplines=config.helplines,
    )


def create_app(
    pipeline: Optional[SafetyPipeline] = None,
    config: Optional[ServiceConfig] = None,
) -> Flask:
    """Create the Safety Service Flask app.

    Args:
        pipeline: Pre-built pipeline (tests inject one); built from
            config when omitted
        config: Service configuration, read from the environment when omitted

    Returns:
        Configured Flask application
    """
    config = config or ServiceConfig.from_env()
    configure_pii_salt(os.getenv("PII_HASH_SALT", DEV_PII_SALT))
    if pipeline is None:
        pipeline = build_pipeline(config)

    app = Flask(__name__)
    app.config["SAFETY_PIPELINE"] = pipeline

    @app.route("/health", methods=["GET"])
    def health():
        """Health check endpoint for the load balancer."""
        return jsonify({
            "status": "healthy",
            "service": "safety-service",
            "table_version": pipeline.assessor.config.table_version,
        }), 200

    @app.route("/ready", methods=["GET"])
    def ready():
        """Readiness check - verifies the pipeline is wired."""
        if pipeline.assessor is None or pipeline.policy is None:
            return jsonify({"status": "not_ready", "reason": "pipeline_not_initialized"}), 503
        return jsonify({"status": "ready"}), 200

    @app.route("/assess", methods=["POST"])
    def assess_message():
        """Assess a message and decide escalation.

        Request Body:
            {
                "message": "User message text",
                "user_id": "user_123",
                "session_id": "sess_456"
            }

        Response:
            {
                "risk_level": "none" | "low" | "moderate" | "high" | "severe",
                "score": 0,
                "show_crisis_resources": true | false,
                "log_crisis_event": true | false,
                "helplines": [...],
                ...
            }

        Error Handling:
            Bad requests return 400. On any other error the response
            shows crisis resources - we never fail open.
        """
        data = request.get_json(silent=True)
        if not isinstance(data, dict):
            logger.warning("ASSESS_REQUEST_INVALID", extra={"reason": "invalid_json_body"})
            return jsonify({"error": "JSON object body required"}), 400

        message = data.get("message")
        if not isinstance(message, str):
            logger.warning("ASSESS_REQUEST_INVALID", extra={"reason": "missing_message"})
            return jsonify({"error": "Missing required field: message"}), 400

        user_id = data.get("user_id")
        session_id = data.get("session_id")
        for name, value in (("user_id", user_id), ("session_id", session_id)):
            if not isinstance(value, str) or not value:
                logger.warning("ASSESS_REQUEST_INVALID", extra={"reason": f"missing_{name}"})
                return jsonify({"error": f"Missing required field: {name}"}), 400

        try:
            logger.info(
                "ASSESS_REQUESTED",
                extra={
                    "user_id_hash": hash_pii(user_id),
                    "session_id": session_id,
                    "message_length": len(message),
                }
            )
            result = pipeline.process_message(user_id, session_id, message)
            return jsonify(result.to_dict()), 200

        except Exception as e:
            logger.error(
                "ASSESS_ERROR",
                extra={
                    "session_id": session_id,
                    "error": str(e),
                    "error_type": type(e).__name__,
                    "action": "SHOWING_CRISIS_RESOURCES",
                }
            )
            return jsonify({
                "session_id": session_id,
                "risk_level": None,
                "show_crisis_resources": True,
                "log_crisis_event": False,
                "helplines": [h.to_dict() for h in pipeline.helplines],
                "error": "Assessment error - showing crisis resources",
            }), 200  # 200 so the chat client still renders the helplines

    @app.route("/crisis-events", methods=["GET"])
    def list_crisis_events():
        """List a user's crisis events, or all unresolved events."""
        user_id = request.args.get("user_id")
        if user_id:
            entries = pipeline.event_log.events_for_user(user_id)
        else:
            entries = pipeline.event_log.active()
        return jsonify({"events": [e.to_dict() for e in entries]}), 200

    @app.route("/crisis-events/<event_id>/resolution", methods=["POST"])
    def update_resolution(event_id: str):
        """Move a logged crisis event along its resolution lifecycle.

        Request Body:
            {"resolution": "monitoring" | "resolved", "notes": "..."}
        """
        data = request.get_json(silent=True) or {}
        try:
            resolution = CrisisResolution(data.get("resolution"))
        except ValueError:
            return jsonify({"error": "Invalid or missing field: resolution"}), 400

        try:
            entry = pipeline.event_log.update_resolution(
                event_id,
                resolution,
                notes=data.get("notes"),
            )
        except CrisisEventNotFoundError as e:
            logger.warning("CRISIS_RESOLUTION_NOT_FOUND", extra={"event_id": event_id})
            return jsonify({"error": str(e)}), 404
        except InvalidResolutionTransitionError as e:
            logger.warning(
                "CRISIS_RESOLUTION_REJECTED",
                extra={"event_id": event_id, "resolution": resolution.value}
            )
            return jsonify({"error": str(e)}), 409

        return jsonify(entry.to_dict()), 200

    logger.info(
        "SAFETY_SERVICE_APP_CREATED",
        extra={
            "table_version": pipeline.assessor.config.table_version,
            "window_size": pipeline.policy.config.window_size,
            "publishing_enabled": config.publisher.enabled,
        }
    )
    return app


if __name__ == "__main__":
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    port = int(os.getenv("PORT", "8001"))
    create_app().run(host="0.0.0.0", port=port, debug=False)
