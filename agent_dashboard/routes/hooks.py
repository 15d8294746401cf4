"""Hooks routes for agent lifecycle webhooks.

Agents POST here around tool calls, on session end and on prompt submission.
Every request must carry the shared bearer secret, /health included.
Accepted events are validated, queued for the HookProcessor and
acknowledged at once.

Endpoints:
- POST /hook/pre-tool-use       - Agent is about to run a tool
- POST /hook/post-tool-use      - Tool call finished
- POST /hook/session-end        - Agent session finished
- POST /hook/user-prompt-submit - User handed the agent a prompt
- GET  /hook/health             - Endpoint listing
- GET  /hook/status             - Processor and queue status
"""

import json
import logging
from datetime import datetime, timezone

from flask import Blueprint, current_app, jsonify, request
from pydantic import ValidationError

from agent_dashboard.models.hook import PAYLOAD_MODELS, HookEventKind
from agent_dashboard.services.hook_dispatcher import DispatchQueueFullError
from agent_dashboard.services.webhook_auth import (
    ServerMisconfiguredError,
    WebhookAuthError,
    verify_bearer,
)

hooks_bp = Blueprint("hooks", __name__)

logger = logging.getLogger(__name__)

HOOK_ENDPOINTS = {
    "preToolUse": "/pre-tool-use",
    "postToolUse": "/post-tool-use",
    "sessionEnd": "/session-end",
    "userPromptSubmit": "/user-prompt-submit",
}


def _get_config():
    """Get the app config from extensions."""
    return current_app.extensions.get("config")


def _get_dispatcher():
    """Get the HookDispatcher from app extensions."""
    return current_app.extensions.get("hook_dispatcher")


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


@hooks_bp.before_request
def authenticate():
    """Reject requests without a valid bearer token."""
    config = _get_config()
    secret = config.webhook.secret if config else None

    try:
        verify_bearer(request.headers.get("Authorization"), secret)
    except ServerMisconfiguredError as e:
        logger.error(f"[HOOK] {e}: webhook secret not configured ({request.path})")
        return jsonify(e.to_dict()), e.status_code
    except WebhookAuthError as e:
        logger.warning(f"[HOOK] {e.kind} from {request.remote_addr} on {request.path}")
        return jsonify(e.to_dict()), e.status_code
    return None


def _log_hook_request(kind: HookEventKind, data: dict) -> None:
    """Log hook request with full data for debugging."""
    agent = data.get("agentName") or data.get("agentId") or "unknown"
    session_id = str(data.get("sessionId") or "unknown")[:8]
    logger.info(f"[HOOK] {kind.value} | agent={agent} | session={session_id}")
    logger.debug(f"[HOOK] {kind.value} full data: {json.dumps(data, default=str)}")


def _accept(kind: HookEventKind):
    """Validate the request body and queue it for processing.

    Returns:
        Flask response tuple.
    """
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        logger.warning(f"[HOOK] {kind.value} REJECTED: body is not a JSON object")
        return jsonify({"error": "Invalid payload", "details": "Expected a JSON object"}), 400

    _log_hook_request(kind, data)

    config = _get_config()
    if config and not config.hooks.enabled:
        logger.info(f"[HOOK] {kind.value} IGNORED: hooks disabled")
        return jsonify({"received": False, "message": "Hooks are disabled"}), 200

    try:
        payload = PAYLOAD_MODELS[kind].model_validate(data)
    except ValidationError as e:
        logger.warning(f"[HOOK] {kind.value} REJECTED: {e.error_count()} validation error(s)")
        details = [
            {"field": ".".join(str(p) for p in err["loc"]), "message": err["msg"]}
            for err in e.errors()
        ]
        return jsonify({"error": "Invalid payload", "details": details}), 400

    dispatcher = _get_dispatcher()
    try:
        if dispatcher is None:
            raise RuntimeError("Hook dispatcher not available")
        dispatcher.submit(kind, payload)
    except DispatchQueueFullError:
        logger.warning(f"[HOOK] {kind.value} REJECTED: queue full")
        return jsonify({"error": "Hook queue full"}), 503
    except Exception:
        logger.exception(f"[HOOK] {kind.value} FAILED to queue")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({"received": True, "timestamp": _now_iso()}), 200


@hooks_bp.route("/pre-tool-use", methods=["POST"])
def hook_pre_tool_use():
    """Handle pre-tool-use hook.

    Request body:
        {
            "agentId": "string",
            "agentName": "string",
            "sessionId": "string",
            "toolName": "string",
            "toolParams": {},
            "timestamp": "string"
        }
    """
    return _accept(HookEventKind.PRE_TOOL_USE)


@hooks_bp.route("/post-tool-use", methods=["POST"])
def hook_post_tool_use():
    """Handle post-tool-use hook.

    Request body:
        {
            "agentId": "string",
            "agentName": "string",
            "sessionId": "string",
            "toolName": "string",
            "result": {"success": bool, "output": "string", "error": "string"},
            "executionTimeMs": number,
            "timestamp": "string"
        }
    """
    return _accept(HookEventKind.POST_TOOL_USE)


@hooks_bp.route("/session-end", methods=["POST"])
def hook_session_end():
    """Handle session-end hook.

    Request body:
        {
            "agentId": "string",
            "agentName": "string",
            "sessionId": "string",
            "reason": "task_complete" | "error" | "timeout" | "manual_stop",
            "summary": "string",
            "tasksCompleted": int,
            "totalExecutionTimeMs": number,
            "timestamp": "string"
        }
    """
    return _accept(HookEventKind.SESSION_END)


@hooks_bp.route("/user-prompt-submit", methods=["POST"])
def hook_user_prompt_submit():
    """Handle user-prompt-submit hook.

    Request body:
        {
            "agentId": "string",
            "agentName": "string",
            "sessionId": "string",
            "prompt": "string",
            "timestamp": "string"
        }
    """
    return _accept(HookEventKind.USER_PROMPT_SUBMIT)


@hooks_bp.route("/health", methods=["GET"])
def hook_health():
    """List the hook endpoints."""
    return jsonify({"status": "healthy", "endpoints": HOOK_ENDPOINTS, "timestamp": _now_iso()})


@hooks_bp.route("/status", methods=["GET"])
def hook_status():
    """Get hook processing status.

    Returns:
        JSON with:
        - enabled: Whether hooks are enabled in config
        - processor: HookProcessor statistics
        - dispatcher: Worker and queue status
    """
    config = _get_config()
    processor = current_app.extensions.get("hook_processor")
    dispatcher = _get_dispatcher()

    return jsonify(
        {
            "enabled": config.hooks.enabled if config else True,
            "processor": processor.get_stats() if processor else None,
            "dispatcher": dispatcher.get_status() if dispatcher else None,
        }
    )
