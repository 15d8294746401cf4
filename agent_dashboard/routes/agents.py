"""Agent routes for the agent activity tracker.

Provides REST API endpoints for the dashboard:
- List all agents
- Get agent details, tasks, execution plan and event history
- Stop an agent
- Backend health
"""

import logging

from flask import Blueprint, current_app, jsonify, request

from agent_dashboard.services.event_store import StorageWriteError
from agent_dashboard.services.task_planner import CyclicDependencyError

logger = logging.getLogger(__name__)

agents_bp = Blueprint("agents", __name__)

DEFAULT_HISTORY_LIMIT = 10


def _get_store():
    """Get the EventStore from app extensions."""
    return current_app.extensions["event_store"]


def _get_archive():
    """Get the EventArchive from app extensions."""
    return current_app.extensions["event_archive"]


def _agent_or_404(agent_id: str):
    agent = _get_store().get_agent_identity(agent_id)
    if agent is None:
        return None, (jsonify({"error": "Agent not found"}), 404)
    return agent, None


@agents_bp.route("/agents", methods=["GET"])
def list_agents():
    """List all agents with their current status.

    Returns:
        JSON {"agents": [...]} sorted by name.
    """
    agents = _get_store().get_all_agents()
    logger.debug(f"[API] GET /agents - found {len(agents)} agents in store")
    return jsonify({"agents": [a.model_dump(mode="json") for a in agents]})


@agents_bp.route("/agents/<agent_id>", methods=["GET"])
def get_agent(agent_id: str):
    """Get an agent's identity, status and collaboration context.

    Args:
        agent_id: The agent ID.
    """
    agent, error = _agent_or_404(agent_id)
    if error:
        return error

    context = _get_store().get_agent_context(agent_id)
    return jsonify({**agent.model_dump(mode="json"), "context": context.model_dump(mode="json")})


@agents_bp.route("/agents/<agent_id>/tasks", methods=["GET"])
def get_agent_tasks(agent_id: str):
    """Get the tasks assigned to an agent, in stored order."""
    _, error = _agent_or_404(agent_id)
    if error:
        return error

    tasks = _get_store().get_agent_tasks(agent_id)
    return jsonify({"agent": agent_id, "tasks": [t.model_dump(mode="json") for t in tasks]})


@agents_bp.route("/agents/<agent_id>/plan", methods=["GET"])
def get_agent_plan(agent_id: str):
    """Get the dependency-respecting execution order of unresolved tasks.

    Returns:
        JSON {agent, executionOrder, totalTasks}, or 409 when the tasks
        depend on each other in a cycle.
    """
    _, error = _agent_or_404(agent_id)
    if error:
        return error

    planner = current_app.extensions["task_planner"]
    try:
        plan = planner.get_task_execution_plan(agent_id)
    except CyclicDependencyError as e:
        return jsonify({"error": str(e), "taskId": e.task_id}), 409

    return jsonify(plan.to_dict())


@agents_bp.route("/agents/<agent_id>/history", methods=["GET"])
def get_agent_history(agent_id: str):
    """Get recent hook events for an agent, newest first.

    Query params:
        limit: Number of events (default 10, capped by api_limits).
    """
    config = current_app.extensions["config"]
    max_limit = config.api_limits.max_history_limit

    try:
        limit = int(request.args.get("limit", DEFAULT_HISTORY_LIMIT))
    except ValueError:
        return jsonify({"error": "limit must be an integer"}), 400
    limit = max(1, min(limit, max_limit))

    events = _get_archive().query_agent_history(agent_id, limit=limit)
    return jsonify(
        {
            "agent": agent_id,
            "limit": limit,
            "events": [e.model_dump(mode="json") for e in events],
        }
    )


@agents_bp.route("/agents/<agent_id>/stop", methods=["POST"])
def stop_agent(agent_id: str):
    """Stop an agent and notify it through its room.

    Request body (optional):
        {"reason": "string"}
    """
    data = request.get_json(silent=True) or {}
    reason = data.get("reason") or "manual_stop"

    processor = current_app.extensions["hook_processor"]
    try:
        result = processor.stop_agent(agent_id, reason=reason)
    except StorageWriteError as e:
        logger.error(f"[API] Failed to stop agent {agent_id}: {e}")
        return jsonify({"error": "Failed to stop agent"}), 500

    if not result.success:
        status = 404 if result.message == "Agent not found" else 409
        return jsonify({"error": result.message}), status

    return jsonify(
        {
            "success": True,
            "agent": agent_id,
            "status": result.new_status.value,
            "reason": reason,
        }
    )


@agents_bp.route("/health", methods=["GET"])
def health():
    """Report Event Store and Event Archive health.

    Returns:
        200 when both backends are healthy, otherwise 503.
    """
    checks = {}
    for name, backend in (("eventStore", _get_store()), ("eventArchive", _get_archive())):
        try:
            checks[name] = backend.health_check()
        except Exception as e:
            logger.warning(f"[API] {name} health check failed: {e}")
            checks[name] = {"connected": False, "error": str(e)}

    healthy = all(c.get("connected") for c in checks.values())
    return jsonify({"status": "healthy" if healthy else "degraded", **checks}), (
        200 if healthy else 503
    )
