"""Event routes for the agent activity tracker.

Provides the Server-Sent Events (SSE) endpoint for realtime updates.
"""

from flask import Blueprint, Response, current_app, request

events_bp = Blueprint("events", __name__)


@events_bp.route("/events")
def sse_events():
    """Server-Sent Events endpoint for realtime updates.

    Every client receives global broadcasts:
    - agent:tool:start / agent:tool:complete
    - agent:session:end
    - agent:prompt:received
    - agent:alert
    - agent:stopped

    Query params:
        room: Room to join as well (repeatable), e.g. an agent name to
            receive agent:command events addressed to it.

    Returns:
        SSE stream with events in format:
        event: <event_type>
        data: <json_payload>
    """
    event_bus = current_app.extensions["event_bus"]
    rooms = [r for r in request.args.getlist("room") if r]

    return Response(
        event_bus.get_sse_stream(rooms),
        mimetype="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",
        },
    )
