#!/usr/bin/env python3
"""Forward one agent hook event to the dashboard.

Reads a JSON payload from stdin and posts it to the matching webhook.
Meant to be called from an agent's hook configuration, so it always exits
0: a dashboard that is down must not fail the agent.

Usage:
    echo '{"agentId": "...", ...}' | python report_hook.py pre_tool_use
    python report_hook.py session_end --url http://dashboard:5050 < payload.json

The secret is read from DASHBOARD_WEBHOOK_SECRET.
"""

import json
import logging
import os
import sys

from agent_dashboard.models.hook import HookEventKind
from agent_dashboard.services.hook_reporter import HookReporter

logger = logging.getLogger("report_hook")


def main(argv: list[str] | None = None) -> int:
    import argparse

    parser = argparse.ArgumentParser(description="Report an agent hook event")
    parser.add_argument("event", choices=[k.value for k in HookEventKind], help="Hook event kind")
    parser.add_argument(
        "--url",
        default=os.environ.get("DASHBOARD_URL", "http://localhost:5050"),
        help="Dashboard base URL",
    )
    parser.add_argument("--timeout", type=float, default=5.0, help="Request timeout in seconds")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.WARNING,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    secret = os.environ.get("DASHBOARD_WEBHOOK_SECRET")
    if not secret:
        logger.warning("DASHBOARD_WEBHOOK_SECRET not set, not reporting")
        return 0

    try:
        payload = json.load(sys.stdin)
    except json.JSONDecodeError as e:
        logger.warning(f"Invalid JSON on stdin: {e}")
        return 0

    HookReporter(args.url, secret, timeout=args.timeout).report(args.event, payload)
    return 0


if __name__ == "__main__":
    sys.exit(main())
