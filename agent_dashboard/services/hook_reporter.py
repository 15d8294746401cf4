"""HookReporter - client side of the webhook API.

Used from an agent's hook configuration to forward lifecycle events to the
dashboard. Reporting must never block or fail the agent, so errors are
logged and reported as False.
"""

import logging

import requests

from agent_dashboard.models.hook import HookEventKind

logger = logging.getLogger(__name__)

HOOK_PATHS = {
    HookEventKind.PRE_TOOL_USE: "/hook/pre-tool-use",
    HookEventKind.POST_TOOL_USE: "/hook/post-tool-use",
    HookEventKind.SESSION_END: "/hook/session-end",
    HookEventKind.USER_PROMPT_SUBMIT: "/hook/user-prompt-submit",
}


class HookReporter:
    """Posts hook payloads to the dashboard with the shared bearer secret."""

    def __init__(self, base_url: str, secret: str, timeout: float = 5.0, session=None):
        """Initialize the reporter.

        Args:
            base_url: Dashboard URL, e.g. http://localhost:5050.
            secret: Shared webhook secret.
            timeout: Request timeout in seconds.
            session: Optional requests.Session to reuse.
        """
        self.base_url = base_url.rstrip("/")
        self.secret = secret
        self.timeout = timeout
        self._session = session or requests.Session()

    def report(self, kind: HookEventKind | str, payload: dict) -> bool:
        """Send one hook payload.

        Args:
            kind: Event kind (enum or its value).
            payload: camelCase payload as documented for the endpoint.

        Returns:
            True if the dashboard accepted the event.
        """
        kind = HookEventKind(kind)
        url = self.base_url + HOOK_PATHS[kind]
        headers = {
            "Authorization": f"Bearer {self.secret}",
            "Content-Type": "application/json",
        }

        try:
            response = self._session.post(url, json=payload, headers=headers, timeout=self.timeout)
        except requests.RequestException as e:
            logger.warning(f"Hook report to {url} failed: {e}")
            return False

        if response.status_code != 200:
            logger.warning(f"Hook report to {url} rejected: {response.status_code} {response.text}")
            return False
        return True
