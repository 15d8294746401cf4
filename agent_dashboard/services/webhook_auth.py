"""Bearer-token authentication for agent webhooks.

Expected header: Authorization: Bearer <DASHBOARD_WEBHOOK_SECRET>
"""

import hmac


class WebhookAuthError(Exception):
    """Base class for rejected webhook requests."""

    kind = "WebhookAuthError"
    status_code = 401
    message = "Unauthorized"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.message)

    def to_dict(self) -> dict:
        return {"error": str(self)}


class MissingAuthError(WebhookAuthError):
    kind = "MissingAuth"
    message = "Missing authorization header"


class InvalidAuthTypeError(WebhookAuthError):
    kind = "InvalidAuthType"
    message = "Invalid authorization type"


class InvalidTokenError(WebhookAuthError):
    kind = "InvalidToken"
    message = "Invalid authentication token"


class ServerMisconfiguredError(WebhookAuthError):
    """The server has no secret to compare against (operator error)."""

    kind = "ServerMisconfigured"
    status_code = 500
    message = "Server configuration error"


def verify_bearer(authorization: str | None, secret: str | None) -> None:
    """Check an Authorization header against the shared secret.

    Args:
        authorization: Raw Authorization header value.
        secret: The configured webhook secret.

    Raises:
        MissingAuthError: No header.
        InvalidAuthTypeError: Scheme is not Bearer.
        ServerMisconfiguredError: No secret configured.
        InvalidTokenError: Token does not match.
    """
    if not authorization:
        raise MissingAuthError()

    scheme, _, token = authorization.partition(" ")
    if scheme != "Bearer":
        raise InvalidAuthTypeError()

    if not secret:
        raise ServerMisconfiguredError()

    if not hmac.compare_digest(token.encode(), secret.encode()):
        raise InvalidTokenError()
