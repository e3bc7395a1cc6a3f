"""Error taxonomy for the render studio

Remote failures are classified by signature (HTTP code or message text) rather
than by exception class, because the same overload can surface from the
google-genai SDK, from aiohttp during asset download, or as a plain message.
"""

from typing import Optional


TRANSIENT_CODES = (429, 503)
TRANSIENT_SIGNATURES = ("overloaded", "UNAVAILABLE", "RESOURCE_EXHAUSTED")

AUTHORIZATION_CODES = (401, 403)
AUTHORIZATION_SIGNATURES = (
    "PERMISSION_DENIED",
    "Permission denied",
    "API key not valid",
    "API_KEY environment variable is not set",
)

PERMISSION_DENIED_MESSAGE = "Permission Denied. Please select a valid API Key."
MISSING_KEY_MESSAGE = "API Configuration Error: API Key missing. Please select one."


class StudioError(Exception):
    """Base class for all render studio errors"""


class InputError(StudioError):
    """Generation request rejected before any job was created"""


class BusyError(InputError):
    """Another generation job is still in flight"""


class CredentialRequiredError(InputError):
    """The session has no valid credential; re-authorization is required"""


class ImageDecodeError(StudioError):
    """Image bytes could not be decoded"""


class AuthorizationError(StudioError):
    """Remote call rejected for missing or invalid credentials"""


class TransientRemoteError(StudioError):
    """Remote service stayed overloaded after every retry"""


class EmptyResultError(StudioError):
    """Remote call succeeded but returned no usable asset"""


class RemoteJobError(StudioError):
    """Long-running remote job finished with an error payload"""


class PollTimeoutError(StudioError):
    """Long-running remote job did not finish in time"""


def error_code(exc: BaseException) -> Optional[int]:
    """Extract an HTTP status code from SDK or HTTP client exceptions."""
    for attr in ("code", "status"):
        value = getattr(exc, attr, None)
        if isinstance(value, int):
            return value
    return None


def is_transient_error(exc: BaseException) -> bool:
    """True for overload / rate-limit failures that are worth retrying."""
    if isinstance(exc, TransientRemoteError):
        return True
    if error_code(exc) in TRANSIENT_CODES:
        return True
    message = str(exc)
    return any(signature in message for signature in TRANSIENT_SIGNATURES)


def is_authorization_error(exc: BaseException) -> bool:
    if isinstance(exc, AuthorizationError):
        return True
    if error_code(exc) in AUTHORIZATION_CODES:
        return True
    message = str(exc)
    return any(signature in message for signature in AUTHORIZATION_SIGNATURES)


def authorization_message(exc: BaseException) -> str:
    """User-facing message for an authorization failure."""
    if "API_KEY environment variable is not set" in str(exc):
        return MISSING_KEY_MESSAGE
    return PERMISSION_DENIED_MESSAGE


class AssetDownloadError(StudioError):
    """Result asset download answered with a non-success HTTP status"""

    def __init__(self, message: str, code: Optional[int] = None):
        super().__init__(message)
        self.code = code
