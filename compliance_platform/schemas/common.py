"""Response envelope shared by every JSON endpoint: {success, message?, data?, error?}."""
from typing import Any, Optional


def envelope(data: Any = None, message: Optional[str] = None, **extra: Any) -> dict:
    """Build a success envelope, dropping the message when there is none."""
    body = {"success": True}
    if message is not None:
        body["message"] = message
    body.update(extra)
    body["data"] = data
    return body


def error_envelope(message: str, error: Optional[str] = None, **extra: Any) -> dict:
    body = {"success": False, "message": message}
    if error is not None:
        body["error"] = error
    body.update(extra)
    return body
