"""
Error types raised by the view actions.

Every error carries a ``payload`` that is plain JSON data: a message string
for validation and credential problems, a dict for document store failures.
Payloads are what callers (and the action server) hand back to the invoker.
"""
import json
import logging
from typing import Any, Dict, Mapping, Optional, Union

logger = logging.getLogger(__name__)

# Fields copied from a store error body (CouchDB answers {"error", "reason"})
_STORE_BODY_FIELDS = ("error", "reason", "id", "rev")


class ActionError(Exception):
    """Base error for a rejected action invocation."""

    def __init__(self, payload: Union[str, Dict[str, Any]]):
        self.payload = payload
        message = payload if isinstance(payload, str) else payload.get("message", "")
        super().__init__(message)


class ValidationError(ActionError):
    """A required request field is missing or params could not be parsed."""


class CredentialError(ActionError):
    """Connection parameters are missing or incomplete."""


class StoreError(ActionError):
    """The document store rejected a fetch or a write."""

    @property
    def status_code(self) -> Optional[int]:
        return self.payload.get("statusCode")

    @classmethod
    def from_response(cls, status_code: int, body: Any) -> "StoreError":
        """Build from an HTTP status and the (decoded) response body."""
        payload: Dict[str, Any] = {"name": cls.__name__}
        if isinstance(body, Mapping):
            for field in _STORE_BODY_FIELDS:
                if body.get(field) is not None:
                    payload[field] = body[field]
        payload["message"] = payload.get("reason") or payload.get("error") or f"HTTP {status_code}"
        payload["statusCode"] = status_code
        return cls(payload)

    @classmethod
    def from_exception(cls, exc: Any) -> "StoreError":
        """Wrap any collaborator error into a plain, serializable StoreError."""
        if isinstance(exc, StoreError):
            return exc
        payload = to_plain_error(exc)
        status_code = extract_status_code(exc)
        if status_code is not None:
            payload["statusCode"] = status_code
        return cls(payload)


def _field(source: Any, name: str) -> Any:
    if isinstance(source, Mapping):
        return source.get(name)
    return getattr(source, name, None)


def extract_status_code(error: Any) -> Optional[int]:
    """
    Extract a status code from either of the two shapes store errors come in.

    Looks for ``statusCode``/``status_code`` on the error itself first, then on
    ``error.response``. Works for exception objects and plain mappings.
    """
    for source in (error, _field(error, "response")):
        if source is None:
            continue
        for name in ("statusCode", "status_code"):
            value = _field(source, name)
            if value:
                try:
                    return int(value)
                except (TypeError, ValueError):
                    logger.debug(f"Ignoring non-numeric status code {value!r}")
    return None


def to_plain_error(error: Any) -> Dict[str, Any]:
    """
    Reduce an error to JSON-safe data.

    Only scalar attributes survive; nested objects, responses and tracebacks
    are dropped so the result can cross a serialization boundary intact.
    """
    if isinstance(error, Mapping):
        source = dict(error)
        payload = {"name": str(source.pop("name", "StoreError"))}
    else:
        source = dict(vars(error)) if hasattr(error, "__dict__") else {}
        payload = {"name": type(error).__name__, "message": str(error)}

    for key, value in source.items():
        if key.startswith("_") or key == "response":
            continue
        if isinstance(value, (str, int, float, bool)) or value is None:
            payload.setdefault(key, value)
    if isinstance(error, BaseException) and not payload.get("message"):
        payload["message"] = " ".join(str(arg) for arg in error.args)
    payload.setdefault("message", "")

    # Round-trip through JSON to guarantee a serializable payload
    return json.loads(json.dumps(payload, default=str))
