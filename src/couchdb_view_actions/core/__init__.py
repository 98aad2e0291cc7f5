# Core shared modules for the action entry points and the action server
from .config import Config, setup_logging
from .errors import (
    ActionError,
    ValidationError,
    CredentialError,
    StoreError,
    extract_status_code,
    to_plain_error,
)
from .credentials import (
    UrlAuth,
    IamAuth,
    BasicAuth,
    apply_bx_creds,
    build_base_url,
    resolve_auth,
)
from .iam import IamTokenAuth

__all__ = [
    # Config
    "Config",
    "setup_logging",
    # Errors
    "ActionError",
    "ValidationError",
    "CredentialError",
    "StoreError",
    "extract_status_code",
    "to_plain_error",
    # Credentials
    "UrlAuth",
    "IamAuth",
    "BasicAuth",
    "apply_bx_creds",
    "build_base_url",
    "resolve_auth",
    # IAM
    "IamTokenAuth",
]
