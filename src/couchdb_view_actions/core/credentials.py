"""
Connection parameter resolution.

Turns the authentication fields of an action message into exactly one
authentication mode. Nothing here touches the network; the result is consumed
by ``create_client`` in the DAL.

Precedence:
    1. explicit ``url`` (without ``iamApiKey``)  -> UrlAuth
    2. ``iamApiKey``                            -> IamAuth
    3. ``username`` + ``password``              -> BasicAuth

A legacy ``__bx_creds`` binding may fill in missing host/credential fields
before modes 2 and 3 are considered.
"""
import logging
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Union

from .config import Config
from .errors import CredentialError

logger = logging.getLogger(__name__)

HOST_REQUIRED = "Cloudant account host is required."
AUTH_REQUIRED = "You must specify parameter/s of iamApiKey or username/password"

_BX_CREDS_KEYS = ("cloudantnosqldb", "cloudantNoSQLDB")


@dataclass(frozen=True)
class UrlAuth:
    """Full account URL, possibly carrying user:password in its userinfo."""
    url: str

    @property
    def base_url(self) -> str:
        return self.url


@dataclass(frozen=True)
class IamAuth:
    """Bearer tokens obtained by exchanging an IAM API key."""
    base_url: str
    api_key: str
    token_url: str

    def __repr__(self) -> str:
        return f"IamAuth(base_url={self.base_url!r}, token_url={self.token_url!r})"


@dataclass(frozen=True)
class BasicAuth:
    """HTTP basic authentication against the account host."""
    base_url: str
    username: str
    password: str

    def __repr__(self) -> str:
        return f"BasicAuth(base_url={self.base_url!r}, username={self.username!r})"


ConnectionAuth = Union[UrlAuth, IamAuth, BasicAuth]


def _bx_creds(params: Mapping[str, Any]) -> Optional[Mapping[str, Any]]:
    bx_creds = params.get("__bx_creds")
    if not isinstance(bx_creds, Mapping):
        return None
    for key in _BX_CREDS_KEYS:
        if bx_creds.get(key):
            return bx_creds[key]
    return None


def apply_bx_creds(params: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Return a copy of ``params`` with missing fields taken from ``__bx_creds``.

    The binding only fills gaps; fields already present on the message win.
    """
    merged = dict(params)
    creds = _bx_creds(params)
    if creds is None:
        return merged

    if not merged.get("host"):
        merged["host"] = creds.get("host") or f"{creds.get('username')}.cloudant.com"

    if not merged.get("iamApiKey") and not creds.get("apikey"):
        if not merged.get("username"):
            merged["username"] = creds.get("username")
        if not merged.get("password"):
            merged["password"] = creds.get("password")
    elif not merged.get("iamApiKey"):
        merged["iamApiKey"] = creds["apikey"]

    logger.debug("Applied __bx_creds binding to connection parameters")
    return merged


def build_base_url(params: Mapping[str, Any]) -> str:
    """``{protocol}://{host}[:{port}]`` with https as the default protocol."""
    protocol = params.get("protocol") or "https"
    url = f"{protocol}://{params['host']}"
    if params.get("port"):
        url += f":{params['port']}"
    return url


def resolve_auth(params: Mapping[str, Any]) -> ConnectionAuth:
    """
    Resolve connection parameters into a single authentication mode.

    Raises:
        CredentialError: host or credentials are missing
    """
    if not params.get("iamApiKey") and params.get("url"):
        return UrlAuth(url=params["url"])

    params = apply_bx_creds(params)

    if not params.get("host"):
        raise CredentialError(HOST_REQUIRED)

    if not params.get("iamApiKey"):
        if not params.get("username") or not params.get("password"):
            raise CredentialError(AUTH_REQUIRED)

    base_url = build_base_url(params)
    if params.get("iamApiKey"):
        return IamAuth(
            base_url=base_url,
            api_key=params["iamApiKey"],
            token_url=params.get("iamUrl") or Config.IAM_TOKEN_URL,
        )
    return BasicAuth(base_url=base_url, username=params["username"], password=params["password"])
