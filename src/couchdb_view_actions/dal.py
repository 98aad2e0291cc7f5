"""
Document store Data Access Layer (DAL) with Memory Fallback

Provides the document store client used by the view actions:
- CouchBackend: real HTTP access to CouchDB / Cloudant through httpx
- MemoryBackend: in-memory emulation for test isolation

Both backends raise StoreError with a normalized statusCode on failure.
Auto-detects test environment and switches to memory backend for unit tests.
"""

import os
import sys
import copy
import json
import uuid
import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Dict, Optional, Any
from urllib.parse import quote, unquote, urlsplit, urlunsplit

import httpx

from .core.config import Config
from .core.credentials import BasicAuth, ConnectionAuth, IamAuth, UrlAuth
from .core.errors import StoreError
from .core.iam import IamTokenAuth

logger = logging.getLogger(__name__)

# Document id prefixes whose slash is part of the path, not of the id
_RESERVED_PREFIXES = ("_design/", "_local/")


def _is_test_env() -> bool:
    """Auto-detect if we're running in a test environment."""
    return "pytest" in sys.modules or os.getenv("DAL_BACKEND") == "memory"


def document_path(db_name: str, doc_id: str) -> str:
    """URL path for a document, e.g. ``/mydb/_design/myview``."""
    db_segment = quote(db_name, safe="")
    for prefix in _RESERVED_PREFIXES:
        if doc_id.startswith(prefix):
            return f"/{db_segment}/{prefix}{quote(doc_id[len(prefix):], safe='')}"
    return f"/{db_segment}/{quote(doc_id, safe='')}"


def encode_query_params(params: Optional[Dict[str, Any]]) -> Dict[str, str]:
    """Render write options as CouchDB query string values."""
    encoded = {}
    for key, value in (params or {}).items():
        if value is None:
            continue
        if isinstance(value, bool):
            encoded[key] = "true" if value else "false"
        elif isinstance(value, (dict, list)):
            encoded[key] = json.dumps(value)
        else:
            encoded[key] = str(value)
    return encoded


class BaseBackend(ABC):
    """Abstract base class for DAL backends."""

    @abstractmethod
    async def get_document(self, db_name: str, doc_id: str) -> Dict[str, Any]:
        """
        Fetch a document.

        Args:
            db_name: Database name
            doc_id: Full document id (e.g., "_design/myview")

        Returns:
            The document as stored, including _id and _rev

        Raises:
            StoreError: the document could not be fetched
        """

    @abstractmethod
    async def insert_document(self, db_name: str, doc: Dict[str, Any], params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """
        Create or overwrite a document.

        Args:
            db_name: Database name
            doc: Document body; an existing doc must carry its current _rev
            params: Write options forwarded as query parameters

        Returns:
            Write acknowledgment: {"ok": True, "id": ..., "rev": ...}

        Raises:
            StoreError: the write was rejected
        """

    async def close(self):
        """Release backend resources."""


class MemoryBackend(BaseBackend):
    """In-memory CouchDB emulator for testing."""

    def __init__(self):
        self._dbs: Dict[str, Dict[str, Dict]] = {}
        self._lock = asyncio.Lock()

    def _next_rev(self, current: Optional[str]) -> str:
        generation = int(current.split("-", 1)[0]) if current else 0
        return f"{generation + 1}-{uuid.uuid4().hex}"

    def documents(self, db_name: str) -> Dict[str, Dict]:
        """Stored documents of a database (test inspection helper)."""
        return self._dbs.setdefault(db_name, {})

    async def get_document(self, db_name: str, doc_id: str) -> Dict[str, Any]:
        async with self._lock:
            docs = self.documents(db_name)
            if doc_id not in docs:
                logger.info(f"MemoryBackend GET: {db_name}/{doc_id} not found")
                raise StoreError.from_response(404, {"error": "not_found", "reason": "missing"})
            return copy.deepcopy(docs[doc_id])

    async def insert_document(self, db_name: str, doc: Dict[str, Any], params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        async with self._lock:
            docs = self.documents(db_name)
            doc = copy.deepcopy(doc)
            doc_id = doc.setdefault("_id", uuid.uuid4().hex)

            current = docs.get(doc_id)
            current_rev = current.get("_rev") if current else None
            if doc.get("_rev") != current_rev:
                logger.info(f"MemoryBackend PUT: conflict on {db_name}/{doc_id} (rev {doc.get('_rev')} != {current_rev})")
                raise StoreError.from_response(409, {"error": "conflict", "reason": "Document update conflict."})

            doc["_rev"] = self._next_rev(current_rev)
            docs[doc_id] = doc
            logger.info(f"MemoryBackend PUT: stored doc {doc_id}, total docs: {len(docs)}")
            return {"ok": True, "id": doc_id, "rev": doc["_rev"]}


class CouchBackend(BaseBackend):
    """Real CouchDB / Cloudant HTTP backend."""

    def __init__(self, base_url: str, auth: Optional[httpx.Auth] = None, timeout: float = 30.0,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        self.base_url = base_url.rstrip('/')
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            auth=auth,
            timeout=timeout,
            transport=transport,
            headers={"Accept": "application/json"},
        )

    async def _request(self, method: str, path: str, **kwargs) -> Dict[str, Any]:
        try:
            response = await self._client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            logger.error(f"Document store connection error on {method} {path}: {e}")
            raise StoreError.from_exception(e) from e

        try:
            body = response.json() if response.content else {}
        except json.JSONDecodeError:
            body = {}

        if response.is_error:
            logger.warning(f"Document store {method} {path} failed: {response.status_code} {body}")
            raise StoreError.from_response(response.status_code, body)

        return body or {"ok": True}

    async def get_document(self, db_name: str, doc_id: str) -> Dict[str, Any]:
        return await self._request("GET", document_path(db_name, doc_id))

    async def insert_document(self, db_name: str, doc: Dict[str, Any], params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        query = encode_query_params(params)
        if doc.get("_id"):
            return await self._request("PUT", document_path(db_name, doc["_id"]), json=doc, params=query)
        return await self._request("POST", f"/{quote(db_name, safe='')}", json=doc, params=query)

    async def close(self):
        """Close the async client."""
        await self._client.aclose()


class Database:
    """Handle on one database of a StoreClient."""

    def __init__(self, name: str, backend: BaseBackend):
        self.name = name
        self.backend = backend

    async def get(self, doc_id: str) -> Dict[str, Any]:
        return await self.backend.get_document(self.name, doc_id)

    async def insert(self, doc: Dict[str, Any], params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        return await self.backend.insert_document(self.name, doc, params)


class StoreClient:
    """Connected document store client; ``use()`` selects a database."""

    def __init__(self, backend: BaseBackend, base_url: Optional[str] = None):
        self.backend = backend
        self.base_url = base_url

    def use(self, db_name: str) -> Database:
        return Database(db_name, self.backend)

    async def close(self):
        await self.backend.close()

    async def __aenter__(self) -> "StoreClient":
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()


def _split_userinfo(url: str):
    """Move user:password out of a URL into an httpx BasicAuth."""
    parts = urlsplit(url)
    if not parts.username:
        return url, None
    netloc = parts.hostname or ""
    if parts.port:
        netloc += f":{parts.port}"
    auth = httpx.BasicAuth(unquote(parts.username), unquote(parts.password or ""))
    return urlunsplit((parts.scheme, netloc, parts.path, parts.query, parts.fragment)), auth


def build_http_auth(auth: ConnectionAuth):
    """Return (base_url, httpx auth) for a resolved authentication mode."""
    if isinstance(auth, UrlAuth):
        return _split_userinfo(auth.url)
    if isinstance(auth, IamAuth):
        return auth.base_url, IamTokenAuth(auth.api_key, auth.token_url)
    if isinstance(auth, BasicAuth):
        return auth.base_url, httpx.BasicAuth(auth.username, auth.password)
    raise ValueError(f"Unknown authentication mode: {auth!r}")


def create_client(auth: ConnectionAuth, backend: Optional[str] = None, **kwargs) -> StoreClient:
    """
    Create a StoreClient for a resolved authentication mode.

    Args:
        auth: Result of ``resolve_auth``
        backend: 'couch', 'memory', or None for auto-detection
        **kwargs: CouchBackend options (timeout, transport)
    """
    if backend is None:
        backend = "memory" if _is_test_env() else "couch"

    base_url, http_auth = build_http_auth(auth)

    if backend == "memory":
        return StoreClient(MemoryBackend(), base_url=base_url)
    elif backend == "couch":
        timeout = kwargs.get("timeout", Config.STORE_TIMEOUT_SECONDS)
        transport = kwargs.get("transport")
        logger.debug(f"Connecting to document store at {base_url} ({type(auth).__name__})")
        return StoreClient(CouchBackend(base_url, http_auth, timeout, transport), base_url=base_url)
    else:
        raise ValueError(f"Unknown backend: {backend}")
