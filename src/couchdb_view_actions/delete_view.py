"""
Delete a view from a design document.

Message fields:
    dbname, docid, viewname   required
    params                    optional write options (dict or JSON string)
    url | host, port, protocol, username, password, iamApiKey, iamUrl, __bx_creds
                              connection parameters, see core.credentials
"""
import json
import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Mapping, Optional

from .core.credentials import ConnectionAuth, resolve_auth
from .core.errors import ActionError, StoreError, ValidationError
from .dal import Database, StoreClient, create_client

logger = logging.getLogger(__name__)

DESIGN_PREFIX = "_design/"

PARAMS_NOT_JSON = "params field cannot be parsed. Ensure it is valid JSON."


@dataclass
class DeleteViewRequest:
    db_name: str
    doc_id: str
    view_name: str
    params: Dict[str, Any] = field(default_factory=dict)


def parse_params(raw: Any) -> Dict[str, Any]:
    """Accept params as a mapping or a JSON-encoded object; anything else is empty."""
    if isinstance(raw, Mapping):
        return dict(raw)
    if isinstance(raw, str):
        try:
            params = json.loads(raw)
        except json.JSONDecodeError:
            raise ValidationError(PARAMS_NOT_JSON)
        if not isinstance(params, dict):
            raise ValidationError(PARAMS_NOT_JSON)
        return params
    return {}


def validate_request(message: Mapping[str, Any]) -> DeleteViewRequest:
    """
    Check the required fields of a message before anything touches the store.

    Raises:
        ValidationError: with the message for the first missing or non-string field
    """
    for name in ("dbname", "docid", "viewname"):
        if not message.get(name):
            raise ValidationError(f"{name} is required.")
        if not isinstance(message[name], str):
            raise ValidationError(f"{name} must be a string.")

    return DeleteViewRequest(
        db_name=message["dbname"],
        doc_id=message["docid"],
        view_name=message["viewname"],
        params=parse_params(message.get("params")),
    )


def design_doc_id(doc_id: str) -> str:
    """Prefix ``_design/`` unless the id already carries it."""
    if doc_id.startswith(DESIGN_PREFIX):
        return doc_id
    return DESIGN_PREFIX + doc_id


async def delete_view(db: Database, doc_id: str, view_name: str, params: Dict[str, Any]) -> Dict[str, Any]:
    """
    Remove ``view_name`` from a design document and write the document back.

    The fetched document is written back as-is apart from the removed view, so
    its ``_rev`` satisfies the store's revision check. A view that does not
    exist still results in a write.

    Returns:
        The store's write acknowledgment (ok, id, rev)

    Raises:
        StoreError: fetch or write failed; a failed fetch means no write
    """
    doc_id = design_doc_id(doc_id)

    try:
        document = await db.get(doc_id)
    except Exception as e:
        error = StoreError.from_exception(e)
        logger.error(f"[DeleteView] Got error fetching {doc_id}: {error.payload}")
        raise error from None

    views = document.get("views")
    if isinstance(views, dict):
        if views.pop(view_name, None) is None:
            logger.info(f"[DeleteView] View '{view_name}' not present in {doc_id}")
    else:
        logger.info(f"[DeleteView] {doc_id} has no views")

    try:
        result = await db.insert(document, params)
    except Exception as e:
        error = StoreError.from_exception(e)
        logger.error(f"[DeleteView] Error writing {doc_id}: {error.payload}")
        raise error from None

    logger.info(f"[DeleteView] ✓ Removed view '{view_name}' from {doc_id} (rev {result.get('rev')})")
    return result


ClientFactory = Callable[[ConnectionAuth], StoreClient]


async def run(message: Mapping[str, Any], client_factory: Optional[ClientFactory] = None) -> Dict[str, Any]:
    """
    Validate the message, connect and delete the view.

    Raises:
        ActionError: ValidationError / CredentialError (string payload) or
            StoreError (plain dict payload)
    """
    request = validate_request(message)
    auth = resolve_auth(message)
    client_factory = client_factory or create_client

    async with client_factory(auth) as client:
        return await delete_view(client.use(request.db_name), request.doc_id, request.view_name, request.params)


def main(message: Dict[str, Any]) -> Dict[str, Any]:
    """Synchronous action entry point; failures come back as ``{"error": payload}``."""
    try:
        return asyncio.run(run(message))
    except ActionError as e:
        logger.warning(f"[DeleteView] Rejected: {e.payload}")
        return {"error": e.payload}
