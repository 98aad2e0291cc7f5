"""CouchDB / Cloudant design document view actions."""
from .delete_view import run

__all__ = ["run"]
