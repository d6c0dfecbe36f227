"""
Document store gateway over MongoDB.

Documents are addressed by a collection path and a key. Collection paths are
hierarchical (``artifacts/<app_id>/public/data/<name>``) and are stored as a
single dotted MongoDB collection name; the key is the document ``_id``.

Writes support two server-side markers:
- ``Increment(n)``: atomic add, applied with ``$inc``
- ``ServerTimestamp()``: the store's clock, applied with ``$currentDate``
"""

import logging
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional

from pymongo import MongoClient
from pymongo.database import Database
from pymongo.errors import PyMongoError

logger = logging.getLogger(__name__)


class TransientStoreError(Exception):
    """A store read or write failed; the caller may retry later."""


class Increment:
    """Field marker: add ``amount`` to the stored value on the server."""

    def __init__(self, amount: int = 1):
        self.amount = amount

    def __repr__(self) -> str:
        return f"Increment({self.amount})"


class ServerTimestamp:
    """Field marker: set the field to the store's current time."""

    def __repr__(self) -> str:
        return "ServerTimestamp()"


def collection_path(app_id: str, name: str) -> str:
    """Public, tenant-scoped collection path for ``name``."""
    return "/".join(("artifacts", app_id, "public", "data", name))


def _collection_name(path: str) -> str:
    return path.strip("/").replace("/", ".")


@contextmanager
def _store_errors(action: str, path: str) -> Iterator[None]:
    try:
        yield
    except PyMongoError as e:
        raise TransientStoreError(f"{action} {path} failed: {e}") from e


def _strip_id(doc: Dict[str, Any]) -> Dict[str, Any]:
    doc = dict(doc)
    doc.pop("_id", None)
    return doc


class DocumentStore:
    """Thin read/write contract over a MongoDB database."""

    def __init__(self, db: Database):
        self.db = db

    @property
    def name(self) -> str:
        return self.db.name

    def _collection(self, path: str):
        return self.db[_collection_name(path)]

    def get(self, path: str, key: str) -> Optional[Dict[str, Any]]:
        """Return the document fields, or None when absent."""
        with _store_errors("get", f"{path}/{key}"):
            doc = self._collection(path).find_one({"_id": key})
        return _strip_id(doc) if doc is not None else None

    def set(self, path: str, key: str, fields: Dict[str, Any], merge: bool = False) -> None:
        """
        Write one document.

        With ``merge=True`` fields are upserted individually and the
        ``Increment`` / ``ServerTimestamp`` markers are resolved by the server.
        Without merge the document is replaced as a whole; markers are not
        accepted there.
        """
        plain: Dict[str, Any] = {}
        increments: Dict[str, int] = {}
        timestamps: Dict[str, bool] = {}
        for field, value in fields.items():
            if field == "_id":
                continue
            if isinstance(value, Increment):
                increments[field] = value.amount
            elif isinstance(value, ServerTimestamp):
                timestamps[field] = True
            else:
                plain[field] = value

        if not merge:
            if increments or timestamps:
                raise ValueError("Increment and ServerTimestamp require merge=True")
            with _store_errors("set", f"{path}/{key}"):
                self._collection(path).replace_one({"_id": key}, plain, upsert=True)
            return

        update: Dict[str, Any] = {}
        if plain:
            update["$set"] = plain
        if increments:
            update["$inc"] = increments
        if timestamps:
            update["$currentDate"] = timestamps
        if not update:
            return
        with _store_errors("merge", f"{path}/{key}"):
            self._collection(path).update_one({"_id": key}, update, upsert=True)

    def list_all(self, path: str) -> List[Dict[str, Any]]:
        """Every document in the collection, in store-native order."""
        with _store_errors("list", path):
            docs = list(self._collection(path).find({}))
        return [_strip_id(d) for d in docs]

    def list_collection_names(self) -> List[str]:
        with _store_errors("list collections", self.name):
            return self.db.list_collection_names()


def connect(database_url: str, database_name: str) -> DocumentStore:
    """Open the process-wide store client. Called once at startup."""
    client = MongoClient(database_url, serverSelectionTimeoutMS=3000, connectTimeoutMS=3000)
    logger.info("Document store configured (database=%s)", database_name)
    return DocumentStore(client[database_name])
