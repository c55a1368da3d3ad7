"""Document storage for the `tasks` and `projects` collections.

`DocumentStore` is the narrow read/write surface the rest of the service
talks to: point lookups, simple finds, partial updates and the two
set-membership helpers the assignment routine needs. `SupabaseStore` backs
it with Supabase tables (see schema.sql).
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Tuple

import httpx
from fastapi.encoders import jsonable_encoder
from loguru import logger
from postgrest.exceptions import APIError
from supabase import Client, create_client

from config import Settings
from errors import NotFound, StorageFailure

TASKS = "tasks"
PROJECTS = "projects"

Document = Dict[str, Any]

# Postgres functions from schema.sql that change an array column in one statement
SET_FUNCTIONS = {
    (PROJECTS, "tasks"): {"add": "add_project_task", "pull": "pull_project_task"},
}


class DocumentStore(ABC):

    @abstractmethod
    def insert(self, collection: str, document: Document) -> Document:
        """Insert a document and return it with its store-assigned `id`."""

    @abstractmethod
    def get(self, collection: str, doc_id: str) -> Optional[Document]:
        ...

    @abstractmethod
    def find(
        self,
        collection: str,
        *,
        equals: Optional[Dict[str, Any]] = None,
        ids: Optional[List[str]] = None,
        like: Optional[Tuple[str, str]] = None,
        contains: Optional[Tuple[str, Any]] = None,
        between: Optional[Tuple[str, Any, Any]] = None,
        order_by: Optional[str] = None,
    ) -> List[Document]:
        """Return documents matching every given filter.

        `like` is a case-insensitive substring match on (field, text),
        `contains` matches documents whose array field holds the value and
        `between` is the half-open range (field, start, end). `order_by`
        sorts ascending on the field with empty values first.
        """

    @abstractmethod
    def update(self, collection: str, doc_id: str, fields: Document) -> Optional[Document]:
        """Set `fields` on one document; None when it does not exist."""

    @abstractmethod
    def delete(self, collection: str, doc_id: str) -> bool:
        ...

    def add_to_set(self, collection: str, doc_id: str, field: str, value: Any) -> None:
        """Read-modify-write version; stores with an atomic update override it."""
        doc = self.get(collection, doc_id)
        if doc is None:
            raise NotFound(f"{collection} {doc_id} not found")
        members = list(doc.get(field) or [])
        if value in members:
            return
        members.append(value)
        self.update(collection, doc_id, {field: members})

    def pull_everywhere(self, collection: str, field: str, value: Any) -> int:
        """Remove `value` from `field` on every document holding it."""
        holders = self.find(collection, contains=(field, value))
        for doc in holders:
            remaining = [m for m in doc.get(field) or [] if m != value]
            self.update(collection, doc["id"], {field: remaining})
        return len(holders)


class SupabaseStore(DocumentStore):

    def __init__(self, client: Client, tables: Optional[Dict[str, str]] = None):
        self.client = client
        self.tables = {TASKS: TASKS, PROJECTS: PROJECTS}
        self.tables.update(tables or {})

    @classmethod
    def from_settings(cls, settings: Settings) -> "SupabaseStore":
        if not settings.supabase_url or not settings.supabase_key:
            raise StorageFailure("SUPABASE_URL and SUPABASE_KEY must be set")
        client = create_client(settings.supabase_url, settings.supabase_key)
        return cls(client, {TASKS: settings.tasks_table, PROJECTS: settings.projects_table})

    def _table(self, collection: str):
        return self.client.table(self.tables[collection])

    def _run(self, query) -> List[Document]:
        try:
            return query.execute().data
        except (APIError, httpx.HTTPError) as e:
            logger.error("Supabase request failed: {}", e)
            raise StorageFailure(f"Storage request failed: {e}") from e

    def insert(self, collection, document):
        rows = self._run(self._table(collection).insert(jsonable_encoder(document)))
        return rows[0]

    def get(self, collection, doc_id):
        rows = self._run(self._table(collection).select("*").eq("id", doc_id).limit(1))
        return rows[0] if rows else None

    def find(self, collection, *, equals=None, ids=None, like=None, contains=None,
             between=None, order_by=None):
        query = self._table(collection).select("*")
        for key, value in (equals or {}).items():
            query = query.eq(key, jsonable_encoder(value))
        if ids is not None:
            if not ids:
                return []
            query = query.in_("id", ids)
        if like:
            key, text = like
            query = query.ilike(key, f"%{text}%")
        if contains:
            key, value = contains
            query = query.contains(key, [jsonable_encoder(value)])
        if between:
            key, start, end = between
            query = query.gte(key, jsonable_encoder(start)).lt(key, jsonable_encoder(end))
        if order_by:
            query = query.order(order_by, desc=False, nullsfirst=True)
        return self._run(query)

    def update(self, collection, doc_id, fields):
        rows = self._run(self._table(collection).update(jsonable_encoder(fields)).eq("id", doc_id))
        return rows[0] if rows else None

    def delete(self, collection, doc_id):
        rows = self._run(self._table(collection).delete().eq("id", doc_id))
        return bool(rows)

    def _set_function(self, collection, field, kind):
        try:
            return SET_FUNCTIONS[(collection, field)][kind]
        except KeyError:
            raise ValueError(f"No set function for {collection}.{field}") from None

    def add_to_set(self, collection, doc_id, field, value):
        name = self._set_function(collection, field, "add")
        found = self._run(self.client.rpc(name, {"doc_id": doc_id, "member": jsonable_encoder(value)}))
        if not found:
            raise NotFound(f"{collection} {doc_id} not found")

    def pull_everywhere(self, collection, field, value):
        name = self._set_function(collection, field, "pull")
        return self._run(self.client.rpc(name, {"member": jsonable_encoder(value)})) or 0
