"""Shared fixtures: an in-memory DocumentStore and an API client bound to it."""

from __future__ import annotations

import copy
import uuid

import pytest
from httpx import ASGITransport, AsyncClient

from config import Settings
from errors import StorageFailure
from main import create_app, get_store
from storage import PROJECTS, TASKS, DocumentStore


class MemoryStore(DocumentStore):
    def __init__(self) -> None:
        self.collections: dict[str, dict[str, dict]] = {TASKS: {}, PROJECTS: {}}

    def insert(self, collection, document):
        doc = copy.deepcopy(document)
        doc["id"] = uuid.uuid4().hex
        self.collections[collection][doc["id"]] = doc
        return copy.deepcopy(doc)

    def get(self, collection, doc_id):
        doc = self.collections[collection].get(doc_id)
        return copy.deepcopy(doc) if doc is not None else None

    def find(self, collection, *, equals=None, ids=None, like=None, contains=None,
             between=None, order_by=None):
        docs = [copy.deepcopy(d) for d in self.collections[collection].values()]
        for key, value in (equals or {}).items():
            docs = [d for d in docs if d.get(key) == value]
        if ids is not None:
            docs = [d for d in docs if d["id"] in ids]
        if like:
            key, text = like
            docs = [d for d in docs if text.lower() in (d.get(key) or "").lower()]
        if contains:
            key, value = contains
            docs = [d for d in docs if value in (d.get(key) or [])]
        if between:
            key, start, end = between
            docs = [d for d in docs if d.get(key) is not None and start <= d[key] < end]
        if order_by:
            docs.sort(key=lambda d: (d.get(order_by) is not None, d.get(order_by) or 0))
        return docs

    def update(self, collection, doc_id, fields):
        doc = self.collections[collection].get(doc_id)
        if doc is None:
            return None
        doc.update(copy.deepcopy(fields))
        return copy.deepcopy(doc)

    def delete(self, collection, doc_id):
        return self.collections[collection].pop(doc_id, None) is not None


class LinkFailingStore(MemoryStore):
    """Fails when adding to a set, i.e. after the old membership is gone."""

    def add_to_set(self, collection, doc_id, field, value):
        raise StorageFailure("connection reset")


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def failing_store() -> LinkFailingStore:
    return LinkFailingStore()


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
def app(store: MemoryStore):
    app = create_app(Settings())
    app.dependency_overrides[get_store] = lambda: store
    return app


@pytest.fixture
async def client(app):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
