"""SupabaseStore against a mocked query builder, plus the shared set helpers."""

from __future__ import annotations

from datetime import datetime, timezone
from unittest.mock import MagicMock

import httpx
import pytest
from postgrest.exceptions import APIError

from config import Settings
from errors import NotFound, StorageFailure
from storage import PROJECTS, TASKS, SupabaseStore


@pytest.fixture
def client() -> MagicMock:
    return MagicMock()


def _result(query: MagicMock, rows) -> None:
    query.execute.return_value.data = rows


class TestSupabaseStore:
    def test_get_uses_configured_table(self, client) -> None:
        store = SupabaseStore(client, {TASKS: "todo_tasks"})
        select = client.table.return_value.select.return_value
        _result(select.eq.return_value.limit.return_value, [{"id": "1", "name": "a"}])

        assert store.get(TASKS, "1") == {"id": "1", "name": "a"}
        client.table.assert_called_with("todo_tasks")
        select.eq.assert_called_with("id", "1")

    def test_get_missing(self, client) -> None:
        store = SupabaseStore(client)
        _result(client.table.return_value.select.return_value.eq.return_value.limit.return_value, [])
        assert store.get(PROJECTS, "1") is None
        client.table.assert_called_with("projects")

    def test_insert_encodes_dates(self, client) -> None:
        store = SupabaseStore(client)
        table = client.table.return_value
        _result(table.insert.return_value, [{"id": "new", "name": "a"}])

        created = store.insert(TASKS, {"name": "a", "dueDate": datetime(2024, 5, 1, tzinfo=timezone.utc)})

        assert created["id"] == "new"
        sent = table.insert.call_args.args[0]
        assert sent == {"name": "a", "dueDate": "2024-05-01T00:00:00+00:00"}

    def test_update_and_delete_report_missing_rows(self, client) -> None:
        store = SupabaseStore(client)
        table = client.table.return_value
        _result(table.update.return_value.eq.return_value, [])
        _result(table.delete.return_value.eq.return_value, [])

        assert store.update(TASKS, "x", {"name": "b"}) is None
        assert store.delete(TASKS, "x") is False

    def test_find_builds_filters(self, client) -> None:
        store = SupabaseStore(client)
        query = client.table.return_value.select.return_value
        for method in ("ilike", "contains", "order"):
            getattr(query, method).return_value = query
        _result(query, [])

        store.find(PROJECTS, like=("name", "web"), contains=("tasks", "t1"), order_by="dueDate")

        query.ilike.assert_called_with("name", "%web%")
        query.contains.assert_called_with("tasks", ["t1"])
        query.order.assert_called_with("dueDate", desc=False, nullsfirst=True)

    def test_find_with_no_ids_skips_request(self, client) -> None:
        store = SupabaseStore(client)
        assert store.find(TASKS, ids=[]) == []
        client.table.return_value.select.return_value.execute.assert_not_called()

    @pytest.mark.parametrize("error", [
        APIError({"message": "boom", "code": "500", "hint": None, "details": None}),
        httpx.ConnectError("connection refused"),
    ])
    def test_failures_become_storage_failure(self, client, error) -> None:
        store = SupabaseStore(client)
        client.table.return_value.select.return_value.execute.side_effect = error
        with pytest.raises(StorageFailure):
            store.find(TASKS)

    def test_from_settings_requires_credentials(self) -> None:
        with pytest.raises(StorageFailure):
            SupabaseStore.from_settings(Settings())


class TestSetHelpers:
    def test_add_to_set_skips_existing(self, store) -> None:
        project = store.insert(PROJECTS, {"name": "P", "tasks": ["t1"]})
        store.add_to_set(PROJECTS, project["id"], "tasks", "t1")
        store.add_to_set(PROJECTS, project["id"], "tasks", "t2")
        assert store.get(PROJECTS, project["id"])["tasks"] == ["t1", "t2"]

    def test_add_to_set_missing_document(self, store) -> None:
        with pytest.raises(NotFound):
            store.add_to_set(PROJECTS, "nope", "tasks", "t1")

    def test_pull_everywhere(self, store) -> None:
        a = store.insert(PROJECTS, {"name": "A", "tasks": ["t1", "t2"]})
        b = store.insert(PROJECTS, {"name": "B", "tasks": ["t1"]})
        c = store.insert(PROJECTS, {"name": "C", "tasks": ["t3"]})

        assert store.pull_everywhere(PROJECTS, "tasks", "t1") == 2
        assert store.get(PROJECTS, a["id"])["tasks"] == ["t2"]
        assert store.get(PROJECTS, b["id"])["tasks"] == []
        assert store.get(PROJECTS, c["id"])["tasks"] == ["t3"]


class TestSupabaseSetFunctions:
    def test_add_to_set_is_one_rpc_call(self, client) -> None:
        store = SupabaseStore(client)
        _result(client.rpc.return_value, True)

        store.add_to_set(PROJECTS, "p1", "tasks", "t1")

        client.rpc.assert_called_once_with("add_project_task", {"doc_id": "p1", "member": "t1"})
        client.table.assert_not_called()

    def test_add_to_set_missing_project(self, client) -> None:
        store = SupabaseStore(client)
        _result(client.rpc.return_value, False)
        with pytest.raises(NotFound):
            store.add_to_set(PROJECTS, "nope", "tasks", "t1")

    def test_pull_everywhere_is_one_rpc_call(self, client) -> None:
        store = SupabaseStore(client)
        _result(client.rpc.return_value, 2)

        assert store.pull_everywhere(PROJECTS, "tasks", "t1") == 2
        client.rpc.assert_called_once_with("pull_project_task", {"member": "t1"})
        client.table.assert_not_called()

    def test_rpc_failure_becomes_storage_failure(self, client) -> None:
        store = SupabaseStore(client)
        client.rpc.return_value.execute.side_effect = httpx.ReadTimeout("timed out")
        with pytest.raises(StorageFailure):
            store.pull_everywhere(PROJECTS, "tasks", "t1")

    def test_unsupported_field(self, client) -> None:
        store = SupabaseStore(client)
        with pytest.raises(ValueError):
            store.add_to_set(TASKS, "t1", "labels", "x")
