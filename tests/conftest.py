"""Shared fixtures for the index duplicator test suite."""

from __future__ import annotations

import copy
from typing import Any
from urllib.parse import unquote

import pytest

from index_duplicator.clients.cluster import ClusterResponse

# ---------------------------------------------------------------------------
# In-memory cluster
# ---------------------------------------------------------------------------

STORE_ASSIGNED = ("creation_date", "uuid", "version", "provided_name")


def _error(status: int, type_: str, reason: str) -> ClusterResponse:
    return ClusterResponse(status, {"error": {"type": type_, "reason": reason}, "status": status})


class FakeCluster:
    """Speaks the ``ClusterClient`` contract with Elasticsearch-shaped responses.

    Index creation rejects store-assigned settings the way a real cluster
    does, so unsanitized schemas fail here too.
    """

    base_url = "http://fake-es:9200"

    def __init__(self) -> None:
        self.indices: dict[str, dict[str, Any]] = {}
        self.requests: list[tuple[str, str, Any]] = []
        self.host_status = 200
        self.reindex_failures: list[dict[str, Any]] = []
        self.reindex_status = 200
        self.copy_ratio = 1.0
        self.reject_alias_update = False
        self.acknowledge_alias_update = True
        self.acknowledge_create = True
        self.reindex_timed_out = False
        self.task_error: dict[str, Any] | None = None
        self.task_polls_until_done = 1
        self._tasks: dict[str, dict[str, Any]] = {}

    # -- fixture helpers ------------------------------------------------

    def add_index(
        self,
        name: str,
        *,
        settings: dict[str, Any] | None = None,
        mappings: dict[str, Any] | None = None,
        aliases: list[str] | None = None,
        docs: int = 0,
    ) -> None:
        index_settings = {
            "number_of_shards": "1",
            "number_of_replicas": "1",
            "creation_date": "1696000000000",
            "uuid": f"uuid-{name}",
            "version": {"created": "8130099"},
            "provided_name": name,
        }
        if settings is not None:
            index_settings = settings
        self.indices[name] = {
            "settings": {"index": index_settings},
            "mappings": mappings if mappings is not None else {"properties": {}},
            "aliases": set(aliases or []),
            "docs": docs,
        }

    def alias_holders(self, alias: str) -> set[str]:
        return {name for name, idx in self.indices.items() if alias in idx["aliases"]}

    def calls(self, method: str, path: str | None = None) -> list[tuple[str, str, Any]]:
        return [
            c for c in self.requests
            if c[0] == method and (path is None or c[1] == path)
        ]

    # -- ClusterClient contract -----------------------------------------

    def __enter__(self) -> FakeCluster:
        return self

    def __exit__(self, *exc: Any) -> None:
        pass

    def get(self, path: str, params: dict[str, Any] | None = None) -> ClusterResponse:
        return self._dispatch("GET", path, None, params)

    def head(self, path: str) -> ClusterResponse:
        resp = self._dispatch("HEAD", path, None, None)
        return ClusterResponse(resp.status_code, None)

    def put(self, path: str, body: Any = None) -> ClusterResponse:
        return self._dispatch("PUT", path, body, None)

    def post(
        self,
        path: str,
        body: Any = None,
        params: dict[str, Any] | None = None,
        timeout: float | None = None,
    ) -> ClusterResponse:
        return self._dispatch("POST", path, body, params)

    # -- routing ----------------------------------------------------------

    def _dispatch(self, method: str, path: str, body: Any, params: Any) -> ClusterResponse:
        self.requests.append((method, path, copy.deepcopy(body)))
        parts = [unquote(p) for p in path.strip("/").split("/") if p]

        if not parts:
            if self.host_status != 200:
                return ClusterResponse(self.host_status, "Service Unavailable")
            return ClusterResponse(200, {"version": {"number": "8.13.0"}})

        if parts == ["_reindex"] and method == "POST":
            return self._reindex(body, params or {})
        if parts[0] == "_tasks" and method == "GET":
            return self._task(parts[1])
        if parts[0] == "_alias" and method == "GET":
            return self._get_alias(parts[1])
        if parts == ["_aliases"] and method == "POST":
            return self._update_aliases(body)

        name = parts[0]
        if len(parts) == 2 and parts[1] == "_count":
            target = self._resolve(name)
            if target is None:
                return self._missing(name)
            return ClusterResponse(200, {"count": self.indices[target]["docs"]})
        if len(parts) == 2 and parts[1] == "_refresh":
            return ClusterResponse(200, {"_shards": {"failed": 0}})

        if method in ("GET", "HEAD"):
            return self._describe(name)
        if method == "PUT":
            return self._create(name, body or {})
        return _error(405, "method_not_allowed", f"{method} {path}")

    def _resolve(self, name: str) -> str | None:
        if name in self.indices:
            return name
        holders = self.alias_holders(name)
        if len(holders) == 1:
            return next(iter(holders))
        return None

    @staticmethod
    def _missing(name: str) -> ClusterResponse:
        return _error(404, "index_not_found_exception", f"no such index [{name}]")

    def _describe(self, name: str) -> ClusterResponse:
        target = self._resolve(name)
        if target is None:
            return self._missing(name)
        idx = self.indices[target]
        return ClusterResponse(200, {
            target: {
                "aliases": {a: {} for a in sorted(idx["aliases"])},
                "mappings": copy.deepcopy(idx["mappings"]),
                "settings": copy.deepcopy(idx["settings"]),
            },
        })

    def _create(self, name: str, body: dict[str, Any]) -> ClusterResponse:
        if name in self.indices:
            return _error(
                400, "resource_already_exists_exception",
                f"index [{name}/uuid-{name}] already exists",
            )
        index_settings = body.get("settings", {}).get("index", {})
        for key in STORE_ASSIGNED:
            if key in index_settings or f"index.{key}" in body.get("settings", {}):
                return _error(
                    400, "illegal_argument_exception",
                    f"unknown setting [index.{key}] please check that any required "
                    "plugins are installed",
                )
        for field_def in body.get("mappings", {}).get("properties", {}).values():
            if field_def.get("type") == "not_a_type":
                return _error(
                    400, "mapper_parsing_exception",
                    "No handler for type [not_a_type] declared on field",
                )
        self.add_index(
            name,
            settings=dict(index_settings),
            mappings=body.get("mappings", {}),
        )
        return ClusterResponse(200, {
            "acknowledged": self.acknowledge_create,
            "shards_acknowledged": self.acknowledge_create,
            "index": name,
        })

    def _reindex_outcome(self, body: dict[str, Any]) -> dict[str, Any]:
        source = self.indices[body["source"]["index"]]
        dest = self.indices[body["dest"]["index"]]
        copied = int(source["docs"] * self.copy_ratio) - len(self.reindex_failures)
        dest["docs"] += max(copied, 0)
        return {
            "took": 42,
            "timed_out": self.reindex_timed_out,
            "total": source["docs"],
            "updated": 0,
            "created": max(copied, 0),
            "deleted": 0,
            "batches": 1,
            "version_conflicts": 0,
            "noops": 0,
            "retries": {"bulk": 0, "search": 0},
            "failures": list(self.reindex_failures),
        }

    def _reindex(self, body: dict[str, Any], params: dict[str, Any]) -> ClusterResponse:
        if self.reindex_status != 200:
            return _error(self.reindex_status, "es_rejected_execution_exception", "rejected")
        if body["source"]["index"] not in self.indices:
            return self._missing(body["source"]["index"])
        if params.get("wait_for_completion") == "false":
            task_id = f"node-1:{len(self._tasks) + 1}"
            self._tasks[task_id] = {"body": body, "polls": 0}
            return ClusterResponse(200, {"task": task_id})
        outcome = self._reindex_outcome(body)
        # Document failures raise the status to the highest failure status.
        status = max((f.get("status", 500) for f in self.reindex_failures), default=200)
        return ClusterResponse(status, outcome)

    def _task(self, task_id: str) -> ClusterResponse:
        task = self._tasks.get(task_id)
        if task is None:
            return _error(404, "resource_not_found_exception", f"task [{task_id}] isn't running")
        task["polls"] += 1
        if task["polls"] < self.task_polls_until_done:
            return ClusterResponse(200, {
                "completed": False,
                "task": {"status": {"total": 10, "created": 3, "updated": 0}},
            })
        if self.task_error is not None:
            return ClusterResponse(200, {
                "completed": True,
                "task": {"status": {}},
                "error": self.task_error,
            })
        return ClusterResponse(200, {
            "completed": True,
            "task": {"status": {}},
            "response": self._reindex_outcome(task["body"]),
        })

    def _get_alias(self, alias: str) -> ClusterResponse:
        holders = self.alias_holders(alias)
        if not holders:
            return ClusterResponse(404, {"error": f"alias [{alias}] missing", "status": 404})
        return ClusterResponse(200, {name: {"aliases": {alias: {}}} for name in sorted(holders)})

    def _update_aliases(self, body: dict[str, Any]) -> ClusterResponse:
        if self.reject_alias_update:
            return _error(400, "illegal_argument_exception", "alias update rejected")
        actions = body.get("actions", [])
        # Validate everything first: the update applies all-or-nothing.
        for action in actions:
            (_, spec), = action.items()
            if spec["index"] not in self.indices:
                return self._missing(spec["index"])
        for action in actions:
            (kind, spec), = action.items()
            aliases = self.indices[spec["index"]]["aliases"]
            if kind == "add":
                aliases.add(spec["alias"])
            else:
                aliases.discard(spec["alias"])
        return ClusterResponse(200, {"acknowledged": self.acknowledge_alias_update})


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def cluster() -> FakeCluster:
    return FakeCluster()


@pytest.fixture()
def logs_cluster() -> FakeCluster:
    """``logs_v1`` and ``logs_v0`` both behind the ``logs`` alias."""
    c = FakeCluster()
    c.add_index(
        "logs_v1",
        settings={"number_of_shards": 1, "creation_date": "1696000000000", "uuid": "abc"},
        mappings={"properties": {"message": {"type": "text"}, "ts": {"type": "date"}}},
        aliases=["logs"],
        docs=120,
    )
    c.add_index("logs_v0", aliases=["logs"], docs=80)
    return c
