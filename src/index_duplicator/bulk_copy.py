"""Server-side bulk copy via the ``_reindex`` API.

The default is one synchronous request that returns when the copy finishes.
With ``wait_for_completion=False`` the cluster runs the copy as a task and
the driver polls ``_tasks/{id}`` until it completes.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any

from index_duplicator.clients.cluster import ClusterClient, ClusterResponse, index_path
from index_duplicator.config import ClusterConfig, MigrationOptions
from index_duplicator.errors import CopyIncomplete, RequestTimedOut
from index_duplicator.formatting import pretty_json

logger = logging.getLogger("index_duplicator.bulk_copy")


@dataclass
class CopyResult:
    """Outcome of a reindex, as reported by the cluster."""

    total: int = 0
    created: int = 0
    updated: int = 0
    deleted: int = 0
    batches: int = 0
    version_conflicts: int = 0
    noops: int = 0
    took: int = 0
    timed_out: bool = False
    failures: list[dict[str, Any]] = field(default_factory=list)
    task_id: str = ""

    @classmethod
    def from_response(cls, body: dict[str, Any], task_id: str = "") -> CopyResult:
        return cls(
            total=int(body.get("total", 0)),
            created=int(body.get("created", 0)),
            updated=int(body.get("updated", 0)),
            deleted=int(body.get("deleted", 0)),
            batches=int(body.get("batches", 0)),
            version_conflicts=int(body.get("version_conflicts", 0)),
            noops=int(body.get("noops", 0)),
            took=int(body.get("took", 0)),
            timed_out=bool(body.get("timed_out", False)),
            failures=list(body.get("failures") or []),
            task_id=task_id,
        )

    @property
    def failure_count(self) -> int:
        return len(self.failures)

    @property
    def copied(self) -> int:
        return self.created + self.updated

    @property
    def complete(self) -> bool:
        return self.failure_count == 0 and not self.timed_out


class BulkCopyDriver:
    """Submits a reindex from source to destination and checks its outcome.

    A 2xx status alone is not success: the response body may still report
    per-document failures, which turn into :class:`CopyIncomplete`.
    """

    def __init__(
        self,
        client: ClusterClient,
        cluster: ClusterConfig | None = None,
        options: MigrationOptions | None = None,
    ) -> None:
        self.client = client
        self.cluster = cluster or ClusterConfig()
        self.options = options or MigrationOptions()

    def build_request(self, source: str, destination: str) -> dict[str, Any]:
        body: dict[str, Any] = {
            "source": {"index": source},
            "dest": {"index": destination},
        }
        if self.options.batch_size:
            body["source"]["size"] = self.options.batch_size
        return body

    def _params(self) -> dict[str, Any]:
        params: dict[str, Any] = {
            "wait_for_completion": "true" if self.options.wait_for_completion else "false",
        }
        if self.options.requests_per_second is not None:
            params["requests_per_second"] = self.options.requests_per_second
        if self.options.slices is not None:
            params["slices"] = self.options.slices
        return params

    def copy(self, source: str, destination: str) -> CopyResult:
        logger.info("Reindexing data from '%s' to '%s'...", source, destination)
        try:
            resp = self.client.post(
                "/_reindex",
                self.build_request(source, destination),
                params=self._params(),
                timeout=self.cluster.copy_timeout,
            )
        except RequestTimedOut as e:
            # The reindex keeps running server-side; it is not re-issued.
            raise CopyIncomplete(
                f"No answer to the reindex of '{source}' within "
                f"{self.cluster.copy_timeout:.0f}s. The copy may still be running "
                f"on the cluster; check its tasks before running again",
                index=destination,
            ) from e
        logger.debug("Reindex response:\n%s", pretty_json(resp.body))

        if not resp.ok and self._is_report(resp.body):
            # Document failures come back as a non-2xx status with the full report.
            result = CopyResult.from_response(resp.body)
            self._check(result, source, destination)
            raise CopyIncomplete(
                f"Reindex of '{source}' into '{destination}' failed with "
                f"HTTP {resp.status_code}",
                index=destination,
                result=result,
            )
        self._raise_for_status(resp, source, destination)

        if self.options.wait_for_completion:
            result = CopyResult.from_response(resp.body)
        else:
            task_id = str(resp.body.get("task", ""))
            if not task_id:
                raise CopyIncomplete(
                    f"Reindex of '{source}' returned no task handle",
                    index=destination,
                )
            logger.info("Started reindex task %s", task_id)
            result = self._wait_for_task(task_id, source, destination)

        self._check(result, source, destination)
        logger.info(
            "Reindex of '%s' complete: %d/%d docs in %d ms",
            source, result.copied, result.total, result.took,
        )
        return result

    def _wait_for_task(self, task_id: str, source: str, destination: str) -> CopyResult:
        deadline = time.monotonic() + self.cluster.copy_timeout
        while True:
            resp = self.client.get(index_path("_tasks", task_id))
            if not resp.ok:
                raise CopyIncomplete(
                    f"Cannot read reindex task {task_id}: HTTP {resp.status_code} "
                    f"{resp.error_reason}",
                    index=destination,
                )

            status = resp.body
            if status.get("completed"):
                break

            stats = status.get("task", {}).get("status", {})
            logger.info(
                "   Progress: %d/%d docs",
                stats.get("created", 0) + stats.get("updated", 0),
                stats.get("total", 0),
            )
            if time.monotonic() >= deadline:
                # The task keeps running server-side; it is not re-issued.
                raise CopyIncomplete(
                    f"Reindex task {task_id} did not finish within "
                    f"{self.cluster.copy_timeout:.0f}s",
                    index=destination,
                    result=CopyResult.from_response(stats, task_id=task_id),
                )
            time.sleep(self.options.poll_interval)

        if status.get("error"):
            error = status["error"]
            reason = error.get("reason", error) if isinstance(error, dict) else error
            raise CopyIncomplete(
                f"Reindex task {task_id} failed: {reason}", index=destination,
            )
        logger.debug("Reindex task response:\n%s", pretty_json(status.get("response")))
        return CopyResult.from_response(status.get("response", {}), task_id=task_id)

    @staticmethod
    def _is_report(body: Any) -> bool:
        return (
            isinstance(body, dict)
            and "error" not in body
            and ("failures" in body or "total" in body)
        )

    @staticmethod
    def _raise_for_status(resp: ClusterResponse, source: str, destination: str) -> None:
        if not resp.ok or not isinstance(resp.body, dict):
            detail = resp.error_reason or str(resp.body)[:200]
            raise CopyIncomplete(
                f"Reindex of '{source}' into '{destination}' failed with "
                f"HTTP {resp.status_code}: {detail}",
                index=destination,
            )

    @staticmethod
    def _check(result: CopyResult, source: str, destination: str) -> None:
        if result.failure_count:
            raise CopyIncomplete(
                f"Reindex of '{source}' into '{destination}' reported "
                f"{result.failure_count} document failures",
                index=destination,
                result=result,
            )
        if result.timed_out:
            raise CopyIncomplete(
                f"Reindex of '{source}' into '{destination}' timed out on the cluster",
                index=destination,
                result=result,
            )
