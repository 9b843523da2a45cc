"""Post-copy verification: compare source and destination before cut-over."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from index_duplicator.clients.cluster import ClusterClient, index_path

logger = logging.getLogger("index_duplicator.validation")


@dataclass
class ValidationCheck:
    """Result of a single validation check."""

    name: str
    passed: bool
    expected: Any = None
    actual: Any = None
    message: str = ""


@dataclass
class ValidationReport:
    """Aggregated validation results."""

    checks: list[ValidationCheck] = field(default_factory=list)

    @property
    def all_passed(self) -> bool:
        return all(c.passed for c in self.checks)

    @property
    def failed(self) -> list[ValidationCheck]:
        return [c for c in self.checks if not c.passed]

    def summary(self) -> str:
        total = len(self.checks)
        passed = total - len(self.failed)
        status = "PASS" if self.all_passed else "FAIL"
        return f"[{status}] {passed}/{total} checks passed"


class CopyValidator:
    """Checks that a destination holds what the source held."""

    def __init__(self, client: ClusterClient) -> None:
        self.client = client

    def validate(self, source: str, destination: str) -> ValidationReport:
        report = ValidationReport()
        report.checks.append(self._check_document_count(source, destination))
        logger.info("Copy validation %s", report.summary())
        return report

    def _count(self, index: str) -> int | None:
        resp = self.client.get(index_path(index, "_count"))
        if not resp.ok or not isinstance(resp.body, dict):
            logger.warning("Cannot count '%s': HTTP %d", index, resp.status_code)
            return None
        return int(resp.body.get("count", 0))

    def _check_document_count(self, source: str, destination: str) -> ValidationCheck:
        # Newly copied documents only become countable after a refresh.
        self.client.post(index_path(destination, "_refresh"))

        src_count = self._count(source)
        dst_count = self._count(destination)
        if src_count is None or dst_count is None:
            return ValidationCheck(
                name="document_count",
                passed=False,
                expected=src_count,
                actual=dst_count,
                message="Document count unavailable",
            )

        passed = src_count == dst_count
        return ValidationCheck(
            name="document_count",
            passed=passed,
            expected=src_count,
            actual=dst_count,
            message=(
                f"Doc counts match: {src_count}" if passed
                else f"Doc count mismatch: source={src_count}, destination={dst_count}"
            ),
        )
