"""Error taxonomy for index duplication runs.

Every error is terminal for the run that raised it. The orchestrator tags
errors with the phase that was being attempted so the operator can see where
the run stopped.
"""

from __future__ import annotations

from typing import Any


class IndexDuplicatorError(Exception):
    """Base class for all migration failures."""

    def __init__(
        self,
        message: str,
        *,
        index: str | None = None,
        alias: str | None = None,
        phase: Any = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.index = index
        self.alias = alias
        self.phase = phase

    def __str__(self) -> str:
        if self.phase is None:
            return self.message
        return f"[{self.phase}] {self.message}"


class UsageError(IndexDuplicatorError):
    """Invalid invocation, raised before the cluster is contacted."""


class HostUnreachable(IndexDuplicatorError):
    """The cluster could not be reached (connection refused, DNS, timeout)."""

    def __init__(self, message: str, *, host: str = "", **kwargs: Any) -> None:
        super().__init__(message, **kwargs)
        self.host = host


class RequestTimedOut(HostUnreachable):
    """The cluster accepted the connection but did not answer in time."""


class SourceNotFound(IndexDuplicatorError):
    pass


class SchemaParseError(IndexDuplicatorError):
    """The index description was not well-formed structured data."""


class DestinationConflict(IndexDuplicatorError):
    """The destination index already exists.

    It may hold an incompatible schema from an earlier partial run, so
    reusing it is left to the operator.
    """


class SchemaRejected(IndexDuplicatorError):
    def __init__(self, message: str, *, reason: str = "", **kwargs: Any) -> None:
        super().__init__(message, **kwargs)
        self.reason = reason


class CopyIncomplete(IndexDuplicatorError):
    """The bulk copy did not finish cleanly.

    ``result`` holds the :class:`~index_duplicator.bulk_copy.CopyResult` when
    the cluster returned one.
    """

    def __init__(self, message: str, *, result: Any = None, **kwargs: Any) -> None:
        super().__init__(message, **kwargs)
        self.result = result


class AliasUpdateFailed(IndexDuplicatorError):
    def __init__(self, message: str, *, plan: Any = None, **kwargs: Any) -> None:
        super().__init__(message, **kwargs)
        self.plan = plan
