"""Migration orchestrator: sequences the duplication workflow.

Phases run strictly in order and each one is gated on the previous step
succeeding. A failure stops the run where it happened. Nothing is rolled
back: a failure after the destination index was created leaves it in place,
without the alias.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable

from index_duplicator.alias_reconciler import AliasPlan, AliasReconciler
from index_duplicator.bulk_copy import BulkCopyDriver, CopyResult
from index_duplicator.clients.cluster import ClusterClient
from index_duplicator.config import DuplicatorConfig
from index_duplicator.errors import (
    CopyIncomplete,
    DestinationConflict,
    HostUnreachable,
    IndexDuplicatorError,
    SourceNotFound,
)
from index_duplicator.naming import validate_name
from index_duplicator.provisioner import IndexProvisioner
from index_duplicator.schema_extractor import SchemaDefinition, SchemaExtractor
from index_duplicator.validation import CopyValidator, ValidationReport

logger = logging.getLogger("index_duplicator.orchestrator")


class Phase(Enum):
    """Workflow phases, in the only order they can be reached."""

    INIT = "init"
    HOST_CHECKED = "host_checked"
    SOURCE_VERIFIED = "source_verified"
    SCHEMA_EXTRACTED = "schema_extracted"
    DESTINATION_CREATED = "destination_created"
    DATA_COPIED = "data_copied"
    ALIAS_REASSIGNED = "alias_reassigned"
    DONE = "done"

    @property
    def order(self) -> int:
        return list(Phase).index(self)

    @property
    def step(self) -> str:
        """Name of the step that leads into this phase."""
        return _STEP_NAMES[self]

    def __str__(self) -> str:
        return self.step


_STEP_NAMES = {
    Phase.INIT: "initialization",
    Phase.HOST_CHECKED: "host check",
    Phase.SOURCE_VERIFIED: "source index check",
    Phase.SCHEMA_EXTRACTED: "schema extraction",
    Phase.DESTINATION_CREATED: "index creation",
    Phase.DATA_COPIED: "data copy",
    Phase.ALIAS_REASSIGNED: "alias reassignment",
    Phase.DONE: "completion",
}


@dataclass
class MigrationState:
    """State of a single run. Owned by the orchestrator for its duration."""

    source: str
    destination: str
    alias: str
    phase: Phase = Phase.INIT
    failed_phase: Phase | None = None
    error: IndexDuplicatorError | None = None
    dry_run: bool = False
    schema: SchemaDefinition | None = None
    copy_result: CopyResult | None = None
    validation: ValidationReport | None = None
    alias_plan: AliasPlan | None = None
    history: list[Phase] = field(default_factory=lambda: [Phase.INIT])

    def advance(self, phase: Phase) -> None:
        if phase.order <= self.phase.order:
            raise ValueError(f"Cannot move from {self.phase.name} back to {phase.name}")
        self.phase = phase
        self.history.append(phase)

    def mark_failed(self, phase: Phase, error: IndexDuplicatorError) -> None:
        self.failed_phase = phase
        self.error = error

    @property
    def succeeded(self) -> bool:
        return self.phase is Phase.DONE or (self.dry_run and self.error is None)


PhaseCallback = Callable[[Phase, MigrationState], Any]


class MigrationOrchestrator:
    """Runs one migration of ``source`` to ``destination`` under ``alias``."""

    def __init__(
        self,
        client: ClusterClient,
        source: str,
        destination: str,
        alias: str,
        config: DuplicatorConfig | None = None,
    ) -> None:
        self.client = client
        self.config = config or DuplicatorConfig()
        self.state = MigrationState(
            source=validate_name(source, "source index"),
            destination=validate_name(destination, "destination index"),
            alias=validate_name(alias, "alias"),
            dry_run=self.config.options.dry_run,
        )
        self.extractor = SchemaExtractor(client)
        self.provisioner = IndexProvisioner(client)
        self.copier = BulkCopyDriver(client, self.config.cluster, self.config.options)
        self.validator = CopyValidator(client)
        self.reconciler = AliasReconciler(client)
        self._phase_callback: PhaseCallback | None = None

    def set_phase_callback(self, callback: PhaseCallback) -> None:
        """Set a callback ``fn(phase, state)`` invoked after each phase is reached."""
        self._phase_callback = callback

    def run(self) -> MigrationState:
        """Run every phase in order and return the final state.

        Any :class:`IndexDuplicatorError` is tagged with the phase being
        attempted, recorded on the state, and re-raised.
        """
        s = self.state
        logger.info("Migrating '%s' -> '%s' (alias '%s')", s.source, s.destination, s.alias)

        self._step(Phase.HOST_CHECKED, self._check_host)
        self._step(Phase.SOURCE_VERIFIED, self._check_source)
        self._step(Phase.SCHEMA_EXTRACTED, self._extract_schema)

        if s.dry_run:
            self._plan_only()
            return s

        self._step(Phase.DESTINATION_CREATED, self._create_destination)
        self._step(Phase.DATA_COPIED, self._copy_data)
        self._step(Phase.ALIAS_REASSIGNED, self._reassign_alias)
        self._reach(Phase.DONE)

        logger.info(
            "Alias '%s' reassigned to '%s'; all data reindexed from '%s'",
            s.alias, s.destination, s.source,
        )
        return s

    # ------------------------------------------------------------------
    # Phase steps
    # ------------------------------------------------------------------

    def _check_host(self) -> None:
        resp = self.client.get("/")
        if not resp.ok:
            raise HostUnreachable(
                f"Cannot reach Elasticsearch at {self.client.base_url} "
                f"(HTTP {resp.status_code})",
                host=self.client.base_url,
            )
        version = ""
        if isinstance(resp.body, dict):
            version = resp.body.get("version", {}).get("number", "")
        logger.info("Elasticsearch connection established at %s %s",
                    self.client.base_url, version)

    def _check_source(self) -> None:
        source = self.state.source
        if not self.provisioner.exists(source):
            raise SourceNotFound(f"Index not found: {source}", index=source)

    def _extract_schema(self) -> None:
        self.state.schema = self.extractor.extract(self.state.source)

    def _create_destination(self) -> None:
        self.provisioner.create(self.state.destination, self.state.schema)

    def _copy_data(self) -> None:
        s = self.state
        s.copy_result = self.copier.copy(s.source, s.destination)

        if self.config.options.verify_document_count:
            s.validation = self.validator.validate(s.source, s.destination)
            if not s.validation.all_passed:
                failed = "; ".join(c.message for c in s.validation.failed)
                raise CopyIncomplete(
                    f"Copy verification failed for '{s.destination}': {failed}",
                    index=s.destination,
                    result=s.copy_result,
                )

    def _reassign_alias(self) -> None:
        s = self.state
        s.alias_plan = self.reconciler.reassign(s.alias, s.destination)
        self.reconciler.apply(s.alias_plan)

    def _plan_only(self) -> None:
        """Dry run: report what would change without mutating the cluster."""
        s = self.state
        logger.info("[DRY RUN] No index will be created and no data copied")

        def check_destination() -> None:
            if self.provisioner.exists(s.destination):
                raise DestinationConflict(
                    f"Destination index already exists: {s.destination}",
                    index=s.destination,
                )

        def plan_alias() -> None:
            s.alias_plan = self.reconciler.reassign(s.alias, s.destination)

        self._guard(Phase.DESTINATION_CREATED, check_destination)
        self._guard(Phase.ALIAS_REASSIGNED, plan_alias)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _step(self, phase: Phase, action: Callable[[], None]) -> None:
        self._guard(phase, action)
        self._reach(phase)

    def _guard(self, phase: Phase, action: Callable[[], None]) -> None:
        try:
            action()
        except IndexDuplicatorError as e:
            e.phase = phase
            self.state.mark_failed(phase, e)
            logger.error("Failed during %s: %s", phase, e.message)
            if self.state.phase.order >= Phase.DESTINATION_CREATED.order:
                logger.warning(
                    "Index '%s' was left in place without alias '%s'; "
                    "delete or reuse it before retrying",
                    self.state.destination, self.state.alias,
                )
            raise

    def _reach(self, phase: Phase) -> None:
        self.state.advance(phase)
        logger.debug("Phase reached: %s", phase.name)
        if self._phase_callback:
            self._phase_callback(phase, self.state)
