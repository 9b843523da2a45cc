"""Alias reassignment.

Moves an alias onto exactly one destination index with a single
``POST /_aliases`` request. Elasticsearch applies all actions of one request
as a unit, so consumers never see the alias resolve to nothing between the
removals and the add.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from index_duplicator.clients.cluster import ClusterClient, index_path
from index_duplicator.errors import AliasUpdateFailed
from index_duplicator.formatting import pretty_json

logger = logging.getLogger("index_duplicator.alias_reconciler")


@dataclass(frozen=True)
class AliasMembership:
    """Indices currently holding an alias, fetched fresh from the cluster."""

    alias: str
    indices: frozenset[str] = frozenset()

    @property
    def empty(self) -> bool:
        return not self.indices


@dataclass(frozen=True)
class AliasAction:
    kind: str  # "add" | "remove"
    index: str
    alias: str

    def to_dict(self) -> dict[str, Any]:
        return {self.kind: {"index": self.index, "alias": self.alias}}


@dataclass
class AliasPlan:
    """Ordered alias actions: removals first, then the single add."""

    alias: str
    destination: str
    actions: list[AliasAction] = field(default_factory=list)

    @property
    def removals(self) -> list[AliasAction]:
        return [a for a in self.actions if a.kind == "remove"]

    @property
    def additions(self) -> list[AliasAction]:
        return [a for a in self.actions if a.kind == "add"]

    def to_request_body(self) -> dict[str, Any]:
        return {"actions": [a.to_dict() for a in self.actions]}


class AliasReconciler:
    def __init__(self, client: ClusterClient) -> None:
        self.client = client

    def membership(self, alias: str) -> AliasMembership:
        """Fetch the indices that currently hold ``alias``.

        An alias that exists nowhere is a valid, empty membership.
        """
        logger.info("Checking alias '%s'...", alias)
        resp = self.client.get(index_path("_alias", alias))

        if resp.status_code == 404:
            logger.info("No indices found with alias '%s'", alias)
            return AliasMembership(alias)
        if not resp.ok or not isinstance(resp.body, dict):
            raise AliasUpdateFailed(
                f"Cannot read membership of alias '{alias}': HTTP {resp.status_code} "
                f"{resp.error_reason}",
                alias=alias,
            )

        indices = frozenset(resp.body)
        for index in sorted(indices):
            logger.info("Alias '%s' found on index '%s'", alias, index)
        return AliasMembership(alias, indices)

    @staticmethod
    def plan(membership: AliasMembership, destination: str) -> AliasPlan:
        """Build the minimal plan moving ``membership.alias`` onto ``destination``.

        The destination never gets a remove action, even when it already
        holds the alias. The add is always present; the cluster treats it as
        idempotent.
        """
        alias = membership.alias
        plan = AliasPlan(alias=alias, destination=destination)
        for index in sorted(membership.indices - {destination}):
            plan.actions.append(AliasAction("remove", index, alias))
        plan.actions.append(AliasAction("add", destination, alias))
        return plan

    def reassign(self, alias: str, destination: str) -> AliasPlan:
        plan = self.plan(self.membership(alias), destination)
        for action in plan.removals:
            logger.info("Alias will be removed from '%s'", action.index)
        logger.info("Alias will be assigned to '%s'", destination)
        return plan

    def apply(self, plan: AliasPlan) -> None:
        """Send the whole plan as one atomic alias update. Never split or retried."""
        logger.info("Updating alias '%s' (%d actions)...", plan.alias, len(plan.actions))
        resp = self.client.post("/_aliases", plan.to_request_body())
        logger.debug("Alias update response:\n%s", pretty_json(resp.body))

        if not resp.ok:
            raise AliasUpdateFailed(
                f"Alias update for '{plan.alias}' rejected: HTTP {resp.status_code} "
                f"{resp.error_reason}",
                alias=plan.alias,
                index=plan.destination,
                plan=plan,
            )
        if isinstance(resp.body, dict) and resp.body.get("acknowledged") is False:
            raise AliasUpdateFailed(
                f"Alias update for '{plan.alias}' was not acknowledged",
                alias=plan.alias,
                index=plan.destination,
                plan=plan,
            )
        logger.info("Alias '%s' now points at '%s'", plan.alias, plan.destination)
