"""Destination index creation."""

from __future__ import annotations

import logging

from index_duplicator.clients.cluster import ClusterClient, index_path
from index_duplicator.errors import DestinationConflict, SchemaRejected
from index_duplicator.formatting import pretty_json
from index_duplicator.schema_extractor import SchemaDefinition

logger = logging.getLogger("index_duplicator.provisioner")

ALREADY_EXISTS_TYPES = frozenset({
    "resource_already_exists_exception",
    "index_already_exists_exception",
})


class IndexProvisioner:
    """Creates a destination index from a :class:`SchemaDefinition`.

    An existing destination is never reused silently. It may carry a schema
    left over from an earlier partial run.
    """

    def __init__(self, client: ClusterClient) -> None:
        self.client = client

    def exists(self, index: str) -> bool:
        return self.client.head(index_path(index)).ok

    def create(self, destination: str, schema: SchemaDefinition) -> None:
        logger.info("Creating the new index '%s'...", destination)
        resp = self.client.put(index_path(destination), schema.to_request_body())
        logger.debug("Create response:\n%s", pretty_json(resp.body))

        if resp.ok:
            if isinstance(resp.body, dict) and resp.body.get("acknowledged") is False:
                logger.warning(
                    "Index '%s' was created but the request was not acknowledged "
                    "in time; shards may still be allocating",
                    destination,
                )
            logger.info("Index '%s' created", destination)
            return

        if resp.error_type in ALREADY_EXISTS_TYPES or "already exists" in resp.error_reason:
            raise DestinationConflict(
                f"Destination index already exists: {destination}",
                index=destination,
            )

        reason = resp.error_reason or f"HTTP {resp.status_code}"
        raise SchemaRejected(
            f"Cluster rejected creation of '{destination}': {reason}",
            index=destination,
            reason=reason,
        )
