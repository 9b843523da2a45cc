"""Schema extraction: source index description → re-creatable schema.

Elasticsearch stamps every index with creation-time settings that cannot be
written back (``creation_date``, ``uuid``, ``version``, ``provided_name``).
They are removed structurally so the remaining settings and the mappings can
be sent unchanged to an index-create request.
"""

from __future__ import annotations

import copy
import logging
from dataclasses import dataclass, field
from typing import Any

from index_duplicator.clients.cluster import ClusterClient, index_path
from index_duplicator.errors import SchemaParseError, SourceNotFound

logger = logging.getLogger("index_duplicator.schema_extractor")

# Keys under ``settings.index`` assigned by the cluster at creation time.
STORE_ASSIGNED_SETTINGS = ("creation_date", "uuid", "version", "provided_name")


@dataclass(frozen=True)
class SchemaDefinition:
    """Sanitized settings and mappings of an index."""

    settings: dict[str, Any] = field(default_factory=dict)
    mappings: dict[str, Any] = field(default_factory=dict)

    def to_request_body(self) -> dict[str, Any]:
        return {"settings": self.settings, "mappings": self.mappings}


def sanitize_settings(settings: dict[str, Any]) -> dict[str, Any]:
    """Return a copy of ``settings`` without store-assigned keys.

    Handles both the nested form (``{"index": {"uuid": ...}}``) and the flat
    form returned with ``flat_settings=true`` (``{"index.uuid": ...}``). Keys
    with the same names elsewhere in the document are left alone.
    """
    cleaned = copy.deepcopy(settings)

    index_settings = cleaned.get("index")
    if isinstance(index_settings, dict):
        for key in STORE_ASSIGNED_SETTINGS:
            index_settings.pop(key, None)

    # Flat keys may name a whole subtree, e.g. ``index.version.created``.
    flat_keys = [f"index.{key}" for key in STORE_ASSIGNED_SETTINGS]
    for name in list(cleaned):
        if any(name == k or name.startswith(k + ".") for k in flat_keys):
            del cleaned[name]

    return cleaned


class SchemaExtractor:
    """Reads a source index description and derives a :class:`SchemaDefinition`."""

    def __init__(self, client: ClusterClient) -> None:
        self.client = client

    def extract(self, source: str) -> SchemaDefinition:
        logger.info("Fetching settings and mappings from '%s'...", source)
        resp = self.client.get(index_path(source))

        if resp.status_code == 404:
            raise SourceNotFound(f"Index not found: {source}", index=source)
        if not resp.ok:
            raise SchemaParseError(
                f"Describe of '{source}' failed with HTTP {resp.status_code}: "
                f"{resp.error_reason or resp.body}",
                index=source,
            )

        entry = self._select_entry(source, resp.body)

        settings = entry.get("settings", {})
        mappings = entry.get("mappings", {})
        if not isinstance(settings, dict) or not isinstance(mappings, dict):
            raise SchemaParseError(
                f"Description of '{source}' has malformed settings or mappings",
                index=source,
            )

        schema = SchemaDefinition(settings=sanitize_settings(settings), mappings=mappings)
        logger.debug("Sanitized settings for '%s': %s", source, schema.settings)
        return schema

    @staticmethod
    def _select_entry(source: str, body: Any) -> dict[str, Any]:
        """Pick the description entry for ``source`` out of the response.

        The response is keyed by concrete index name. When ``source`` is an
        alias over a single index, that index's entry is used.
        """
        if not isinstance(body, dict):
            raise SchemaParseError(
                f"Description of '{source}' is not a JSON object", index=source,
            )

        entry = body.get(source)
        if entry is None:
            if len(body) != 1:
                raise SchemaParseError(
                    f"Description of '{source}' matched {len(body)} indices; "
                    "expected exactly one",
                    index=source,
                )
            (concrete, entry), = body.items()
            logger.info("'%s' resolves to index '%s'", source, concrete)

        if not isinstance(entry, dict):
            raise SchemaParseError(
                f"Description entry for '{source}' is not a JSON object", index=source,
            )
        return entry
