"""Configuration models for the duplication tool.

Values come from an optional YAML file, then command-line flags, and finally
environment variables for anything still unset.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

DEFAULT_HOST = "http://localhost:9200"


@dataclass
class ClusterConfig:
    """Connection settings for the Elasticsearch cluster."""

    host: str = ""
    username: str = ""
    password: str = ""
    ca_certs: str = ""
    verify_certs: bool = True
    # Seconds. Every request is bounded; the copy request gets its own bound.
    timeout: float = 30.0
    copy_timeout: float = 3600.0

    def resolve(self) -> None:
        """Fill values that were not set explicitly from the environment."""
        self.host = self.host or os.environ.get("ELASTIC_HOST", DEFAULT_HOST)
        self.username = self.username or os.environ.get("ELASTIC_USERNAME", "")
        self.password = self.password or os.environ.get("ELASTIC_PASSWORD", "")

    @property
    def auth(self) -> tuple[str, str] | None:
        if self.username:
            return (self.username, self.password)
        return None


@dataclass
class MigrationOptions:
    """Options controlling how a run behaves."""

    dry_run: bool = False
    # False submits the reindex as a background task and polls it.
    wait_for_completion: bool = True
    poll_interval: float = 5.0
    verify_document_count: bool = True
    # Passed through to _reindex unchanged when set.
    requests_per_second: float | None = None
    slices: int | str | None = None
    batch_size: int | None = None


@dataclass
class DuplicatorConfig:
    """Top-level configuration."""

    cluster: ClusterConfig = field(default_factory=ClusterConfig)
    options: MigrationOptions = field(default_factory=MigrationOptions)

    def resolve(self) -> None:
        self.cluster.resolve()

    @classmethod
    def from_yaml(cls, path: str | Path) -> DuplicatorConfig:
        """Load configuration from a YAML file."""
        with open(path) as f:
            raw = yaml.safe_load(f) or {}

        config = cls()

        cl = raw.get("cluster", {})
        config.cluster = ClusterConfig(
            host=cl.get("host", ""),
            username=cl.get("username", ""),
            password=cl.get("password", ""),
            ca_certs=cl.get("ca_certs", ""),
            verify_certs=cl.get("verify_certs", True),
            timeout=float(cl.get("timeout", 30.0)),
            copy_timeout=float(cl.get("copy_timeout", 3600.0)),
        )

        opts = raw.get("options", {})
        config.options = MigrationOptions(
            dry_run=opts.get("dry_run", False),
            wait_for_completion=opts.get("wait_for_completion", True),
            poll_interval=float(opts.get("poll_interval", 5.0)),
            verify_document_count=opts.get("verify_document_count", True),
            requests_per_second=opts.get("requests_per_second"),
            slices=opts.get("slices"),
            batch_size=opts.get("batch_size"),
        )

        config.resolve()
        return config

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a dict for logging, with secrets masked."""
        from dataclasses import asdict

        d = asdict(self)
        if d["cluster"]["password"]:
            d["cluster"]["password"] = "***"
        return d
