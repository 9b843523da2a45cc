"""Example: preview a migration without changing the cluster.

Reads the source schema and the current alias holders, then prints the
settings the new index would be created with and the alias actions that
would be sent.

Usage:
    python examples/01_plan.py
"""

from rich.console import Console

from index_duplicator.clients.cluster import ClusterClient
from index_duplicator.config import DuplicatorConfig
from index_duplicator.formatting import print_summary
from index_duplicator.orchestrator import MigrationOrchestrator
from index_duplicator.utils.logging import setup_logging

console = Console()


def main() -> None:
    setup_logging(verbose=True)

    config = DuplicatorConfig.from_yaml("config.yaml")
    config.options.dry_run = True

    with ClusterClient(config.cluster) as client:
        orchestrator = MigrationOrchestrator(client, "logs_v1", "logs_v2", "logs", config)
        state = orchestrator.run()

    print_summary(state, console)


if __name__ == "__main__":
    main()
