"""Example: full migration with per-phase progress.

Creates ``logs_v2`` from ``logs_v1``, reindexes into it as a background task,
and moves the ``logs`` alias onto it.

Usage:
    python examples/02_migrate.py
"""

import sys

from rich.console import Console

from index_duplicator.clients.cluster import ClusterClient
from index_duplicator.config import DuplicatorConfig
from index_duplicator.errors import IndexDuplicatorError
from index_duplicator.formatting import print_failure, print_summary
from index_duplicator.orchestrator import MigrationOrchestrator, MigrationState, Phase
from index_duplicator.utils.logging import setup_logging

console = Console()


def on_phase(phase: Phase, state: MigrationState) -> None:
    console.print(f"  [green]✓[/green] {phase.step}")


def main() -> None:
    setup_logging()

    config = DuplicatorConfig.from_yaml("config.yaml")
    config.options.wait_for_completion = False

    with ClusterClient(config.cluster) as client:
        orchestrator = MigrationOrchestrator(client, "logs_v1", "logs_v2", "logs", config)
        orchestrator.set_phase_callback(on_phase)
        try:
            state = orchestrator.run()
        except IndexDuplicatorError as e:
            print_failure(e, orchestrator.state, console)
            sys.exit(1)

    print_summary(state, console)


if __name__ == "__main__":
    main()
