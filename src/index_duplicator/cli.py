"""CLI for the Elasticsearch index duplication tool.

Usage:
    index-duplicator SOURCE_INDEX DESTINATION_INDEX ALIAS_NAME
    index-duplicator --dry-run old_index new_index alias_name
    index-duplicator help
"""

from __future__ import annotations

import sys
from pathlib import Path

import click
from rich.console import Console

from index_duplicator import __version__
from index_duplicator.config import DuplicatorConfig
from index_duplicator.errors import IndexDuplicatorError, UsageError
from index_duplicator.utils.logging import setup_logging

console = Console()

EPILOG = """\b
Example:
  index-duplicator old_index new_index alias_name

\b
Parameters:
  SOURCE_INDEX       Existing index name (source)
  DESTINATION_INDEX  New index name to be created (destination)
  ALIAS_NAME         Alias name to be moved to the new index
"""


def _load_config(config_path: str | None) -> DuplicatorConfig:
    """Load configuration from YAML, or start from defaults."""
    if not config_path:
        return DuplicatorConfig()
    path = Path(config_path)
    if not path.exists():
        console.print(f"[red]Config file not found: {path}[/red]")
        sys.exit(1)
    return DuplicatorConfig.from_yaml(path)


@click.command(
    context_settings={"help_option_names": ["-h", "--help"]},
    epilog=EPILOG,
)
@click.version_option(__version__)
@click.argument("args", nargs=-1, metavar="SOURCE_INDEX DESTINATION_INDEX ALIAS_NAME")
@click.option("--host", envvar="ELASTIC_HOST", help="Cluster base URL (default http://localhost:9200)")
@click.option("--config", "-c", "config_path", type=click.Path(), help="Config file (YAML)")
@click.option("--username", envvar="ELASTIC_USERNAME", help="Basic auth user")
@click.option("--password", envvar="ELASTIC_PASSWORD", help="Basic auth password")
@click.option("--timeout", type=float, help="Timeout in seconds for each request")
@click.option("--copy-timeout", type=float, help="Timeout in seconds for the reindex")
@click.option("--async-copy", is_flag=True, help="Run the reindex as a task and poll it")
@click.option("--no-verify", is_flag=True, help="Skip the document count check after copying")
@click.option("--dry-run", is_flag=True, help="Show what would change without modifying the cluster")
@click.option("--verbose", "-v", is_flag=True, help="Verbose logging")
@click.pass_context
def main(
    ctx: click.Context,
    args: tuple[str, ...],
    host: str | None,
    config_path: str | None,
    username: str | None,
    password: str | None,
    timeout: float | None,
    copy_timeout: float | None,
    async_copy: bool,
    no_verify: bool,
    dry_run: bool,
    verbose: bool,
) -> None:
    """Duplicate an Elasticsearch index and move an alias onto the copy.

    Creates DESTINATION_INDEX with the settings and mappings of SOURCE_INDEX,
    reindexes all documents into it, then atomically moves ALIAS_NAME from
    every index that holds it onto DESTINATION_INDEX.
    """
    if args == ("help",):
        click.echo(ctx.get_help())
        ctx.exit(0)
    if len(args) != 3:
        raise click.UsageError(
            f"Expected 3 arguments, got {len(args)}. Please check the --help option.",
            ctx=ctx,
        )
    source, destination, alias = args

    setup_logging(verbose=verbose)

    cfg = _load_config(config_path)
    cl = cfg.cluster
    cl.host = host or cl.host
    cl.username = username or cl.username
    cl.password = password or cl.password
    if timeout is not None:
        cl.timeout = timeout
    if copy_timeout is not None:
        cl.copy_timeout = copy_timeout
    if async_copy:
        cfg.options.wait_for_completion = False
    if no_verify:
        cfg.options.verify_document_count = False
    if dry_run:
        cfg.options.dry_run = True
    cfg.resolve()

    sys.exit(run_migration(cfg, source, destination, alias))


def run_migration(cfg: DuplicatorConfig, source: str, destination: str, alias: str) -> int:
    """Run one migration and print its outcome. Returns the exit code."""
    from index_duplicator.clients.cluster import ClusterClient
    from index_duplicator.formatting import print_failure, print_summary
    from index_duplicator.orchestrator import MigrationOrchestrator

    try:
        with ClusterClient(cfg.cluster) as client:
            orchestrator = MigrationOrchestrator(client, source, destination, alias, cfg)
            try:
                state = orchestrator.run()
            except IndexDuplicatorError as e:
                print_failure(e, orchestrator.state, console)
                return 1
    except UsageError as e:
        print_failure(e, console=console)
        return 2

    print_summary(state, console)
    return 0
