"""Command line interface for content-history."""

import json
import logging
import sys
from pathlib import Path
from typing import Iterator, Optional, Tuple

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from . import __version__
from .config import ConfigManager, apply_policy_overrides
from .errors import ContentHistoryError, HookIoError, RepositoryError
from .models import ProvenanceTable
from .services.policy import PolicyRuleSet
from .services.provenance import ProvenanceAggregator
from .services.push_validator import PushValidator
from .services.repository import GitRepository
from .utils.git_runner import is_git_repository

console = Console()
error_console = Console(stderr=True)

logger = logging.getLogger(__name__)


def _read_hook_input() -> Iterator[str]:
    """Yield pre-receive input lines, surfacing read failures as HookIoError."""
    try:
        for line in sys.stdin:
            yield line
    except (OSError, UnicodeDecodeError) as e:
        raise HookIoError(str(e)) from e


def _render_table(table: ProvenanceTable) -> Table:
    output = Table(title="Path provenance")
    output.add_column("Path", style="cyan")
    output.add_column("Created")
    output.add_column("Creator")
    output.add_column("Modified")
    output.add_column("Last editor")
    output.add_column("Commit", style="dim")
    output.add_column("Contributors", justify="right")

    for path in sorted(table):
        record = table[path]
        output.add_row(
            escape(path),
            record.created_at.strftime("%Y-%m-%d %H:%M"),
            escape(record.creator.name),
            record.modified_at.strftime("%Y-%m-%d %H:%M"),
            escape(record.last_editor.name),
            record.last_short_id,
            str(len(record.contributors)),
        )
    return output


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Verbose output")
@click.option(
    "--config",
    "-c",
    type=click.Path(dir_okay=False),
    help="Config file path (default: .content-history/config.json)",
)
@click.option(
    "--repository",
    "-r",
    type=click.Path(exists=True, file_okay=False),
    default=".",
    show_default=True,
    help="Repository directory (work tree or bare)",
)
@click.version_option(version=__version__, prog_name="content-history")
@click.pass_context
def cli(ctx, verbose: bool, config: Optional[str], repository: str):
    """Commit-history provenance and push policy for content repositories.

    \b
    COMMANDS:
      history       Print who created and last edited every path
      pre-receive   Enforce the publishing policy as a git pre-receive hook

    \b
    CONFIGURATION:
      Config file: .content-history/config.json

      {
        "policy": {"no_deletion": true, "allow_patterns": ["^docs/"]},
        "history": {"revision": "main", "workers": 4}
      }
    """
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose

    # Logs go to stderr; hook stdout is reserved for the rejection message
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s:%(name)s:%(message)s",
    )

    ctx.obj["config_manager"] = ConfigManager(Path(config) if config else None)
    ctx.obj["repository_path"] = Path(repository)


@cli.command("pre-receive")
@click.option(
    "--require-signing", is_flag=True, help="Reject commits without a valid signature"
)
@click.option("--no-deletion", is_flag=True, help="Reject commits that delete paths")
@click.option("--no-creation", is_flag=True, help="Reject commits that create paths")
@click.option(
    "--allow-pattern",
    "allow_patterns",
    multiple=True,
    help="Regex a changed path must match (repeatable, default: everything)",
)
@click.option(
    "--protect-pattern",
    "protect_patterns",
    multiple=True,
    help="Regex no changed path may match (repeatable)",
)
@click.pass_context
def pre_receive(
    ctx,
    require_signing: bool,
    no_deletion: bool,
    no_creation: bool,
    allow_patterns: Tuple[str, ...],
    protect_patterns: Tuple[str, ...],
):
    """Validate pushed ref updates read from stdin.

    Reads "<old-oid> <new-oid> <refname>" lines as git passes them to a
    pre-receive hook. Exits 0 silently when every update is acceptable,
    otherwise prints "rejecting push: <reason>" and exits 1.

    \b
    INSTALLATION (in the bare repository):
      printf '#!/bin/sh\\nexec content-history pre-receive --no-deletion\\n' \\
        > hooks/pre-receive && chmod +x hooks/pre-receive
    """
    try:
        config = ctx.obj["config_manager"].load()
        policy = apply_policy_overrides(
            config.policy,
            require_signing=require_signing,
            no_deletion=no_deletion,
            no_creation=no_creation,
            allow_patterns=list(allow_patterns),
            protect_patterns=list(protect_patterns),
        )
        rules = PolicyRuleSet.from_config(policy)
        validator = PushValidator(GitRepository(ctx.obj["repository_path"]), rules)
        validator.run(_read_hook_input())
    except (ContentHistoryError, ValueError) as e:
        logger.debug("Push rejected", exc_info=True)
        click.echo(f"rejecting push: {e}")
        sys.exit(1)


@cli.command()
@click.argument("revision", required=False)
@click.option("--json", "as_json", is_flag=True, help="Print one JSON object per path")
@click.option(
    "--workers",
    type=click.IntRange(min=1),
    help="Threads used to walk the history (default from config)",
)
@click.pass_context
def history(ctx, revision: Optional[str], as_json: bool, workers: Optional[int]):
    """Show creation and last-modification facts for every path.

    Walks the whole history reachable from REVISION (default: HEAD, or
    history.revision from the config file). Paths that were deleted later
    are still listed.

    \b
    EXAMPLES:
      content-history history
      content-history history main --json > provenance.jsonl
      content-history -r /srv/git/site.git history --workers 4
    """
    try:
        config = ctx.obj["config_manager"].load()
        repository_path = ctx.obj["repository_path"]
        if not is_git_repository(repository_path):
            raise RepositoryError(f"{repository_path} is not a git repository")
        repository = GitRepository(repository_path)
        start = repository.resolve(revision or config.history.revision)
        aggregator = ProvenanceAggregator(
            repository, workers=workers or config.history.workers
        )
        if as_json:
            table = aggregator.aggregate(start)
        else:
            with console.status("Walking commit history..."):
                table = aggregator.aggregate(start)
    except (ContentHistoryError, ValueError) as e:
        error_console.print(f"❌ {e}", style="red", markup=False)
        if ctx.obj.get("verbose"):
            import traceback

            error_console.print(traceback.format_exc(), markup=False)
        sys.exit(1)

    if as_json:
        for path in sorted(table):
            click.echo(json.dumps({"path": path, **table[path].to_dict()}))
        return

    console.print(_render_table(table))


def main():
    cli(obj={})


if __name__ == "__main__":
    main()
