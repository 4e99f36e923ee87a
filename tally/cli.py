"""CLI entrypoint for tally."""

import sys
from pathlib import Path

import click

from . import __version__
from .config import TallyConfig, configure_logging, find_config, load_config
from .errors import ConfigError


@click.group()
@click.version_option(__version__, prog_name="tally")
@click.option(
    "--data-dir",
    "-d",
    type=click.Path(file_okay=False, dir_okay=True, path_type=Path),
    default=None,
    help="Directory holding the journal (defaults to tally.toml's data_dir, else ./.tally)",
)
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="Path to tally.toml (defaults to the nearest one above the working directory)",
)
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"], case_sensitive=False),
    default=None,
    help="Logging verbosity (stderr)",
)
@click.pass_context
def cli(ctx: click.Context, data_dir: Path | None, config_path: Path | None, log_level: str | None) -> None:
    """tally - threaded artifacts with votes, scores and author reputation."""
    ctx.ensure_object(dict)
    if config_path is None:
        config_path = find_config(Path.cwd())

    try:
        config = load_config(config_path) if config_path else TallyConfig()
        config = config.with_overrides(data_dir=data_dir, log_level=log_level)
    except ConfigError as e:
        raise click.ClickException(str(e))

    configure_logging(config.log_level)
    ctx.obj["config"] = config


@cli.command()
@click.argument("author", type=str)
@click.argument("content_ref", type=str)
@click.pass_context
def post(ctx: click.Context, author: str, content_ref: str) -> None:
    """Create a root artifact and print its id."""
    from .commands.artifact_cmd import run_create

    sys.exit(run_create(ctx.obj["config"], "root_content", 0, author, content_ref))


@cli.command()
@click.argument("parent_id", type=int)
@click.argument("author", type=str)
@click.argument("content_ref", type=str)
@click.pass_context
def reply(ctx: click.Context, parent_id: int, author: str, content_ref: str) -> None:
    """Create a comment under PARENT_ID and print its id."""
    from .commands.artifact_cmd import run_create

    sys.exit(run_create(ctx.obj["config"], "comment", parent_id, author, content_ref))


@cli.command(context_settings={"ignore_unknown_options": True})
@click.argument("artifact_id", type=int)
@click.argument("voter", type=str)
@click.argument("value", type=str)
@click.pass_context
def vote(ctx: click.Context, artifact_id: int, voter: str, value: str) -> None:
    """Cast, change or clear a vote.

    VALUE is one of: up, down, clear, 1, -1, 0.
    Repeating the current vote is a no-op.
    """
    from .commands.vote_cmd import run_vote

    sys.exit(run_vote(ctx.obj["config"], artifact_id, voter, value))


@cli.command()
@click.argument("artifact_id", type=int)
@click.option("--json", "output_json", is_flag=True, help="Output as JSON")
@click.pass_context
def show(ctx: click.Context, artifact_id: int, output_json: bool) -> None:
    """Show an artifact with its score and children."""
    from .commands.artifact_cmd import run_show

    sys.exit(run_show(ctx.obj["config"], artifact_id, output_json=output_json))


@cli.command()
@click.argument("root_id", type=int)
@click.pass_context
def thread(ctx: click.Context, root_id: int) -> None:
    """Render the reply tree under ROOT_ID."""
    from .commands.artifact_cmd import run_thread

    sys.exit(run_thread(ctx.obj["config"], root_id))


@cli.command()
@click.argument("artifact_id", type=int)
@click.pass_context
def score(ctx: click.Context, artifact_id: int) -> None:
    """Print an artifact's score (0 for unknown artifacts)."""
    from .commands.vote_cmd import run_score

    sys.exit(run_score(ctx.obj["config"], artifact_id))


@cli.command()
@click.argument("author", type=str)
@click.pass_context
def reputation(ctx: click.Context, author: str) -> None:
    """Print an author's reputation (0 for unknown authors)."""
    from .commands.vote_cmd import run_reputation

    sys.exit(run_reputation(ctx.obj["config"], author))


@cli.command()
@click.option("--limit", type=int, default=10, show_default=True, help="How many authors to list")
@click.option("--json", "output_json", is_flag=True, help="Output as JSON")
@click.pass_context
def leaderboard(ctx: click.Context, limit: int, output_json: bool) -> None:
    """List authors by reputation."""
    from .commands.vote_cmd import run_leaderboard

    sys.exit(run_leaderboard(ctx.obj["config"], limit=limit, output_json=output_json))


@cli.command()
@click.option("--limit", type=int, default=20, show_default=True, help="Max events to show")
@click.option("--json", "output_json", is_flag=True, help="Output as JSON")
@click.pass_context
def log(ctx: click.Context, limit: int, output_json: bool) -> None:
    """Show recent journal events."""
    from .commands.artifact_cmd import run_log

    sys.exit(run_log(ctx.obj["config"], limit=limit, output_json=output_json))


@cli.command()
@click.pass_context
def summary(ctx: click.Context) -> None:
    """Show totals, top artifacts and top authors."""
    from .commands.artifact_cmd import run_summary

    sys.exit(run_summary(ctx.obj["config"]))


@cli.command("import")
@click.argument("script", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.pass_context
def import_script(ctx: click.Context, script: Path) -> None:
    """Apply a YAML operation script (post / reply / create / vote)."""
    from .commands.artifact_cmd import run_import

    sys.exit(run_import(ctx.obj["config"], script))


def main() -> None:
    """Main entrypoint."""
    cli()


if __name__ == "__main__":
    main()
