import logging
import sys
from importlib import metadata
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path

import click
from appdirs import user_log_dir
from rich.console import Console
from rich.logging import RichHandler

from formwork.cli.commands import run_deploy, run_destroy, run_diff, run_synth

console = Console()

app_logger = logging.getLogger("formwork")
# Capture everything from 'formwork', handlers decide what is shown
app_logger.setLevel(logging.DEBUG)

app_name = "formwork"
log_dir = Path(user_log_dir(app_name))
log_dir.mkdir(parents=True, exist_ok=True)
log_file_path = log_dir / f"{app_name}.log"
file_handler = TimedRotatingFileHandler(
    filename=str(log_file_path), when="D", interval=1, backupCount=7, encoding="utf-8"
)
file_handler.setLevel(logging.DEBUG)
file_handler.setFormatter(
    logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
)
app_logger.addHandler(file_handler)

# boto's own debug output drowns everything else
logging.getLogger("botocore").setLevel(logging.WARNING)
logging.getLogger("boto3").setLevel(logging.WARNING)

logger = logging.getLogger(__name__)


@click.group(invoke_without_command=True)
@click.option(
    "--verbose", "-v", count=True, help="Increase verbosity. -v for INFO, -vv for DEBUG logs."
)
@click.option("--version", is_flag=True, help="Show formwork and boto3 versions.")
@click.pass_context
def cli(ctx: click.Context, verbose: int, version: bool) -> None:  # noqa: FBT001
    if version:
        _version()

    if ctx.invoked_subcommand is None:
        console.print(ctx.get_help())
        ctx.exit(0)

    if verbose > 0:
        console_handler = RichHandler(
            console=console,
            show_time=False,
            show_level=True,
            markup=True,
            tracebacks_suppress=[click],
            rich_tracebacks=True,
        )
        if verbose == 1:
            console_handler.setLevel(logging.INFO)
            console.print("[italic blue]Console verbosity: INFO[/]")
        else:
            console_handler.setLevel(logging.DEBUG)
            console.print("[italic green]Console verbosity: DEBUG[/]")

        console.print(f"[italic dim]Logs saved to: {log_file_path}[/]")
        app_logger.addHandler(console_handler)


@click.command()
def version() -> None:
    """Shows version and exit."""
    _version()


@click.command()
@click.option(
    "--output",
    "-o",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Write the template to this file instead of printing it.",
)
def synth(output: Path | None) -> None:
    """Prints the CloudFormation template of your app."""
    run_synth(output)


@click.command()
@click.argument("name")
def diff(name: str) -> None:
    """Shows which resources a deploy would add, remove or keep."""
    run_diff(name)


@click.command()
@click.argument("name")
@click.option("--yes", "-y", is_flag=True, help="Skip confirmation prompts")
def deploy(name: str, yes: bool) -> None:  # noqa: FBT001
    """Deploys your app as the CloudFormation stack NAME."""
    if not yes:
        console.print(f"About to deploy stack [bold red]{name}[/bold red].")
        if not click.confirm(f"Deploy {name}?"):
            console.print("Deployment cancelled.")
            return
    logger.info("Deploying stack %s", name)
    run_deploy(name)


@click.command()
@click.argument("name")
@click.option("--yes", "-y", is_flag=True, help="Skip confirmation prompts")
def destroy(name: str, yes: bool) -> None:  # noqa: FBT001
    """Destroys the CloudFormation stack NAME and all its resources."""
    logger.info("Destroying stack %s", name)
    run_destroy(name, skip_confirm=yes)


cli.add_command(version)
cli.add_command(synth)
cli.add_command(diff)
cli.add_command(deploy)
cli.add_command(destroy)


def _version() -> None:
    formwork_version = metadata.version("formwork")
    boto3_version = metadata.version("boto3")
    console.print(f"formwork version: {formwork_version}", highlight=False)
    console.print(f"boto3 version: {boto3_version}", highlight=False)
    sys.exit(0)
