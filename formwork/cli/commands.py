import json
import logging
import os
from pathlib import Path
from typing import NoReturn

from rich.console import Console

from formwork.config import FormworkConfig
from formwork.deploy import NO_CHANGES, deploy, destroy, format_diff, remote_diff
from formwork.exceptions import (
    ConfigurationError,
    DeployError,
    DestroyError,
    DiffError,
    IntegrityError,
    ProjectError,
)
from formwork.project import get_config, get_stack_builder, load_app
from formwork.stack.stack import Stack

console = Console()
logger = logging.getLogger(__name__)

FORMWORK_ERRORS = (
    ConfigurationError,
    IntegrityError,
    DiffError,
    DeployError,
    DestroyError,
    ProjectError,
)


def _handle_error(error: Exception) -> NoReturn:
    console.print(f"[bold red]✗ {type(error).__name__}:[/bold red] {error}", highlight=False)
    if os.getenv("FORMWORK_DEBUG", "0") == "1":
        raise error
    raise SystemExit(1) from None


def _load() -> tuple[Stack, FormworkConfig]:
    with console.status("Loading app..."):
        app = load_app()
        stack = get_stack_builder(app).finalize()
        config = get_config(app)
    logger.info("Loaded stack with %d resources", len(stack))
    return stack, config


def _print_status(message: str) -> None:
    console.print(f"[dim]{message}[/dim]", highlight=False)


def run_synth(output: Path | None = None) -> None:
    try:
        stack, _ = _load()
    except FORMWORK_ERRORS as e:
        _handle_error(e)

    body = json.dumps(stack.to_template(), indent=2)
    if output is None:
        console.print_json(body)
        return
    output.write_text(body, encoding="utf-8")
    console.print(
        f"[bold green]✓[/bold green] Wrote template with {len(stack)} resources to {output}"
    )


def run_diff(name: str) -> None:
    try:
        stack, config = _load()
        stack_diff = remote_diff(name, stack, config)
    except FORMWORK_ERRORS as e:
        _handle_error(e)

    console.print(f"[bold]Diff for stack[/bold] [cyan]{name}[/cyan]")
    console.print(format_diff(stack_diff), highlight=False)
    if not stack_diff.has_changes:
        console.print("[green]No resources added or removed.[/green]")


def run_deploy(name: str) -> None:
    try:
        stack, config = _load()
        console.print(f"[bold]Deploying stack[/bold] [cyan]{name}[/cyan]")
        status = deploy(name, stack, config, on_status=_print_status)
    except FORMWORK_ERRORS as e:
        _handle_error(e)

    if status == NO_CHANGES:
        console.print(f"[green]Stack '{name}' is already up to date.[/green]")
    else:
        console.print(f"[bold green]✓[/bold green] Stack '{name}' deployed ({status})")


def _confirm_destroy(name: str) -> bool:
    """Ask user to confirm destroy by typing the stack name. Returns True if confirmed."""
    console.print(
        f"About to [bold red]destroy all resources[/bold red] of stack [bold]{name}[/bold]."
    )
    console.print("[bold yellow]Warning:[/bold yellow] This action cannot be undone!")

    typed_name = console.input(f"Type the stack name '[bold]{name}[/bold]' to confirm: ")
    if typed_name != name:
        console.print(f"Stack name mismatch. Expected '{name}', got '{typed_name}'.")
        console.print("Destruction cancelled.")
        return False
    return True


def run_destroy(name: str, skip_confirm: bool = False) -> None:  # noqa: FBT001, FBT002
    try:
        _, config = _load()
    except FORMWORK_ERRORS as e:
        _handle_error(e)

    if not skip_confirm and not _confirm_destroy(name):
        return

    try:
        destroy(name, config, on_status=_print_status)
    except FORMWORK_ERRORS as e:
        _handle_error(e)
    console.print(f"[bold green]✓[/bold green] Stack '{name}' destroyed")
