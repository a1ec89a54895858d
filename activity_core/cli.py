"""
CLI for activity-core.

Provides `activity-core run` to launch an intent from a config file,
`activity-core check` to validate an activity document, and
`activity-core list-intents`.
"""

import asyncio
import json
import logging
import sys
from typing import Any

import click

from . import __version__
from .config import load_config
from .errors import ActivityFailed
from .errors import ActivityUsageError
from .launcher import ActivityLauncher
from .models import ActivityResult
from .retrieval import default_retriever
from .sandbox import ExecutionSandbox
from .validation import DocumentValidator
from .validation import ValidationResult

EXIT_CODES = {"completed": 0, "failed": 1, "cancelled": 2}


def parse_params(pairs: tuple[str, ...]) -> dict[str, Any]:
    """Parse key=value pairs. Values are decoded as JSON when possible."""
    params: dict[str, Any] = {}
    for pair in pairs:
        key, sep, raw = pair.partition("=")
        if not sep or not key:
            raise click.BadParameter(f"expected key=value, got '{pair}'", param_hint="--param")
        try:
            params[key] = json.loads(raw)
        except json.JSONDecodeError:
            params[key] = raw
    return params


async def run_intent(
    launcher: ActivityLauncher,
    name: str,
    params: dict[str, Any],
    timeout: float | None = None,
) -> ActivityResult:
    """Launch an intent and wait for its outcome. Failures become a result."""
    handle = await launcher.intent_start(name, params)
    if timeout:
        asyncio.get_running_loop().call_later(timeout, handle.cancel, "timeout")
    try:
        return await handle.result
    except ActivityFailed as e:
        return e.result or ActivityResult.failed(e.error)


def print_activity_result(result: ActivityResult) -> None:
    """Print an activity outcome with colored status."""
    colors = {"completed": "green", "cancelled": "yellow", "failed": "red"}
    click.secho(result.status.upper(), fg=colors[result.status], bold=True)
    if result.status == "completed":
        try:
            click.echo(json.dumps(result.value, indent=2, default=str))
        except (TypeError, ValueError):
            click.echo(repr(result.value))
    elif result.status == "cancelled":
        click.echo(f"reason: {result.reason}")
    else:
        click.echo(f"error: {type(result.error).__name__}: {result.error}")


def print_validation_result(result: ValidationResult) -> None:
    """Print validation result with colored output."""
    if result.passed:
        click.secho(result.summary(), fg="green", bold=True)
    else:
        click.secho(result.summary(), fg="red", bold=True)

    click.echo()

    for check in result.checks:
        if check.passed:
            symbol = click.style("✓", fg="green")
        else:
            symbol = click.style("✗", fg="red")

        severity_colors = {"error": "red", "warning": "yellow", "info": "blue"}
        severity = click.style(
            f"[{check.severity}]",
            fg=severity_colors.get(check.severity, "white"),
        )

        click.echo(f"  {symbol} {severity:20} {check.name}: {check.message}")


@click.group()
@click.version_option(version=__version__, prog_name="activity-core")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
def cli(verbose: bool) -> None:
    """Activity Core - launch and validate activity documents."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@cli.command()
@click.argument("name")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=True, dir_okay=False),
    help="YAML config with intents (default: $ACTIVITY_CORE_CONFIG)",
)
@click.option("--param", "-p", "params", multiple=True, help="Activity parameter as key=value")
@click.option("--timeout", "-t", type=float, help="Cancel with reason 'timeout' after N seconds")
def run(name: str, config_path: str | None, params: tuple[str, ...], timeout: float | None) -> None:
    """Launch intent NAME and print its result.

    Exit status is 0 when completed, 1 when failed, 2 when cancelled.

    Examples:

        activity-core run echo -c activities.yaml -p x=21

        activity-core run picker -c activities.yaml --timeout 30
    """
    config = load_config(config_path)
    launcher = ActivityLauncher.from_config(config)
    parsed = parse_params(params)

    try:
        result = asyncio.run(run_intent(launcher, name, parsed, timeout))
    except ActivityUsageError as e:
        raise click.ClickException(str(e))

    print_activity_result(result)
    sys.exit(EXIT_CODES[result.status])


@cli.command()
@click.argument("locator")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=True, dir_okay=False),
    help="YAML config (for base_path, timeout and allowed imports)",
)
@click.option("--quiet", "-q", is_flag=True, help="Only show summary, not individual checks")
def check(locator: str, config_path: str | None, quiet: bool) -> None:
    """Validate the activity document at LOCATOR.

    LOCATOR is a URL, file:// URI or local path.
    """
    config = load_config(config_path)
    validator = DocumentValidator(
        retriever=default_retriever(base_path=config.base_path, timeout=config.retrieval_timeout),
        sandbox=ExecutionSandbox(allowed_imports=config.allowed_imports),
    )

    click.echo(f"Validating activity document: {locator}")
    click.echo()

    result = asyncio.run(validator.validate(locator))

    if quiet:
        click.echo(result.summary())
    else:
        print_validation_result(result)

    sys.exit(0 if result.passed else 1)


@cli.command(name="list-intents")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=True, dir_okay=False),
    help="YAML config with intents (default: $ACTIVITY_CORE_CONFIG)",
)
def list_intents(config_path: str | None) -> None:
    """List registered intents."""
    config = load_config(config_path)
    if not config.intents:
        click.echo("No intents registered.")
        return

    click.echo("Registered intents:")
    click.echo()
    for name, locator in sorted(config.intents.items()):
        click.echo(f"  {click.style(name, fg='cyan', bold=True):30} {locator}")


def main() -> None:
    """Entry point for the CLI."""
    cli()


if __name__ == "__main__":
    main()
