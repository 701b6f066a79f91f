"""CLI entry point for apicheck."""
from __future__ import annotations

import asyncio
import logging
import sys
from typing import Optional

import click

from apicheck import __version__
from apicheck.config import load_settings
from apicheck.execution import Orchestrator
from apicheck.plan import ApiCheckError, find_definition_files, load_definition, render_definition, serialize
from apicheck.reporting import JsonReporter, ReportManager, TerminalReporter


CONTEXT_SETTINGS = {"help_option_names": ["-h", "--help"]}


class CliState:
    """Holds global CLI state."""

    def __init__(self, verbose: bool) -> None:
        self.verbose = verbose


def _print_version(_: click.Context, __: click.Parameter, value: bool) -> None:
    if not value or click.get_current_context().resilient_parsing:
        return
    click.echo(f"apicheck {__version__}")
    raise click.exceptions.Exit()


@click.group(context_settings=CONTEXT_SETTINGS)
@click.option("--verbose", is_flag=True, help="Enable verbose logging output.")
@click.option(
    "--version",
    is_flag=True,
    callback=_print_version,
    expose_value=False,
    is_eager=True,
    help="Show the apicheck version and exit.",
)
@click.pass_context
def cli(ctx: click.Context, verbose: bool) -> None:
    """Build, emit and run API check plans."""

    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    ctx.obj = CliState(verbose=verbose)


@cli.command("plan")
@click.argument("definition", type=click.Path(exists=True, dir_okay=False))
@click.option(
    "--subprocess",
    "use_subprocess",
    is_flag=True,
    help="Run the definition as a separate program and validate what it prints.",
)
def plan_command(definition: str, use_subprocess: bool) -> None:
    """Print the plan JSON a check-definition file produces."""

    try:
        if use_subprocess:
            plan = render_definition(definition)
        else:
            plan = load_definition(definition).plan
    except ApiCheckError as exc:
        raise click.ClickException(str(exc)) from exc
    click.echo(serialize(plan))


@cli.command("run")
@click.argument("definition", type=click.Path(exists=True, dir_okay=False))
@click.option("--config", "config_path", type=click.Path(exists=True, dir_okay=False), help="YAML settings file.")
@click.option("--fail-fast", is_flag=True, help="Stop scheduling nodes after the first failure.")
@click.option("--sequential", is_flag=True, help="Run nodes one at a time in topological order.")
@click.option("--timeout", "timeout_s", type=click.FloatRange(min=0, min_open=True), help="Per-request timeout in seconds.")
@click.option(
    "--report",
    "report_format",
    type=click.Choice(["terminal", "json"]),
    help="Report format (terminal by default).",
)
@click.option("--report-path", type=str, help="When --report json, write to this path.")
@click.option("--no-color", is_flag=True, help="Disable ANSI colors in terminal output.")
@click.pass_obj
def run(
    state: CliState,
    definition: str,
    config_path: Optional[str],
    fail_fast: bool,
    sequential: bool,
    timeout_s: Optional[float],
    report_format: Optional[str],
    report_path: Optional[str],
    no_color: bool,
) -> None:
    """Execute a check-definition file and report the verdict."""

    try:
        settings = load_settings(config_path).merged(
            fail_fast=True if fail_fast else None,
            concurrent=False if sequential else None,
            timeout_s=timeout_s,
            report_format=report_format,
            report_path=report_path,
            color=False if no_color else None,
        )
        loaded = load_definition(definition)
        if settings.report_format == "json":
            reporter = JsonReporter(settings.report_path)
        else:
            reporter = TerminalReporter(use_color=settings.color)
        orchestrator = Orchestrator(
            checks=loaded.checks,
            reporter=ReportManager([reporter]),
            **settings.orchestrator_options(),
        )
        result = asyncio.run(orchestrator.run(loaded.plan))
    except (ApiCheckError, ValueError) as exc:
        raise click.ClickException(str(exc)) from exc
    raise click.exceptions.Exit(0 if result.success else 1)


@cli.command("list")
@click.argument("base", type=click.Path(exists=True, file_okay=False), default=".")
def list_command(base: str) -> None:
    """List check-definition files found under BASE."""

    files = find_definition_files(base)
    if not files:
        click.echo("No check definitions found.")
        return
    for path in files:
        click.echo(str(path))


def main(argv: Optional[list[str]] = None) -> int:
    """Program entry point for console_scripts shim."""

    argv = argv if argv is not None else sys.argv[1:]
    try:
        cli.main(args=argv, prog_name="apicheck", standalone_mode=True)
    except click.ClickException as err:  # pragma: no cover - click handles display
        err.show()
        return err.exit_code
    except SystemExit as exc:  # click may raise exit code
        return int(exc.code or 0)
    return 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
