"""
CLI entry point for Safeguards.

This module provides the Typer-based command-line interface for Safeguards.

Commands:
    check       Evaluate the declared policies against a packaged service
    policies    List the built-in policy catalog

Architecture Note:
    The CLI is intentionally thin - it parses arguments, wires a reporter
    into the engine and maps the outcome to an exit code. Everything it
    does is available programmatically through safeguards.engine.Engine.
"""

import json
import logging
import traceback
from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from safeguards import __version__
from safeguards.engine import Engine
from safeguards.errors import DeploymentBlockedError, SafeguardsError
from safeguards.policies import default_registry
from safeguards.report import ConsoleReporter, NullReporter, generate_json_report
from safeguards.schema import EngineConfig

# Initialize Typer app with metadata
app = typer.Typer(
    name="safeguards",
    help="Enforce deployment policies against compiled service artifacts.",
    add_completion=False,
    no_args_is_help=True,
)

# Rich console for formatted output
console = Console()
err_console = Console(stderr=True)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"[bold]safeguards[/bold] version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        Optional[bool],
        typer.Option(
            "--version",
            help="Show version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = None,
) -> None:
    """
    Safeguards - Policy enforcement for packaged deployments.

    Evaluate declared policies against a service's compiled artifacts and
    block the deployment when an error-level policy fails.
    """
    pass


def _configure_logging(verbose: bool) -> None:
    """Route library logging through Rich when --verbose is given."""
    if not verbose:
        return
    logging.basicConfig(
        level=logging.DEBUG,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=err_console, rich_tracebacks=True)],
        force=True,
    )


@app.command()
def check(
    service_dir: Annotated[
        Path,
        typer.Argument(
            help="Service directory containing serverless.yml.",
            exists=True,
            file_okay=False,
            resolve_path=True,
        ),
    ] = Path("."),
    stage: Annotated[
        Optional[str],
        typer.Option("--stage", "-s", help="Stage being deployed (overrides the declaration)."),
    ] = None,
    region: Annotated[
        Optional[str],
        typer.Option("--region", "-r", help="Region being deployed to (overrides the declaration)."),
    ] = None,
    provider: Annotated[
        Optional[str],
        typer.Option("--provider", help="Provider name (overrides the declaration)."),
    ] = None,
    tool_version: Annotated[
        str,
        typer.Option(
            "--tool-version",
            help="Version of the deployment framework.",
            envvar="SAFEGUARDS_TOOL_VERSION",
        ),
    ] = "",
    artifacts_dir: Annotated[
        str,
        typer.Option("--artifacts-dir", help="Artifacts directory, relative to SERVICE_DIR."),
    ] = ".serverless",
    isolate_faults: Annotated[
        bool,
        typer.Option(
            "--isolate-faults",
            help="Record a policy that raises as an error-level failure instead of aborting.",
        ),
    ] = False,
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Output results in JSON format."),
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", help="Enable verbose output for debugging."),
    ] = False,
    debug: Annotated[
        bool,
        typer.Option("--debug", help="Enable debug mode with full error tracebacks."),
    ] = False,
) -> None:
    """
    Evaluate the declared policies against a packaged service.

    Reads custom.safeguards from the service declaration, loads the compiled
    artifacts and runs every policy. Exits with 1 if the deployment is blocked.

    Example:
        $ safeguards check ./my-service --stage prod --region eu-west-1
    """
    _configure_logging(verbose)

    reporter = NullReporter() if json_output else ConsoleReporter(console=console, verbose=verbose)
    engine = Engine(
        reporter=reporter,
        config=EngineConfig(artifacts_dir=artifacts_dir, isolate_faults=isolate_faults),
    )

    try:
        evaluation = engine.check_service(
            service_dir,
            provider_name=provider,
            stage=stage,
            region=region,
            tool_version=tool_version,
        )
    except DeploymentBlockedError as e:
        if json_output:
            print(generate_json_report(e.evaluation))
        else:
            console.print(f"[red]{escape(e.message)}[/red]")
            if e.suggestion:
                console.print(f"[dim]{escape(e.suggestion)}[/dim]")
        raise typer.Exit(code=1)
    except SafeguardsError as e:
        if json_output:
            _output_json_error(e.to_dict(), debug)
        else:
            console.print(f"[red]Error: {escape(str(e))}[/red]")
            if debug:
                console.print(f"[dim]{escape(traceback.format_exc())}[/dim]")
        raise typer.Exit(code=1)
    except Exception as e:
        if json_output:
            _output_json_error(
                {"error_type": "policy_fault", "message": f"{type(e).__name__}: {e}"},
                debug,
            )
        else:
            console.print(f"[red]Policy error: {type(e).__name__}: {escape(str(e))}[/red]")
            if debug:
                console.print(f"[dim]{escape(traceback.format_exc())}[/dim]")
        raise typer.Exit(code=1)

    if json_output:
        print(generate_json_report(evaluation))
    elif not evaluation.results:
        console.print("[dim]No safeguards declared.[/dim]")


def _output_json_error(error: dict, include_traceback: bool = False) -> None:
    """Output an error in JSON format."""
    output = {"error": True, **error}
    if include_traceback:
        output["traceback"] = traceback.format_exc()
    print(json.dumps(output, indent=2, default=str))


@app.command()
def policies(
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Output in JSON format."),
    ] = False,
) -> None:
    """List the built-in policy catalog."""
    catalog = [default_registry.get(name) for name in default_registry.list_policies()]

    if json_output:
        output = {
            "policies": [
                {"name": p.name, "description": p.description, "docs": p.docs}
                for p in catalog
            ],
            "count": len(catalog),
        }
        print(json.dumps(output, indent=2))
        return

    table = Table(title=f"Built-in Policies ({len(catalog)})", show_header=True, header_style="bold")
    table.add_column("Name", style="cyan", no_wrap=True)
    table.add_column("Description")
    table.add_column("Docs", style="dim", overflow="fold")
    for p in catalog:
        table.add_row(p.name, p.description, p.docs or "")
    console.print(table)


if __name__ == "__main__":
    app()
