"""Command-line interface for GTM Inspector using Typer."""

import json
import logging
from enum import IntEnum
from pathlib import Path
from typing import Annotated, Any, Dict, Optional

import typer
import yaml

from .. import __version__
from ..config import ConfigLoadError, InspectorConfig, load_config, save_default_config
from ..models import InspectionReport, InspectionStatus
from ..persistence import ExportFormat, FileTableSink
from ..reporting import SummaryFormatter, build_container_summary
from ..service import ContainerInspector, is_valid_container_id


logger = logging.getLogger(__name__)


class ExitCode(IntEnum):
    """Process exit codes."""
    SUCCESS = 0
    PARSE_FAILED = 1
    CONFIG_ERROR = 3
    FETCH_ERROR = 4


STATUS_EXIT_CODES = {
    InspectionStatus.SUCCESS: ExitCode.SUCCESS,
    InspectionStatus.PARSE_FAILED: ExitCode.PARSE_FAILED,
    InspectionStatus.FETCH_FAILED: ExitCode.FETCH_ERROR,
    InspectionStatus.INVALID_CONTAINER: ExitCode.CONFIG_ERROR,
}

SUMMARY_SUFFIXES = {"text": "txt", "json": "json", "yaml": "yaml"}


app = typer.Typer(
    name="gtm-inspector",
    help="GTM Inspector - audit a published Google Tag Manager container",
    add_completion=False
)


@app.callback()
def main():
    """
    GTM Inspector - reverse-parse the public gtm.js of a container into
    tag, trigger, variable and vendor tables.
    """
    pass


@app.command(name="version")
def show_version():
    """Show version information."""
    typer.echo(f"GTM Inspector v{__version__}")


ConfigOption = Annotated[
    Optional[Path],
    typer.Option("--config", "-c", help="Path to YAML configuration file")
]
EnvOption = Annotated[
    Optional[str],
    typer.Option("--env", "-e", help="Configuration environment (development, staging, production, test)")
]
OutOption = Annotated[
    Optional[Path],
    typer.Option("--out", "-o", help="Output directory for tables")
]
FormatOption = Annotated[
    Optional[ExportFormat],
    typer.Option("--format", help="Table file format")
]
DebugOption = Annotated[
    bool,
    typer.Option("--debug-table", help="Also write the GTM_Debug source diagnostics table")
]
SummaryOption = Annotated[
    bool,
    typer.Option("--summary", help="Print a grouped container summary")
]
SummaryFormatOption = Annotated[
    str,
    typer.Option("--summary-format", help="Summary format: text, json or yaml")
]
JsonOption = Annotated[
    bool,
    typer.Option("--json", help="Print the inspection report as JSON")
]
VerboseOption = Annotated[
    bool,
    typer.Option("--verbose", "-v", help="Enable debug logging")
]
QuietOption = Annotated[
    bool,
    typer.Option("--quiet", "-q", help="Only log errors")
]
PrintConfigOption = Annotated[
    bool,
    typer.Option("--print-config", help="Print effective configuration and exit")
]


@app.command()
def inspect(
    container_id: Annotated[str, typer.Argument(help="Container id, e.g. GTM-ABC123")],
    config_file: ConfigOption = None,
    env: EnvOption = None,
    out: OutOption = None,
    output_format: FormatOption = None,
    debug_table: DebugOption = False,
    summary: SummaryOption = False,
    summary_format: SummaryFormatOption = "text",
    as_json: JsonOption = False,
    verbose: VerboseOption = False,
    quiet: QuietOption = False,
    print_config: PrintConfigOption = False,
):
    """Download a container's gtm.js and inspect it."""
    config = _prepare(config_file, env, out, output_format, debug_table, verbose, quiet, print_config)

    if not is_valid_container_id(container_id.strip()):
        typer.echo(f"❌ Invalid container id: {container_id!r} (expected GTM-XXXXXXX)", err=True)
        raise typer.Exit(code=ExitCode.CONFIG_ERROR.value)

    inspector = ContainerInspector(config=config)
    report = inspector.inspect(container_id)
    _finish(report, inspector, config, summary, summary_format, as_json)


@app.command()
def parse(
    file: Annotated[Path, typer.Argument(help="Saved gtm.js file")],
    container_id: Annotated[str, typer.Option("--container-id", "-i", help="Container id the file belongs to")],
    config_file: ConfigOption = None,
    env: EnvOption = None,
    out: OutOption = None,
    output_format: FormatOption = None,
    debug_table: DebugOption = False,
    summary: SummaryOption = False,
    summary_format: SummaryFormatOption = "text",
    as_json: JsonOption = False,
    verbose: VerboseOption = False,
    quiet: QuietOption = False,
    print_config: PrintConfigOption = False,
):
    """Inspect a saved container file without downloading it."""
    config = _prepare(config_file, env, out, output_format, debug_table, verbose, quiet, print_config)

    if not is_valid_container_id(container_id.strip()):
        typer.echo(f"❌ Invalid container id: {container_id!r} (expected GTM-XXXXXXX)", err=True)
        raise typer.Exit(code=ExitCode.CONFIG_ERROR.value)

    try:
        raw_js = file.read_text(encoding="utf-8", errors="replace")
    except OSError as e:
        typer.echo(f"❌ Cannot read {file}: {e}", err=True)
        raise typer.Exit(code=ExitCode.CONFIG_ERROR.value)

    inspector = ContainerInspector(config=config)
    report = inspector.inspect_source(container_id, raw_js)
    _finish(report, inspector, config, summary, summary_format, as_json)


@app.command(name="init-config")
def init_config(
    path: Annotated[Path, typer.Argument(help="Where to write the default configuration")] = Path("gtm_inspector.yaml"),
    force: Annotated[bool, typer.Option("--force", help="Overwrite an existing file")] = False,
):
    """Write a default YAML configuration file."""
    if path.exists() and not force:
        typer.echo(f"❌ {path} already exists (use --force to overwrite)", err=True)
        raise typer.Exit(code=ExitCode.CONFIG_ERROR.value)
    try:
        save_default_config(path)
    except ConfigLoadError as e:
        typer.echo(f"❌ {e}", err=True)
        raise typer.Exit(code=ExitCode.CONFIG_ERROR.value)
    typer.echo(f"✅ Wrote default configuration to {path}")


def _prepare(config_file: Optional[Path], env: Optional[str], out: Optional[Path],
             output_format: Optional[ExportFormat], debug_table: bool,
             verbose: bool, quiet: bool, print_config: bool) -> InspectorConfig:
    """Load configuration, apply flags and set up logging."""
    if verbose and quiet:
        typer.echo("❌ --verbose and --quiet are mutually exclusive", err=True)
        raise typer.Exit(code=ExitCode.CONFIG_ERROR.value)

    overrides: Dict[str, Any] = {}
    if out is not None:
        overrides.setdefault("output", {})["directory"] = str(out)
    if output_format is not None:
        overrides.setdefault("output", {})["format"] = output_format.value
    if debug_table:
        overrides.setdefault("output", {})["write_debug"] = True
    if verbose:
        overrides.setdefault("logging", {})["level"] = "DEBUG"
    elif quiet:
        overrides.setdefault("logging", {})["level"] = "ERROR"

    try:
        config = load_config(config_file, environment=env, overrides=overrides)
    except ConfigLoadError as e:
        typer.echo(f"❌ Configuration error: {e}", err=True)
        raise typer.Exit(code=ExitCode.CONFIG_ERROR.value)

    logging.basicConfig(
        level=getattr(logging, config.logging.level),
        format=config.logging.format,
        force=True
    )

    if print_config:
        typer.echo("# Effective Configuration")
        typer.echo(yaml.dump(config.model_dump(mode="json"), default_flow_style=False, sort_keys=False))
        raise typer.Exit()

    return config


def _finish(report: InspectionReport, inspector: ContainerInspector, config: InspectorConfig,
            summary: bool, summary_format: str, as_json: bool) -> None:
    """Print results, write the summary file and exit with the status code."""
    container_summary = None
    if summary or (config.output.write_summary and config.output.directory is not None):
        container_summary = build_container_summary(report.container_id, report.model, report.vendors)

    formatter = SummaryFormatter(summary_format, verbose=logger.isEnabledFor(logging.DEBUG))
    if container_summary is not None and config.output.write_summary and config.output.directory is not None:
        suffix = SUMMARY_SUFFIXES.get(formatter.format_type, "txt")
        summary_path = Path(config.output.directory) / f"GTM_Summary.{suffix}"
        try:
            summary_path.parent.mkdir(parents=True, exist_ok=True)
            summary_path.write_text(formatter.format_summary(container_summary), encoding="utf-8")
        except OSError as e:
            logger.error(f"Failed to write summary to {summary_path}: {e}")

    if as_json:
        payload = report.to_summary_dict()
        if summary and container_summary is not None:
            payload["summary"] = container_summary.to_dict()
        typer.echo(json.dumps(payload, indent=2, default=str))
    else:
        typer.echo(_describe(report))
        if isinstance(inspector.sink, FileTableSink):
            for path in inspector.sink.written:
                typer.echo(f"   📄 {path}")
        if summary and container_summary is not None:
            typer.echo("")
            typer.echo(formatter.format_summary(container_summary))

    raise typer.Exit(code=STATUS_EXIT_CODES[report.status].value)


def _describe(report: InspectionReport) -> str:
    if report.status == InspectionStatus.SUCCESS:
        return (
            f"✅ {report.container_id}: {report.tag_count} tags, {report.trigger_count} triggers, "
            f"{report.variable_count} variables, {report.vendor_hit_count} vendor ids "
            f"(via {report.strategy}, {report.issue_count} issues)"
        )
    if report.status == InspectionStatus.PARSE_FAILED:
        return (
            f"⚠️  {report.container_id}: container data not found in {report.source_length} characters; "
            f"{report.vendor_hit_count} vendor ids found by scan"
        )
    return f"❌ {report.container_id}: {report.status.value}: {report.error_message}"


def cli_main():
    """Entry point for console script."""
    app()


if __name__ == "__main__":
    cli_main()
