"""CLI interface for UpgradeGuard."""

import functools
import logging
import sys
from pathlib import Path

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from upgradeguard import __version__
from upgradeguard.analyzer import UpgradeAnalyzer
from upgradeguard.config import UpgradeGuardConfig
from upgradeguard.errors import UpgradeGuardError
from upgradeguard.loader import SOURCE_FORMATS
from upgradeguard.models.report import AnalysisResult, BatchAnalysisReport, ReportSummary
from upgradeguard.models.rules import Finding
from upgradeguard.rules import list_all_rules

console = Console()

SEVERITY_COLORS = {
    "critical": "red",
    "high": "orange1",
    "medium": "yellow",
    "low": "blue",
    "info": "cyan",
}


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def _load_config(config_path: str | None) -> UpgradeGuardConfig:
    if config_path:
        return UpgradeGuardConfig.from_file(config_path)
    for candidate in (Path("upgradeguard.toml"), Path("pyproject.toml")):
        if candidate.is_file():
            return UpgradeGuardConfig.from_file(candidate)
    return UpgradeGuardConfig()


def _print_finding(finding: Finding) -> None:
    color = SEVERITY_COLORS.get(finding.severity.value, "white")
    console.print(
        f"[{color}][{finding.severity.value.upper()}][/{color}] "
        f"[bold]{finding.rule_id}: {finding.category.value}[/bold]"
        + (f" ({escape(finding.title)})" if finding.title else "")
    )
    console.print(f"  Location: {escape(str(finding.location))}", highlight=False)
    console.print(f"  {escape(finding.message)}", highlight=False)
    if finding.recommendation:
        console.print(f"  [dim]→ {escape(finding.recommendation)}[/dim]", highlight=False)
    console.print()


def _print_summary_table(summary: ReportSummary) -> None:
    table = Table(title="Summary")
    table.add_column("Severity", style="cyan")
    table.add_column("Count", style="magenta")

    table.add_row("Critical", str(summary.critical_count))
    table.add_row("High", str(summary.high_count))
    table.add_row("Medium", str(summary.medium_count))
    table.add_row("Low", str(summary.low_count))
    table.add_row("Info", str(summary.info_count))
    table.add_row("[bold]Total[/bold]", f"[bold]{summary.total_findings}[/bold]")
    console.print(table)


def _print_result_text(result: AnalysisResult) -> None:
    """Print one analysis result for humans."""
    target = result.contract_id
    if result.previous_id:
        target = f"{result.previous_id} → {result.contract_id}"
    target = escape(target)

    if not result.findings:
        console.print(f"\n[bold green]✓ No issues found in {target}[/bold green]\n")
        return

    console.print(f"\n[bold]Findings in {target}:[/bold]\n")
    for finding in result.findings:
        _print_finding(finding)
    _print_summary_table(result.summary)

    if result.summary.passed:
        console.print("[bold green]✓ PASSED[/bold green]")
    else:
        console.print("[bold red]✗ FAILED[/bold red]")


def _print_batch_report_text(report: BatchAnalysisReport) -> None:
    """Print a batch report for humans."""
    console.print("=" * 80)
    console.print("[bold]UPGRADEGUARD ANALYSIS REPORT[/bold]")
    console.print("=" * 80)
    console.print()

    summary = report.summary
    console.print("[bold]SUMMARY[/bold]")
    console.print("-" * 80)
    console.print(f"Contracts analyzed: {summary.contracts_analyzed}")
    console.print(
        f"Total findings: {summary.total_findings} "
        f"({summary.critical_count} critical, "
        f"{summary.high_count} high, "
        f"{summary.medium_count} medium, "
        f"{summary.low_count} low, "
        f"{summary.info_count} info)"
    )
    status_color = "green" if report.status == "PASSED" else "red"
    console.print(f"Status: [{status_color}]{report.status}[/{status_color}]")
    console.print()

    for result in report.results:
        if not result.has_findings:
            continue
        console.print("=" * 80)
        console.print(f"[bold]CONTRACT: {result.contract_id}[/bold] ({result.source})")
        console.print("=" * 80)
        console.print()
        for finding in result.findings:
            _print_finding(finding)

    if report.failed:
        console.print("=" * 80)
        console.print(f"[bold red]FAILED ANALYSES ({len(report.failed)})[/bold red]")
        console.print("=" * 80)
        for result in report.failed:
            console.print(f"[red]✗ {result.source}[/red]")
            console.print(f"  Error: {escape(str(result.error))}", highlight=False)
        console.print()


def _handle_errors(func):
    """Print errors with rich and exit 1; re-raise under --debug."""

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        debug = kwargs.get("debug", False)
        try:
            return func(*args, **kwargs)
        except (UpgradeGuardError, FileNotFoundError) as e:
            console.print(f"[bold red]Error:[/bold red] {escape(str(e))}", highlight=False)
            if debug:
                raise
            sys.exit(1)

    return wrapper


def _common_options(func):
    func = click.option("--debug", is_flag=True, help="Re-raise errors with a traceback")(func)
    func = click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")(func)
    func = click.option(
        "--config",
        "config_path",
        type=click.Path(exists=True, dir_okay=False),
        help="Configuration file (upgradeguard.toml or pyproject.toml)",
    )(func)
    func = click.option(
        "--format",
        "output_format",
        type=click.Choice(["text", "json"]),
        default="text",
        help="Output format",
    )(func)
    func = click.option(
        "--implementation/--no-implementation",
        default=None,
        help="Force whether contracts are proxy implementations (detected by default)",
    )(func)
    func = click.option("--contract", help="Contract to select from a solc AST")(func)
    func = click.option(
        "--source-format",
        type=click.Choice(list(SOURCE_FORMATS)),
        default="auto",
        help="Input format",
    )(func)
    return func


@click.group()
@click.version_option(version=__version__, prog_name="upgradeguard")
def cli() -> None:
    """UpgradeGuard - Check upgradeable contracts for initialization, storage
    layout and upgrade authorization flaws."""
    pass


@cli.command()
@click.argument("old", type=click.Path(exists=True, dir_okay=False))
@click.argument("new", type=click.Path(exists=True, dir_okay=False), required=False)
@_common_options
@_handle_errors
def check(
    old: str,
    new: str | None,
    source_format: str,
    contract: str | None,
    implementation: bool | None,
    output_format: str,
    config_path: str | None,
    verbose: bool,
    debug: bool,
) -> None:
    """Analyze one contract version, or NEW as an upgrade of OLD.

    Exits 1 if any finding has a failing severity (critical or high by
    default) or if a contract cannot be loaded.

    Examples:
        upgradeguard check VaultV1.json
        upgradeguard check VaultV1.json VaultV2.json --format json
        upgradeguard check out/Vault.ast.json --contract Vault
    """
    _setup_logging(verbose)
    analyzer = UpgradeAnalyzer(
        _load_config(config_path),
        source_format=source_format,
        contract_name=contract,
        is_proxy_implementation=implementation,
    )

    if new is None:
        result = analyzer.analyze_file(old)
    else:
        result = analyzer.analyze_file(new, previous_path=old)

    if output_format == "json":
        console.print_json(data=result.to_dict())
    else:
        _print_result_text(result)
    sys.exit(result.exit_code)


@cli.command()
@click.argument("paths", nargs=-1, required=True, type=click.Path(exists=True))
@click.option("-j", "--jobs", type=click.IntRange(min=1), default=4, help="Worker threads")
@_common_options
@_handle_errors
def scan(
    paths: tuple[str, ...],
    jobs: int,
    source_format: str,
    contract: str | None,
    implementation: bool | None,
    output_format: str,
    config_path: str | None,
    verbose: bool,
    debug: bool,
) -> None:
    """Analyze independent contract files in parallel.

    PATHS can be JSON files or directories (searched recursively for
    *.json). A file that fails to load is reported and the batch continues.

    Examples:
        upgradeguard scan build/contracts --jobs 8
    """
    _setup_logging(verbose)
    analyzer = UpgradeAnalyzer(
        _load_config(config_path),
        source_format=source_format,
        contract_name=contract,
        is_proxy_implementation=implementation,
    )

    files: list[Path] = []
    for path in map(Path, paths):
        files.extend(sorted(path.rglob("*.json")) if path.is_dir() else [path])

    if output_format == "json":
        report = analyzer.analyze_batch(files, jobs=jobs)
        console.print_json(data=report.to_dict())
    else:
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            console=console,
            transient=True,
        ) as progress:
            task = progress.add_task("[cyan]Analyzing contracts...", total=None)
            report = analyzer.analyze_batch(
                files,
                jobs=jobs,
                progress_callback=lambda target, current, total: progress.update(
                    task, description=f"[cyan]Analyzed {Path(target).name} ({current}/{total})"
                ),
            )
        _print_batch_report_text(report)
    sys.exit(report.exit_code)


@cli.command(name="rules")
def list_rules() -> None:
    """List the registered rules."""
    table = Table(title="Rules")
    table.add_column("ID", style="cyan")
    table.add_column("Severity")
    table.add_column("Category")
    table.add_column("Name")

    for rule_id, rule in sorted(list_all_rules().items()):
        color = SEVERITY_COLORS.get(rule.severity.value, "white")
        table.add_row(
            rule_id,
            f"[{color}]{rule.severity.value}[/{color}]",
            rule.finding_category.value,
            rule.name,
        )
    console.print(table)


def main() -> None:
    """Entry point for CLI."""
    cli()


if __name__ == "__main__":
    main()
