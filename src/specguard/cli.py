"""specguard CLI Tool - Main entry point."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from specguard import __version__
from specguard.cli_utils import (
    EXIT_SYSTEM_ERROR,
    configure_logging,
    error,
    info,
    json_option,
    output_option,
    project_path_argument,
    quiet_option,
    resolve_project_path,
    skip_option,
    specs_dir_option,
    split_keys,
    verbose_option,
    warning,
    wire_config,
)
from specguard.config import SpecguardConfig
from specguard.report import render_status_icon, write_json_report
from specguard.validators.base import ValidatorReport
from specguard.validators.git_helper import NotAGitRepositoryError
from specguard.validators.runner import (
    REGISTRY,
    TIER_TITLES,
    TIERS,
    RunSummary,
    UnknownValidatorError,
    ValidatorKey,
    ValidatorRunner,
    parse_key,
    score_label,
    tier_keys,
)
from specguard.validators.spec_adherence import SpecPathError

app = typer.Typer(
    name="specguard",
    help="specguard - Grade a project on code quality, security, spec adherence and workflow.",
    add_completion=False,
)

# Rich console for output
console = Console()

TOP_RECOMMENDATIONS = 5

# Validators that accept --target
TARGETED_KEYS = {ValidatorKey.CODE_QUALITY.value, ValidatorKey.SECURITY.value}


# -----------------------------------------------------------------------------
# Output Helpers
# -----------------------------------------------------------------------------


def _write_output(report: RunSummary | ValidatorReport, output: Path | None, quiet: bool) -> None:
    if output is None:
        return
    try:
        written = write_json_report(report, output)
    except OSError as e:
        error(f"Could not write report to {output}: {e}", exit_code=EXIT_SYSTEM_ERROR)
    if not quiet:
        info(f"Report written to {written}")


def _print_checks(report: ValidatorReport, indent: str) -> None:
    for check in report.checks:
        console.print(
            f"{indent}{render_status_icon(check.status)} {escape(check.name)}: {escape(check.message)}"
        )


def _print_recommendations(recommendations: list[str]) -> None:
    if not recommendations:
        return
    console.print("\n[bold]Top Recommendations:[/bold]")
    for recommendation in recommendations[:TOP_RECOMMENDATIONS]:
        console.print(f"   - {escape(recommendation)}")
    if len(recommendations) > TOP_RECOMMENDATIONS:
        console.print(
            f"   ... and {len(recommendations) - TOP_RECOMMENDATIONS} more recommendations"
        )


def _render_summary(summary: RunSummary, quiet: bool) -> None:
    status = summary.overall_status
    score = summary.quality_score

    if quiet:
        console.print(f"{status} {score}%")
        return

    console.print(f"\n{render_status_icon(status)} [bold]Overall Status: {status}[/bold]")
    console.print(f"Project: {escape(summary.project_path)}")
    console.print(f"Duration: {summary.duration:.1f}s\n")

    console.print("[bold]Summary Statistics:[/bold]")
    console.print(f"   Total Validators: {summary.total}")
    console.print(f"   Passed: {summary.passed}")
    console.print(f"   Warnings: {summary.warnings}")
    console.print(f"   Failed: {summary.failed}")
    if summary.skipped:
        console.print(
            f"   Skipped: {summary.skipped} ({escape(', '.join(summary.skipped_validators))})"
        )

    for tier in TIERS:
        keys = [key for key in tier_keys(tier) if key.value in summary.results]
        if not keys:
            continue
        console.print(f"\n[bold]Tier {tier} - {TIER_TITLES[tier]}:[/bold]")
        for key in keys:
            report = summary.results[key.value]
            title = REGISTRY[key].title
            console.print(f"  {render_status_icon(report.status)} {title}: {report.status}")
            if report.error:
                console.print(f"       {escape(report.error)}")
            _print_checks(report, indent="       ")

    _print_recommendations(summary.recommendations)
    console.print(f"\n[bold]Overall Quality Score: {score}%[/bold] ({score_label(score)})")


def _render_report(report: ValidatorReport, quiet: bool) -> None:
    if quiet:
        console.print(report.status)
        return

    title = REGISTRY[ValidatorKey(report.validator)].title
    console.print(f"\n{render_status_icon(report.status)} [bold]{title}: {report.status}[/bold]")
    if report.target:
        console.print(f"Target: {escape(report.target)}\n")
    _print_checks(report, indent="  ")
    _print_recommendations(list(report.recommendations))

    s = report.summary
    console.print(
        f"\nTotal: {s.total}  Passed: {s.passed}  Warnings: {s.warnings}  Failed: {s.failed}"
    )


def _finish_summary(
    summary: RunSummary,
    json_output: bool,
    output: Path | None,
    quiet: bool,
) -> None:
    """Export, print, and exit with the run's exit code."""
    _write_output(summary, output, quiet or json_output)
    if json_output:
        console.print_json(summary.to_json())
    else:
        _render_summary(summary, quiet)
    if summary.exit_code:
        raise typer.Exit(code=summary.exit_code)


def _prepare(
    path: str | None,
    specs_dir: str | None,
    verbose: bool,
    skip: list[str] | None = None,
) -> tuple[Path, SpecguardConfig]:
    configure_logging(verbose)
    project_root = resolve_project_path(path)
    config = wire_config(specs_dir=specs_dir, skip=skip, start_dir=project_root)
    for key in config.skip:
        try:
            parse_key(key)
        except UnknownValidatorError as e:
            error(str(e))
    return project_root, config


# -----------------------------------------------------------------------------
# Version and Main Callbacks
# -----------------------------------------------------------------------------


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"specguard version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool | None = typer.Option(
        None,
        "--version",
        "-v",
        help="Show version and exit.",
        callback=version_callback,
        is_eager=True,
    ),
) -> None:
    """specguard - Grade a project on code quality, security, spec adherence and workflow."""
    pass


# -----------------------------------------------------------------------------
# List Command
# -----------------------------------------------------------------------------


@app.command("list")
def list_validators(
    json_output: bool = json_option(),
) -> None:
    """List available validators by tier."""
    if json_output:
        payload: dict[str, Any] = {
            "validators": [
                {
                    "key": key.value,
                    "title": entry.title,
                    "description": entry.description,
                    "tier": entry.tier,
                }
                for key, entry in REGISTRY.items()
            ]
        }
        console.print_json(json.dumps(payload))
        return

    table = Table(title="Available Validators")
    table.add_column("Tier", style="magenta")
    table.add_column("Key", style="cyan")
    table.add_column("Name", style="green")
    table.add_column("Description")

    for tier in TIERS:
        for key in tier_keys(tier):
            entry = REGISTRY[key]
            table.add_row(f"{tier} - {TIER_TITLES[tier]}", key.value, entry.title, entry.description)

    console.print(table)


# -----------------------------------------------------------------------------
# Run Commands
# -----------------------------------------------------------------------------


@app.command("all")
def run_all(
    path: str | None = project_path_argument(),
    skip: str | None = skip_option(),
    specs_dir: str | None = specs_dir_option(),
    json_output: bool = json_option(),
    output: Path | None = output_option(),
    quiet: bool = quiet_option(),
    verbose: bool = verbose_option(),
) -> None:
    """Run every validator, tier 1 first.

    Exits with code 1 when any validator fails or errors.
    Warnings do not cause failure.
    """
    project_root, config = _prepare(path, specs_dir, verbose, skip=split_keys(skip))
    summary = ValidatorRunner(project_root, config).run_all()
    _finish_summary(summary, json_output, output, quiet)


@app.command("tier")
def run_tier(
    tier: int = typer.Argument(..., help="Tier to run (1 or 2)."),
    path: str | None = project_path_argument(),
    skip: str | None = skip_option(),
    specs_dir: str | None = specs_dir_option(),
    json_output: bool = json_option(),
    output: Path | None = output_option(),
    quiet: bool = quiet_option(),
    verbose: bool = verbose_option(),
) -> None:
    """Run the validators of one tier.

    Usage:
      specguard tier 1   - Critical quality gates (code quality, spec adherence)
      specguard tier 2   - Workflow checks (security, branches, testing, docs)
    """
    if tier not in TIERS:
        error(f"Invalid tier: {tier}. Must be one of: {', '.join(map(str, TIERS))}")

    project_root, config = _prepare(path, specs_dir, verbose, skip=split_keys(skip))
    summary = ValidatorRunner(project_root, config).run_tier(tier)
    _finish_summary(summary, json_output, output, quiet)


@app.command("run")
def run_subset(
    keys: str = typer.Argument(..., help="Comma-separated validator keys, e.g. security,testing."),
    path: str | None = project_path_argument(),
    skip: str | None = skip_option(),
    specs_dir: str | None = specs_dir_option(),
    json_output: bool = json_option(),
    output: Path | None = output_option(),
    quiet: bool = quiet_option(),
    verbose: bool = verbose_option(),
) -> None:
    """Run a named subset of validators."""
    selected = split_keys(keys)
    for key in selected:
        try:
            parse_key(key)
        except UnknownValidatorError as e:
            error(f"{e}. Run 'specguard list' to see available validators.")
    if not selected:
        error("No validator keys given.")

    project_root, config = _prepare(path, specs_dir, verbose, skip=split_keys(skip))
    summary = ValidatorRunner(project_root, config).run_subset(selected)
    _finish_summary(summary, json_output, output, quiet)


@app.command("check")
def check(
    key: str = typer.Argument(..., help="Validator key, e.g. code-quality."),
    path: str | None = project_path_argument(),
    target: Path | None = typer.Option(
        None,
        "--target",
        "-t",
        help="Single file to check (code-quality and security only).",
    ),
    spec_path: Path | None = typer.Option(
        None,
        "--spec-path",
        help="Spec directory for spec-adherence (default: latest dated spec).",
    ),
    implementation_path: Path | None = typer.Option(
        None,
        "--implementation-path",
        help="Implementation directory for spec-adherence (default: project path).",
    ),
    specs_dir: str | None = specs_dir_option(),
    json_output: bool = json_option(),
    output: Path | None = output_option(),
    quiet: bool = quiet_option(),
    verbose: bool = verbose_option(),
) -> None:
    """Run a single validator and show every check.

    Exits with code 1 when the validator fails.
    """
    project_root, config = _prepare(path, specs_dir, verbose)
    runner = ValidatorRunner(project_root, config)
    if target is not None and key in {k.value for k in REGISTRY} - TARGETED_KEYS:
        warning(f"--target is ignored by {key}; checking the whole project.")

    try:
        report = runner.run_validator(
            key,
            target=target,
            spec_path=spec_path,
            implementation_path=implementation_path,
        )
    except UnknownValidatorError as e:
        error(f"{e}. Run 'specguard list' to see available validators.")
    except (SpecPathError, NotAGitRepositoryError) as e:
        if json_output:
            console.print_json(json.dumps({"validator": key, "status": "ERROR", "error": str(e)}))
        error(str(e))

    _write_output(report, output, quiet or json_output)
    if json_output:
        console.print_json(json.dumps(report.to_dict(), ensure_ascii=False))
    else:
        _render_report(report, quiet)

    if report.status in ("FAIL", "ERROR"):
        raise typer.Exit(code=1)


if __name__ == "__main__":
    app()
