"""Command-line entrypoints for batch and single-record validation."""
from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import Any, List, Optional

import typer
from rich import print
from rich.markup import escape
from rich.progress import Progress

from .config import ConfigError, load_config
from .schemas import BatchValidationResponse, ValidationProgress, ValidationResult, ValidationSummary
from .validator import ValidationEngine

app = typer.Typer(add_completion=False, help="Invoice validation CLI")


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _load_json(path: Path) -> Any:
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise typer.BadParameter(f"{path} is not valid JSON: {exc}") from exc


def _load_records(path: Path) -> List[Any]:
    data = _load_json(path)
    if isinstance(data, dict) and "records" in data:
        data = data["records"]
    if not isinstance(data, list):
        raise typer.BadParameter(f"{path} must contain a JSON list of invoice records")
    return data


def _build_engine(config: Optional[Path]) -> ValidationEngine:
    try:
        return ValidationEngine(load_config(config) if config else None)
    except ConfigError as exc:
        print(f"[red]Config error:[/red] {escape(str(exc))}")
        raise typer.Exit(code=2)


def _print_summary(summary: ValidationSummary) -> None:
    print(f"[bold]Batch:[/bold] {summary.batch_id}")
    print(f"[bold]Total:[/bold] {summary.total_records}")
    print(f"[green]Valid:[/green] {summary.valid_records}  [red]Invalid:[/red] {summary.invalid_records}")
    if summary.total_discrepancies:
        print(f"Discrepancies: {summary.total_discrepancies}")
        for label, count in (
            ("critical", summary.critical_count),
            ("high", summary.high_severity_count),
            ("medium", summary.medium_severity_count),
            ("low", summary.low_severity_count),
        ):
            if count:
                print(f"- {label}: {count}")
        print(
            f"Amount: total {summary.total_discrepancy_amount:.2f}, "
            f"average {summary.average_discrepancy_amount:.2f}, max {summary.max_discrepancy_amount:.2f}"
        )


def _print_findings(findings: List[ValidationResult]) -> None:
    for finding in sorted(findings, key=lambda item: item.severity.rank, reverse=True):
        print(f"{finding.severity.value.upper()} {finding.record_id} {finding.field}: {escape(finding.message)}")


@app.command()
def validate(
    input: Path = typer.Option(..., exists=True, dir_okay=False, help="JSON file with invoice records"),
    config: Optional[Path] = typer.Option(None, exists=True, dir_okay=False, help="YAML or JSON validation config"),
    report: Optional[Path] = typer.Option(None, help="Optional path to write validation report"),
    show_findings: bool = typer.Option(False, "--show-findings", help="Print every finding"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    """Validate a batch of invoice records."""
    _configure_logging(verbose)
    records = _load_records(input)
    engine = _build_engine(config)

    with Progress(transient=True) as progress:
        task = progress.add_task("Validating", total=len(records))

        def on_progress(update: ValidationProgress) -> None:
            progress.update(task, completed=update.processed_records, description=update.current_operation)

        summary = asyncio.run(engine.validate_batch(records, on_progress=on_progress))

    if report:
        report.parent.mkdir(parents=True, exist_ok=True)
        response = BatchValidationResponse(summary=summary, results=engine.get_results())
        report.write_text(response.model_dump_json(indent=2), encoding="utf-8")
        print(f"Report written to {report}")
    if show_findings:
        _print_findings(engine.get_results())
    _print_summary(summary)
    if summary.invalid_records > 0:
        raise typer.Exit(code=1)


@app.command("check-record")
def check_record(
    input: Path = typer.Option(..., exists=True, dir_okay=False, help="JSON file with one invoice record"),
    config: Optional[Path] = typer.Option(None, exists=True, dir_okay=False, help="YAML or JSON validation config"),
) -> None:
    """Validate a single invoice record."""
    record = _load_json(input)
    engine = _build_engine(config)
    findings = asyncio.run(engine.validate_record(record))
    if not findings:
        print("[green]No discrepancies found[/green]")
        return
    _print_findings(findings)
    raise typer.Exit(code=1)


def main():
    app()


if __name__ == "__main__":
    main()
