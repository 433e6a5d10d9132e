"""MEP Sleeves CLI.

Usage:
    python -m mep_sleeves <command> <document.json> [options]

Mutating commands (place, cluster, cleanup, marks) write the document back unless
--dry-run is given or --output points elsewhere. All commands print JSON.
"""
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Callable, Optional

import typer
from pydantic import ValidationError

from mep_sleeves import __version__
from mep_sleeves.errors import TransactionError
from mep_sleeves.models.document import ModelDocument
from mep_sleeves.models.elements import MepCategory
from mep_sleeves.models.geometry import BoundingBox3D, Point3D
from mep_sleeves.models.settings import PlacementSettings
from mep_sleeves.placement.cleanup import (
    assign_marks,
    delete_zero_size_openings,
    opening_counts,
    summarize_openings_at,
)
from mep_sleeves.placement.orchestrator import PlacementOrchestrator
from mep_sleeves.placement.report import RunReport
from mep_sleeves.store.memory import DocumentStore

logger = logging.getLogger(__name__)

app = typer.Typer(
    name="mep_sleeves",
    help="MEP Sleeves: place sleeve openings where MEP elements cross walls, floors and framing.",
    no_args_is_help=True,
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _output(data: dict) -> None:
    """Print JSON output to stdout."""
    typer.echo(json.dumps(data, indent=2, ensure_ascii=False))


def _fail(message: str) -> None:
    _output({"ok": False, "error": message})
    raise typer.Exit(1)


def _load_document(path: Path) -> ModelDocument:
    """Load a model document, failing with a JSON error."""
    if not path.exists():
        _fail(f"Document not found: {path}")
    try:
        return ModelDocument.load(path)
    except ValidationError as exc:
        _fail(f"Invalid document {path}: {exc.error_count()} validation error(s)")


def _load_settings(path: Optional[Path]) -> PlacementSettings:
    if path is None:
        return PlacementSettings()
    if not path.exists():
        _fail(f"Settings not found: {path}")
    try:
        return PlacementSettings.load(path)
    except ValidationError as exc:
        _fail(f"Invalid settings {path}: {exc.error_count()} validation error(s)")


def _save(document: ModelDocument, source: Path, output: Optional[Path], dry_run: bool) -> Optional[str]:
    if dry_run:
        return None
    return str(document.save(output or source))


def _parse_region(text: Optional[str]) -> Optional[BoundingBox3D]:
    """Parse 'x0,y0,z0,x1,y1,z1' into a host-space box."""
    if text is None:
        return None
    try:
        x0, y0, z0, x1, y1, z1 = (float(v) for v in text.split(","))
        return BoundingBox3D(min=Point3D(x=x0, y=y0, z=z0), max=Point3D(x=x1, y=y1, z=z1))
    except ValueError:
        _fail(f"Invalid region '{text}', expected x0,y0,z0,x1,y1,z1 with min <= max")


def _run_or_fail(run: Callable[[], RunReport]) -> RunReport:
    """Run a placement pass, turning an aborted run into a JSON error."""
    try:
        return run()
    except Exception as exc:
        logger.debug("Run aborted", exc_info=True)
        _fail(f"Run aborted and rolled back: {exc}")


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging on stderr"),
):
    """Configure logging for all commands."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


# ---------------------------------------------------------------------------
# Mutating commands
# ---------------------------------------------------------------------------

@app.command()
def place(
    document_path: Path = typer.Argument(..., help="Model document (JSON)"),
    category: Optional[list[MepCategory]] = typer.Option(
        None, "--category", "-c", help="Restrict to categories (repeatable)"
    ),
    no_cluster: bool = typer.Option(False, "--no-cluster", help="Skip the cluster pass"),
    region: Optional[str] = typer.Option(
        None, "--region", "-r", help="Only work inside box 'x0,y0,z0,x1,y1,z1' (internal units)"
    ),
    settings_path: Optional[Path] = typer.Option(None, "--settings", "-s", help="Settings JSON"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write result here"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Do not write the document"),
):
    """Place individual openings, then merge adjacent ones into clusters."""
    document = _load_document(document_path)
    settings = _load_settings(settings_path)
    box = _parse_region(region)
    orchestrator = PlacementOrchestrator.for_document(document, settings)
    report = _run_or_fail(lambda: orchestrator.run(
        categories=category or None,
        cluster=False if no_cluster else None,
        region=box,
    ))
    if report.failed:
        _output({**report.to_dict(), "error": report.message})
        raise typer.Exit(1)
    _output({**report.to_dict(), "saved": _save(document, document_path, output, dry_run)})


@app.command()
def cluster(
    document_path: Path = typer.Argument(..., help="Model document (JSON)"),
    region: Optional[str] = typer.Option(
        None, "--region", "-r", help="Only cluster openings inside box 'x0,y0,z0,x1,y1,z1'"
    ),
    settings_path: Optional[Path] = typer.Option(None, "--settings", "-s", help="Settings JSON"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write result here"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Do not write the document"),
):
    """Merge existing adjacent individual openings into cluster openings."""
    document = _load_document(document_path)
    settings = _load_settings(settings_path)
    box = _parse_region(region)
    orchestrator = PlacementOrchestrator.for_document(document, settings)
    report = _run_or_fail(lambda: orchestrator.run_cluster_pass(region=box))
    if report.failed:
        _output({**report.to_dict(), "error": report.message})
        raise typer.Exit(1)
    _output({**report.to_dict(), "saved": _save(document, document_path, output, dry_run)})


@app.command()
def cleanup(
    document_path: Path = typer.Argument(..., help="Model document (JSON)"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write result here"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Do not write the document"),
):
    """Delete openings with a zero width, height or depth."""
    document = _load_document(document_path)
    store = DocumentStore(document)
    try:
        with store.transaction("Delete zero-size openings"):
            deleted = delete_zero_size_openings(store)
    except TransactionError as exc:
        _fail(str(exc))
    _output({
        "ok": True,
        "deleted": deleted,
        "saved": _save(document, document_path, output, dry_run),
    })


@app.command()
def marks(
    document_path: Path = typer.Argument(..., help="Model document (JSON)"),
    prefix: str = typer.Option("", "--prefix", "-p", help="Prepended to every mark, e.g. 'L1-'"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write result here"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Do not write the document"),
):
    """Renumber opening marks per category (PO-001, DO-001, DA-001, CT-001)."""
    document = _load_document(document_path)
    store = DocumentStore(document)
    try:
        with store.transaction("Assign opening marks"):
            assigned = assign_marks(store, prefix)
    except TransactionError as exc:
        _fail(str(exc))
    _output({
        "ok": True,
        "marks": assigned,
        "saved": _save(document, document_path, output, dry_run),
    })


# ---------------------------------------------------------------------------
# Read-only commands
# ---------------------------------------------------------------------------

@app.command()
def summary(
    document_path: Path = typer.Argument(..., help="Model document (JSON)"),
    at: Optional[str] = typer.Option(None, "--at", help="Point 'x,y,z' to list openings near"),
    tolerance: float = typer.Option(1.0, "--tolerance", "-t", help="Search radius (internal units)"),
):
    """Opening inventory, or the openings around one point."""
    document = _load_document(document_path)
    store = DocumentStore(document)
    result: dict = {"ok": True, "document": document.name, "units": document.units.value}
    result["counts"] = opening_counts(store)
    if at is not None:
        try:
            x, y, z = (float(v) for v in at.split(","))
        except ValueError:
            _fail(f"Invalid point '{at}', expected x,y,z")
        result["at"] = summarize_openings_at(store, Point3D(x=x, y=y, z=z), tolerance)
    _output(result)


@app.command()
def render(
    document_path: Path = typer.Argument(..., help="Model document (JSON)"),
    output: Path = typer.Option(..., "--output", "-o", help="Output PNG path"),
    level: Optional[str] = typer.Option(None, "--level", "-l", help="Level name"),
    labels: bool = typer.Option(False, "--labels", help="Label openings"),
):
    """Render a plan of hosts, routing lines and openings to PNG."""
    from mep_sleeves.export.plan import render_plan

    document = _load_document(document_path)
    level_id = None
    if level is not None:
        found = document.get_level_by_name(level)
        if found is None:
            _fail(f"Level not found: {level}")
        level_id = found.global_id
    path = render_plan(document, output, level_id=level_id, show_labels=labels)
    _output({"ok": True, "rendered": str(path)})


@app.command()
def version():
    """Show version."""
    _output({"ok": True, "version": __version__})


if __name__ == "__main__":
    app()
