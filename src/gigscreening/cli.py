"""Typer CLI entrypoint operating on a JSON state file."""

from __future__ import annotations

import json
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator, Optional

import structlog
import typer
from pydantic import ValidationError as PydanticValidationError

from .config import read_settings
from .container import create_container
from .errors import EngineError
from .logging import configure_logging
from .pipeline import AuditLogger, ScreeningPipeline, StateFile, json_default
from .schemas import Screening

app = typer.Typer(help="Worker screening and lifecycle engine CLI.")

StateOption = typer.Option(..., dir_okay=False, resolve_path=True, help="JSON state file (created if missing).")
ConfigOption = typer.Option(None, exists=True, readable=True, dir_okay=False, help="YAML config path.")
AuditOption = typer.Option(None, dir_okay=False, help="Audit log output (JSONL).")
LogLevelOption = typer.Option("WARNING", help="Log level for structured logging.")


@contextmanager
def _session(
    state: Path,
    config: Optional[Path],
    audit_log: Optional[Path],
    log_level: str,
    command: str,
    *,
    persist: bool = True,
) -> Iterator[ScreeningPipeline]:
    configure_logging(log_level)
    structlog.contextvars.bind_contextvars(command=command)
    settings: dict[str, Any] = {}
    if config:
        try:
            settings = read_settings(config)
        except ValueError as exc:
            raise typer.BadParameter(str(exc), param_name="config") from exc

    state_file = StateFile()
    try:
        store = state_file.load(state)
    except ValueError as exc:
        raise typer.BadParameter(str(exc), param_name="state") from exc

    container = create_container(settings=settings, store=store)
    pipeline = container.pipeline(audit_logger=AuditLogger(audit_log) if audit_log else None)
    try:
        yield pipeline
    except EngineError as exc:
        typer.echo(json.dumps(exc.to_dict(), ensure_ascii=False, default=json_default), err=True)
        raise typer.Exit(code=1) from exc
    finally:
        structlog.contextvars.unbind_contextvars("command")
    if persist:
        state_file.save(state, store)


def _echo(payload: Any) -> None:
    typer.echo(json.dumps(payload, ensure_ascii=False, indent=2, default=json_default))


def _read_json(path: Path, param: str) -> Any:
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise typer.BadParameter(f"Invalid JSON: {exc}", param_name=param) from exc


@app.command("add-screening")
def add_screening(
    screening: Path = typer.Option(..., exists=True, readable=True, dir_okay=False, help="Screening JSON path."),
    state: Path = StateOption,
    config: Optional[Path] = ConfigOption,
    log_level: str = LogLevelOption,
) -> None:
    """Register or replace a screening definition."""
    try:
        document = Screening.model_validate(_read_json(screening, "screening"))
    except PydanticValidationError as exc:
        raise typer.BadParameter(str(exc), param_name="screening") from exc
    with _session(state, config, None, log_level, "add-screening") as pipeline:
        pipeline.store.add_screening(document)
    typer.echo(f"Screening {document.screening_id} saved.")


@app.command()
def register(
    worker_id: str = typer.Option(..., help="Worker id."),
    user_id: Optional[str] = typer.Option(None, help="Linked user id."),
    position_id: Optional[str] = typer.Option(None, help="Linked job-position id."),
    approved: bool = typer.Option(False, "--approved", help="Mark the application as approved."),
    max_attempts: Optional[int] = typer.Option(None, min=1, help="Screening attempt quota."),
    state: Path = StateOption,
    config: Optional[Path] = ConfigOption,
    log_level: str = LogLevelOption,
) -> None:
    """Register a new applicant."""
    with _session(state, config, None, log_level, "register") as pipeline:
        worker = pipeline.register_worker(
            worker_id=worker_id,
            user_id=user_id,
            position_id=position_id,
            application_approved=approved,
            max_attempts=max_attempts,
        )
    _echo(worker.model_dump(mode="json"))


@app.command()
def transition(
    worker_id: str = typer.Option(..., help="Worker id."),
    to: str = typer.Option(..., "--to", help="Target worker status."),
    state: Path = StateOption,
    config: Optional[Path] = ConfigOption,
    audit_log: Optional[Path] = AuditOption,
    log_level: str = LogLevelOption,
) -> None:
    """Apply an explicit admin status change."""
    with _session(state, config, audit_log, log_level, "transition") as pipeline:
        worker = pipeline.transition(worker_id=worker_id, target=to)
    _echo({"worker_id": worker.worker_id, "new_status": worker.worker_status.value})


@app.command()
def submit(
    worker_id: str = typer.Option(..., help="Worker id."),
    screening_id: str = typer.Option(..., help="Screening id."),
    answers: Path = typer.Option(..., exists=True, readable=True, dir_okay=False, help="Answers JSON array."),
    elapsed: Optional[float] = typer.Option(None, min=0, help="Minutes the worker spent on the test."),
    state: Path = StateOption,
    config: Optional[Path] = ConfigOption,
    audit_log: Optional[Path] = AuditOption,
    log_level: str = LogLevelOption,
) -> None:
    """Submit screening answers for a worker."""
    raw_answers = _read_json(answers, "answers")
    if not isinstance(raw_answers, list):
        raise typer.BadParameter("Answers file must contain a JSON array", param_name="answers")
    with _session(state, config, audit_log, log_level, "submit") as pipeline:
        result = pipeline.submit(
            worker_id=worker_id,
            screening_id=screening_id,
            answers=raw_answers,
            elapsed_minutes=elapsed,
        )
    _echo(result.to_dict())


@app.command()
def review(
    worker_id: str = typer.Option(..., help="Worker id."),
    screening_id: str = typer.Option(..., help="Screening id."),
    action: str = typer.Option(..., help="approve or reject."),
    admin_score: Optional[float] = typer.Option(None, help="Score override (0-100)."),
    rubric: Optional[Path] = typer.Option(None, exists=True, readable=True, dir_okay=False, help="Rubric awards JSON array."),
    state: Path = StateOption,
    config: Optional[Path] = ConfigOption,
    audit_log: Optional[Path] = AuditOption,
    log_level: str = LogLevelOption,
) -> None:
    """Apply an admin decision to the worker's latest submission."""
    breakdown = _read_json(rubric, "rubric") if rubric else None
    if breakdown is not None and not isinstance(breakdown, list):
        raise typer.BadParameter("Rubric file must contain a JSON array", param_name="rubric")
    with _session(state, config, audit_log, log_level, "review") as pipeline:
        outcome = pipeline.review(
            screening_id=screening_id,
            worker_id=worker_id,
            action=action,
            admin_score=admin_score,
            rubric_breakdown=breakdown,
        )
    _echo(outcome.to_dict())


@app.command()
def proof(
    worker_id: str = typer.Option(..., help="Worker id."),
    action: str = typer.Option(..., help="submit, approve or reject."),
    payout: Optional[str] = typer.Option(None, help="Project payout credited on approval (required for submit)."),
    state: Path = StateOption,
    config: Optional[Path] = ConfigOption,
    audit_log: Optional[Path] = AuditOption,
    log_level: str = LogLevelOption,
) -> None:
    """Record proof of work and credit earnings."""
    if action not in ("submit", "approve", "reject"):
        raise typer.BadParameter("Action must be submit, approve or reject", param_name="action")
    if action == "submit" and payout is None:
        raise typer.BadParameter("--payout is required when submitting proof", param_name="payout")
    with _session(state, config, audit_log, log_level, "proof") as pipeline:
        if action == "submit":
            worker = pipeline.submit_proof(worker_id=worker_id, payout=payout)
        elif action == "approve":
            worker = pipeline.approve_proof(worker_id=worker_id)
        else:
            worker = pipeline.reject_proof(worker_id=worker_id)
    _echo(
        {
            "worker_id": worker.worker_id,
            "new_status": worker.worker_status.value,
            "pending_earnings": str(worker.pending_earnings),
            "total_earnings": str(worker.total_earnings),
        }
    )


@app.command()
def queue(
    state: Path = StateOption,
    config: Optional[Path] = ConfigOption,
    log_level: str = LogLevelOption,
) -> None:
    """List submissions awaiting review."""
    with _session(state, config, None, log_level, "queue", persist=False) as pipeline:
        entries = pipeline.pending_reviews()
    _echo(
        [
            {
                "submission_id": entry.submission_id,
                "worker_id": entry.worker_id,
                "screening_id": entry.screening_id,
                "evaluation_mode": entry.evaluation_mode,
                "submitted_at": entry.submitted_at,
                "auto_score": entry.auto_score,
                "meets_threshold": entry.meets_threshold,
                "validation_flags": [flag.model_dump() for flag in entry.validation_flags],
            }
            for entry in entries
        ]
    )


@app.command()
def signals(
    worker_id: str = typer.Option(..., help="Worker id."),
    state: Path = StateOption,
    config: Optional[Path] = ConfigOption,
    log_level: str = LogLevelOption,
) -> None:
    """Show risk indicators for a worker."""
    with _session(state, config, None, log_level, "signals", persist=False) as pipeline:
        found = pipeline.risk_signals(worker_id=worker_id)
    _echo([{"code": item.code, "severity": item.severity, "message": item.message} for item in found])


def main() -> None:
    app()


if __name__ == "__main__":
    main()
