"""Operator command line for the milk bank backend."""

# purpose: schema bootstrap and scheduled inventory housekeeping outside the HTTP surface
# depends_on: milkbank.database, milkbank.services.ledger, milkbank.services.reports

from __future__ import annotations

import json
from datetime import date
from typing import Optional

import typer

from .. import audit
from ..database import Base, SessionLocal, engine
from ..services import ledger, reports

app = typer.Typer(help="Milk bank maintenance commands")


@app.command("init-db")
def init_db() -> None:
    """Create every table declared on the ORM models."""

    from .. import models  # noqa: F401  registers tables on Base.metadata

    Base.metadata.create_all(bind=engine)
    typer.echo("schema ready")


@app.command("discard-expired")
def discard_expired(
    actor: str = typer.Option("scheduler", help="Name recorded on the discard records"),
    as_of: Optional[str] = typer.Option(None, help="ISO date to evaluate expiration against"),
) -> None:
    """Discard the remaining volume of expired approved batches."""

    today = date.fromisoformat(as_of) if as_of else date.today()
    db = SessionLocal()
    try:
        records = ledger.discard_expired(db, actor, today=today)
        for record in records:
            audit.log_action(
                db, actor, "discard", "batch", record.batch_id,
                {"reason": record.reason, "volume": record.volume},
            )
        db.commit()
        total = sum(record.volume for record in records)
        typer.echo(f"discarded {total:g} ml from {len(records)} batches")
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


@app.command("dashboard")
def dashboard() -> None:
    """Print the dashboard counters as JSON."""

    db = SessionLocal()
    try:
        stats = reports.dashboard_stats(db)
        typer.echo(json.dumps(stats.model_dump(), indent=2))
    finally:
        db.close()


if __name__ == "__main__":
    app()
