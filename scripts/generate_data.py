"""
Synthetic wager generator and loader for the wager analytics service.

Implements deterministic pseudo-random transaction generation, CSV emission,
and Postgres COPY loading into `bet_transactions`.
"""

from __future__ import annotations

import csv
import random
import sys
import tempfile
import time
from datetime import UTC, datetime, timedelta
from decimal import Decimal
from pathlib import Path

import psycopg
import typer
from psycopg import sql

from wager_analytics.domain.models import TransactionRecord
from wager_analytics.infrastructure.db_factory import get_sync_connection

app = typer.Typer(help="Generate synthetic wagers and load into Postgres (CSV + COPY).")

CSV_COLUMNS = list(TransactionRecord.model_fields.keys())

SPORTS = [(1, "NBA"), (2, "NFL"), (3, "MLB"), (4, "NHL")]
STAT_TYPES = {
    "NBA": ["points", "rebounds", "assists"],
    "NFL": ["passing_yards", "rushing_yards", "receptions"],
    "MLB": ["hits", "strikeouts", "total_bases"],
    "NHL": ["shots", "goals", "saves"],
}
POSITIONS = {"NBA": ["PG", "SG", "C"], "NFL": ["QB", "RB", "WR"], "MLB": ["P", "SS", "CF"], "NHL": ["C", "D", "G"]}
TEAMS = ["BOS", "LAL", "NYK", "KC", "SF", "DAL", "CHI", "MIA"]
MARKET_TYPES = ["player_prop", "game_line", "parlay"]
BET_TYPES = ["over", "under"]
CLIENTS = [("c-100", "Acme Books"), ("c-200", "Northline"), ("c-300", "Riverbet")]
USAGE_IDS = ["u-1", "u-2"]


def _generate_record(rng: random.Random, start: datetime, days: int) -> TransactionRecord:
    sport_id, sport = rng.choice(SPORTS)
    client_id, client_name = rng.choice(CLIENTS)
    player_id = rng.randint(1, 500)
    risk = Decimal(f"{rng.uniform(1, 500):.2f}")
    # Book wins about 52% of the time; a loss pays out roughly the stake again.
    won = rng.random() < 0.52
    profit = risk if won else -Decimal(f"{float(risk) * rng.uniform(0.8, 1.2):.2f}")
    return TransactionRecord(
        accepted_datetime_utc=start + timedelta(seconds=rng.randint(0, days * 86_400 - 1)),
        market_type=rng.choice(MARKET_TYPES),
        book_risk_component=risk,
        book_profit_gross=profit,
        sport_id=sport_id,
        sport=sport,
        stat_type=rng.choice(STAT_TYPES[sport]),
        bet_type=rng.choice(BET_TYPES),
        team_abbr=rng.choice(TEAMS),
        position_abbr=rng.choice(POSITIONS[sport]),
        player_id=player_id,
        player_name=f"Player {player_id}",
        client_id=client_id,
        client_name=client_name,
        usage_id=rng.choice(USAGE_IDS),
        in_play=rng.random() < 0.2,
        line_movement=Decimal(f"{rng.uniform(-3, 3):.2f}"),
        bet_price=Decimal(f"{rng.uniform(1.5, 3.5):.2f}"),
    )


def _csv_value(value: object) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "t" if value else "f"
    if isinstance(value, datetime):
        return value.isoformat()
    return str(value)


def _generate_rows_csv(
    csv_path: Path,
    rows: int,
    batch_size: int,
    seed: int,
    start: datetime | None = None,
    days: int = 30,
) -> None:
    rng = random.Random(seed)
    start = start or datetime(2024, 1, 1, tzinfo=UTC)

    with csv_path.open("w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        writer.writerow(CSV_COLUMNS)

        buffer: list[list[str]] = []
        for _ in range(rows):
            record = _generate_record(rng, start, days)
            buffer.append([_csv_value(getattr(record, name)) for name in CSV_COLUMNS])
            if len(buffer) >= batch_size:
                writer.writerows(buffer)
                buffer.clear()
        if buffer:
            writer.writerows(buffer)


def _copy_into_db(dsn: str | None, csv_path: Path, table: str = "public.bet_transactions") -> int:
    """
    COPY the CSV into `table`. Without a DSN override the connection comes from
    settings, with retries on transient connection errors.
    """
    columns = sql.SQL(", ").join(sql.Identifier(c) for c in CSV_COLUMNS)
    statement = sql.SQL(
        "COPY {table} ({columns}) FROM STDIN WITH (FORMAT csv, HEADER TRUE)"
    ).format(table=sql.Identifier(*table.split(".")), columns=columns)

    conn = psycopg.connect(dsn) if dsn else get_sync_connection()
    with conn:
        with conn.cursor() as cur:
            with cur.copy(statement) as copy:
                with csv_path.open("r", encoding="utf-8") as f:
                    for line in f:
                        copy.write(line)
            conn.commit()
    return 0


@app.command()
def main(
    rows: int = typer.Option(
        100_000,
        "--rows",
        "-r",
        help="Number of wagers to generate.",
    ),
    batch_size: int = typer.Option(
        10_000,
        "--batch-size",
        "-b",
        help="Batch size for CSV buffering during generation.",
    ),
    seed: int = typer.Option(
        42,
        "--seed",
        help="Deterministic RNG seed.",
    ),
    days: int = typer.Option(
        30,
        "--days",
        help="Spread acceptance times over this many days starting 2024-01-01.",
    ),
    output: Path | None = typer.Option(
        None,
        "--output",
        "-o",
        help="Optional CSV output path (if omitted, a temp file will be used).",
    ),
    dsn: str | None = typer.Option(
        None,
        "--dsn",
        help="Optional DSN override for Postgres.",
    ),
    no_load: bool = typer.Option(
        False,
        "--no-load",
        help="Only generate CSV; skip loading into Postgres.",
    ),
) -> None:
    """
    Generate synthetic wagers and optionally load them into Postgres using COPY.
    """
    start = time.perf_counter()
    if output:
        csv_path = output
        csv_path.parent.mkdir(parents=True, exist_ok=True)
    else:
        tmpdir = Path(tempfile.mkdtemp(prefix="wagers_csv_"))
        csv_path = tmpdir / "bet_transactions.csv"

    typer.echo(f"Generating {rows:,} wagers -> {csv_path} (batch={batch_size}, seed={seed})")
    _generate_rows_csv(csv_path, rows=rows, batch_size=batch_size, seed=seed, days=days)
    gen_duration = time.perf_counter() - start
    typer.echo(
        f"CSV generation completed in {gen_duration:.2f}s ({rows / gen_duration:,.0f} rows/s)"
    )

    if no_load:
        typer.echo("Skipping load (no-load flag set).")
        return

    load_start = time.perf_counter()
    typer.echo("Loading CSV into Postgres via COPY...")
    _copy_into_db(dsn, csv_path)
    load_duration = time.perf_counter() - load_start

    total_duration = time.perf_counter() - start
    typer.echo(
        f"Load completed in {load_duration:.2f}s. Total time {total_duration:.2f}s "
        f"({rows / total_duration:,.0f} rows/s overall)."
    )


if __name__ == "__main__":
    try:
        app()
    except KeyboardInterrupt:
        typer.echo("Cancelled by user.", err=True)
        sys.exit(130)
