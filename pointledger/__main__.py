"""
pointledger.__main__ — Entry point for ``python -m pointledger``
=================================================================

Wiring:
1. Load .env (``DATABASE_URL``).
2. Load config.yaml (page sizes, ledger retry tuning).
3. Create the SQLAlchemy engine, run the command, dispose the engine.

Run with::

    python -m pointledger leaderboard --time-frame weekly --limit 20
    python -m pointledger reconcile --fix
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

import click
from dotenv import load_dotenv

from pointledger.config import PointLedgerConfig, load_config
from pointledger.database.engine import create_db_engine, init_db
from pointledger.engine.activities import Activity
from pointledger.engine.timeframes import TimeFrame
from pointledger.schemas import LeaderboardQuery, PointHistoryQuery, balance_view
from pointledger.services.leaderboard_service import get_leaderboard
from pointledger.services.points_service import get_point_history, get_user_points
from pointledger.services.reconciliation_service import reconcile_balances
from pointledger.services.reward_service import award_points

logger = logging.getLogger("pointledger")


def _echo_json(payload: dict) -> None:
    click.echo(json.dumps(payload, indent=2, default=str))


@click.group()
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default="config.yaml",
    show_default=True,
    help="Path to the YAML config file (defaults are used if it is missing).",
)
@click.option("--database-url", envvar="DATABASE_URL", default=None, help="Overrides DATABASE_URL.")
@click.option("--verbose", is_flag=True, help="Log at DEBUG level.")
@click.pass_context
def cli(ctx: click.Context, config_path: Path, database_url: str | None, verbose: bool) -> None:
    """Points ledger maintenance CLI."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s │ %(levelname)-8s │ %(name)s │ %(message)s",
        datefmt="%H:%M:%S",
    )
    load_dotenv()

    if config_path.exists():
        cfg = load_config(config_path)
    else:
        logger.info("No config file at %s, using defaults", config_path)
        cfg = PointLedgerConfig()

    try:
        engine = create_db_engine(database_url)
    except RuntimeError as exc:
        raise click.ClickException(str(exc)) from exc

    ctx.obj = {"engine": engine, "config": cfg}
    ctx.call_on_close(engine.dispose)


@cli.command("init-db")
@click.pass_obj
def init_db_cmd(obj: dict) -> None:
    """Create the ledger tables if they don't exist."""
    init_db(obj["engine"])
    click.echo("Tables ready.")


@cli.command()
@click.argument("user_id")
@click.pass_obj
def balance(obj: dict, user_id: str) -> None:
    """Show USER_ID's balance and level."""
    _echo_json(balance_view(user_id, get_user_points(obj["engine"], user_id)))


@cli.command()
@click.argument("user_id")
@click.option("--source", default=None, help="Only entries from this activity/source.")
@click.option("--limit", type=int, default=None)
@click.option("--offset", type=int, default=0, show_default=True)
@click.pass_obj
def history(obj: dict, user_id: str, source: str | None, limit: int | None, offset: int) -> None:
    """Show USER_ID's ledger, newest first."""
    cfg: PointLedgerConfig = obj["config"]
    query = PointHistoryQuery(
        user_id=user_id, source=source, limit=limit or cfg.history_default_limit, offset=offset,
    )
    _echo_json(get_point_history(obj["engine"], query, config=cfg).to_dict())


@cli.command()
@click.option(
    "--time-frame",
    type=click.Choice([t.value for t in TimeFrame]),
    default=TimeFrame.ALL_TIME.value,
    show_default=True,
)
@click.option("--limit", type=int, default=None)
@click.option("--offset", type=int, default=0, show_default=True)
@click.pass_obj
def leaderboard(obj: dict, time_frame: str, limit: int | None, offset: int) -> None:
    """Show the points leaderboard."""
    cfg: PointLedgerConfig = obj["config"]
    query = LeaderboardQuery(
        time_frame=TimeFrame(time_frame),
        limit=limit or cfg.leaderboard_default_limit,
        offset=offset,
    )
    _echo_json(get_leaderboard(obj["engine"], query, config=cfg).to_dict())


@cli.command()
@click.argument("user_id")
@click.argument("activity", type=click.Choice([a.value for a in Activity]))
@click.pass_obj
def award(obj: dict, user_id: str, activity: str) -> None:
    """Award ACTIVITY's points to USER_ID."""
    result = award_points(obj["engine"], user_id, activity, {"via": "cli"}, config=obj["config"])
    if result is None:
        raise click.ClickException("No points awarded; see the log for details.")
    _echo_json(result.to_dict())


@cli.command()
@click.option("--fix", is_flag=True, help="Overwrite drifted balances with ledger totals.")
@click.pass_obj
def reconcile(obj: dict, fix: bool) -> None:
    """Compare balances with the ledger."""
    _echo_json(reconcile_balances(obj["engine"], fix=fix))


if __name__ == "__main__":
    cli()
