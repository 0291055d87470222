#!/usr/bin/env python3
"""
Best6 Management CLI

Command-line management for the Best6 backend database and for a local
device store (sync, fixtures, rounds, leaderboard).
"""

import logging
import os

import click
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from best6 import create_app, db
from best6.client import Best6Client
from best6.errors import Best6Error
from best6.models import LeagueRow, Profile, RoundRow
from best6.store import FileStorage
from best6.utils.standings import rank_leaderboard, season_label
from best6.utils.timezone_utils import format_kickoff


def _client(ctx):
    obj = ctx.obj
    if "client" not in obj:
        app = obj["app"]
        store_dir = obj.get("store_dir") or app.config.get("LOCAL_STORE_DIR")
        obj["client"] = Best6Client.from_config(
            app.config, app=app, storage=FileStorage(store_dir)
        )
        ctx.call_on_close(obj["client"].close)
    return obj["client"]


@click.group()
@click.option(
    "--config",
    "config_name",
    default=lambda: os.environ.get("FLASK_CONFIG", "default"),
    help="Configuration name (development, production, testing)",
)
@click.option("--store-dir", type=click.Path(file_okay=False), help="Local store directory")
@click.pass_context
def cli(ctx, config_name, store_dir):
    """Best6 Management CLI"""
    app = create_app(config_name)
    ctx.obj = {"app": app, "store_dir": store_dir}
    app_context = app.app_context()
    app_context.push()
    ctx.call_on_close(app_context.pop)


# Database Commands
@cli.group("db")
def database():
    """Database management commands"""
    pass


@database.command("init")
def init_db():
    """Create all tables"""
    try:
        db.create_all()
        click.echo("✅ Database tables created")
    except SQLAlchemyError as e:
        click.echo(f"❌ Database error creating tables: {str(e)}")
        logging.error(f"Table creation failed - SQL error: {e}")


@database.command("drop")
@click.option("--yes", is_flag=True, help="Do not ask for confirmation")
def drop_db(yes):
    """Drop all tables"""
    if not yes and not click.confirm("Drop every Best6 table?"):
        click.echo("Aborted.")
        return
    try:
        db.drop_all()
        click.echo("✅ Database tables dropped")
    except SQLAlchemyError as e:
        click.echo(f"❌ Database error dropping tables: {str(e)}")
        logging.error(f"Table drop failed - SQL error: {e}")


# Sync Commands
@cli.group()
def sync():
    """Local/remote synchronization commands"""
    pass


@sync.command()
@click.pass_context
def bootstrap(ctx):
    """Reconcile every local collection with the backend"""
    client = _client(ctx)
    click.echo(f"🔄 Syncing as {client.reconciler.get_or_create_user_id()}")
    outcome = client.start()
    for collection, ok in outcome.items():
        click.echo(f"  {'✅' if ok else '❌'} {collection}")
    if not all(outcome.values()):
        click.echo("⚠️  Some collections could not be synced; see the sync log")


# Fixture Commands
@cli.group()
def fixtures():
    """Fixture source commands"""
    pass


@fixtures.command("show")
@click.argument("matchday", type=int)
@click.option("--date", "target_date", help="Only fixtures on this UTC date (YYYY-MM-DD)")
@click.pass_context
def show_fixtures(ctx, matchday, target_date):
    """Show the round picked for a matchday"""
    matches, error = _client(ctx).load_round(matchday, target_date)
    if error:
        click.echo(f"⚠️  {error}")

    click.echo(f"Matchday {matchday}:")
    for match in matches:
        score = ""
        if match.result is not None:
            score = f" {match.result.home}-{match.result.away}"
        click.echo(
            f"  [{match.id}] {format_kickoff(match.utc_date)}  "
            f"{match.home_team.name} vs {match.away_team.name}{score} ({match.status})"
        )


# Round Commands
@cli.group()
def rounds():
    """Saved round commands"""
    pass


@rounds.command("list")
@click.pass_context
def list_rounds(ctx):
    """List rounds saved on this device"""
    saved = _client(ctx).store.load_rounds()
    if not saved:
        click.echo("No rounds saved.")
        return

    click.echo("Rounds:")
    for round_result in saved:
        minute = round_result.first_goal_minute
        click.echo(
            f"  Matchday {round_result.matchday}: {round_result.total_points} pts"
            f" - first goal {minute if minute is not None else '-'}'"
            f" - {format_kickoff(round_result.created_at)}"
        )


# Leaderboard Commands
@cli.group()
def leaderboard():
    """Leaderboard commands"""
    pass


@leaderboard.command("show")
@click.option("--remote", is_flag=True, help="Show global standings from the backend")
@click.option("--limit", default=20, show_default=True, help="Rows to show")
@click.pass_context
def show_leaderboard(ctx, remote, limit):
    """Show the leaderboard"""
    client = _client(ctx)
    click.echo(f"🏆 Leaderboard {season_label()}")

    if remote:
        try:
            rows = client.backend.list_leaderboard(limit=limit)
        except Best6Error as e:
            click.echo(f"❌ {e.message}")
            return
        for row in rows:
            click.echo(
                f"  {row['rank']}. {row['name']}: {row['total_points']} pts"
                f" ({row['weekly_points']} this week)"
            )
        return

    entries = rank_leaderboard(client.store.load_leaderboard())[:limit]
    if not entries:
        click.echo("No leaderboard entries.")
        return
    for position, entry in enumerate(entries, start=1):
        click.echo(
            f"  {position}. {entry.name}: {entry.total_points} pts"
            f" ({entry.weekly_points} this week)"
        )


# Info Commands
@cli.command()
@click.pass_context
def status(ctx):
    """Show application status"""
    app = ctx.obj["app"]
    click.echo("⚽ Best6 Status")
    click.echo("=" * 40)

    # Database connection
    try:
        db.session.execute(text("SELECT 1"))
        click.echo("✅ Database: Connected")
        click.echo(f"👥 Profiles: {Profile.query.count()}")
        click.echo(f"📋 Rounds: {RoundRow.query.count()}")
        click.echo(f"🏆 Leagues: {LeagueRow.query.count()}")
    except SQLAlchemyError as e:
        click.echo(f"❌ Database: Error - {str(e)}")

    if app.config.get("FOOTBALL_DATA_KEY"):
        click.echo("✅ Fixture source: API key configured")
    else:
        click.echo("⚠️  Fixture source: no API key, sample matches only")

    click.echo(f"🔐 Auth strategy: {app.config.get('AUTH_STRATEGY')}")
    click.echo(f"🌐 Backend: {app.config.get('BACKEND_URL') or 'in-process database'}")

    store = _client(ctx).store
    click.echo(f"📱 Device user: {store.get_user_id() or 'not created yet'}")
    click.echo(f"📱 Local rounds: {len(store.load_rounds())}")


if __name__ == "__main__":
    cli()
