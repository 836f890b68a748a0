# Simple CLI for Team Ledger
import json

import click

from core.config.settings import Settings
from services.ledger.seed import build_seed_state


@click.group()
def cli():
    """Team Ledger CLI"""
    pass


@cli.command()
def api():
    """Run the realtime ledger server"""
    click.echo("Starting Team Ledger server...")
    from api.main import run as run_api
    run_api()


@cli.command("show-seed")
def show_seed():
    """Print the opening ledger state as JSON"""
    settings = Settings()
    state = build_seed_state(settings.ledger.lot_size)
    click.echo(json.dumps(state.to_wire(), ensure_ascii=False, indent=2))


if __name__ == "__main__":
    cli()
