"""Console commands registered on the Flask application."""

import click
from flask import current_app
from flask.cli import with_appcontext

from db import Session
from services.cipher import UnsupportedAlgorithmError
from services.ini_config import IniConfig
from services.switch_db_hash import MigrationError, NoChangesRequested, switch_db_hash


@click.command(
    "switch-db-hash",
    help=(
        "Switches the encryption algorithm in the database and config. "
        "Expects new algorithm and (optional) new key as parameters."
    ),
)
@click.argument("newmethod")
@click.argument("newkey", required=False)
@with_appcontext
def switch_db_hash_command(newmethod, newkey):
    """Re-encrypt stored catalog passwords with NEWMETHOD ('none' disables)."""
    config = IniConfig(current_app.config["LOCAL_CONFIG_PATH"])
    with Session() as db:
        try:
            report = switch_db_hash(db, config, newmethod, newkey, echo=click.echo)
        except NoChangesRequested as exc:
            click.echo(str(exc))
            return
        except (MigrationError, UnsupportedAlgorithmError) as exc:
            current_app.logger.error("switch-db-hash aborted: %s", str(exc).strip())
            click.echo(str(exc))
            raise click.exceptions.Exit(1)

    for outcome in report.failures:
        current_app.logger.warning("Could not convert %s: %s", outcome.label, outcome.error)
