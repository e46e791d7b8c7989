from pathlib import Path

import click
from flask import Flask

from bmm.api import api_bp
from bmm.config import Config
from bmm.extensions import db, login_manager, migrate
from bmm.schema_migrations import backfill_bookmark_search_keys
from bmm.services.bookmarks import BookmarkRepository
from bmm.services.export import export_filename
from bmm.services.scopes import scope_for


def create_app(config_object=Config):
    app = Flask(__name__)
    app.config.from_object(config_object)

    db.init_app(app)
    migrate.init_app(app, db)
    login_manager.init_app(app)

    app.register_blueprint(api_bp)

    @app.cli.command("init-db")
    def init_db_command():
        db.create_all()
        touched = backfill_bookmark_search_keys()
        print(f"Initialized bmm database ({touched} bookmarks backfilled).")

    @app.cli.command("export-html")
    @click.option(
        "--space", type=click.Choice(["public", "user"]), default="public"
    )
    @click.option("--user-id", type=int, default=None)
    @click.option("--output", type=click.Path(dir_okay=False), default=None)
    def export_html_command(space, user_id, output):
        if space == "user" and user_id is None:
            raise click.UsageError("--user-id is required for the user space")
        repository = BookmarkRepository(scope_for(space, user_id))
        target = Path(output or export_filename(space))
        target.write_text(repository.export_html(), encoding="utf-8")
        print(f"Exported {repository.total()} {space} bookmarks to {target}")

    with app.app_context():
        db.create_all()
        backfill_bookmark_search_keys()

    return app
