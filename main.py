# main.py
import logging
import sys

from flask import Flask, jsonify, request
from flask_cors import CORS

import config
import handlers
from db.mysql_client import Database, StartupError
from models import failure

LOG = logging.getLogger(__name__)


def create_app(settings=None, database=None) -> Flask:
    """
    Build the Flask app around one Database handle.
    With DB_NAME set the single-database routes (and shortcuts) are
    registered, otherwise the /database/<db>/... routes.
    """
    if settings is None:
        settings = config.Settings.from_env()
    if database is None:
        database = Database.from_settings(settings)

    app = Flask(__name__, static_folder=None)
    app.json.sort_keys = False  # keep result-set column order
    app.config["SETTINGS"] = settings
    app.config["DATABASE"] = database
    CORS(app)

    def respond(result):
        body, status = result
        return jsonify(body), status

    @app.route("/")
    def home():
        return respond(handlers.api_info(settings))

    @app.route("/health")
    def health():
        return respond(handlers.health(database))

    @app.route("/query", methods=["POST"])
    def free_query():
        body = request.get_json(force=True, silent=True)
        return respond(handlers.raw_query(database, body))

    if settings.single_database:
        @app.route("/tables")
        def tables():
            return respond(handlers.list_tables(database))

        @app.route("/table/<table>/structure")
        def table_structure(table):
            return respond(handlers.table_structure(database, table))

        @app.route("/table/<table>")
        def table_data(table):
            return respond(handlers.table_data(
                database, table,
                limit=request.args.get("limit"),
                offset=request.args.get("offset"),
            ))

        for route, table_name in config.SHORTCUT_TABLES.items():
            def view(table_name=table_name):
                return respond(handlers.shortcut(database, table_name, request.args.get("limit")))
            app.add_url_rule(f"/{route}", endpoint=f"shortcut_{route}", view_func=view)
    else:
        @app.route("/databases")
        def databases():
            return respond(handlers.list_databases(database))

        @app.route("/database/<db>/tables")
        def db_tables(db):
            return respond(handlers.list_tables(database, db))

        @app.route("/database/<db>/table/<table>/structure")
        def db_table_structure(db, table):
            return respond(handlers.table_structure(database, table, db))

        @app.route("/database/<db>/table/<table>")
        def db_table_data(db, table):
            return respond(handlers.table_data(
                database, table, db,
                limit=request.args.get("limit"),
                offset=request.args.get("offset"),
            ))

    @app.errorhandler(404)
    def not_found(e):
        return jsonify(failure(f"Not found: {request.path}")), 404

    @app.errorhandler(405)
    def method_not_allowed(e):
        return jsonify(failure(f"Method {request.method} not allowed for {request.path}")), 405

    return app


def run():
    settings = config.Settings.from_env()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        database = Database.from_settings(settings)
    except StartupError as e:
        LOG.critical("%s", e)
        sys.exit(1)

    app = create_app(settings, database)
    LOG.info("%s running on port %s", settings.api_title, settings.port)
    LOG.info("Database: %s@%s", settings.db_name or "all databases", settings.db_host)
    for r in sorted(rule.rule for rule in app.url_map.iter_rules()):
        LOG.info("route %s", r)
    try:
        app.run(host="0.0.0.0", port=settings.port)
    finally:
        database.dispose()


if __name__ == "__main__":
    run()
