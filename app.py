import logging

from flask import Flask, request
from config import Config
from routes import health_bp, managers_bp, user_phones_bp

from models import db
from flask_migrate import Migrate
from repositories.sql import check_dialect_supported
from utils.auth_context import load_current_manager


def create_app(config_overrides=None):
    app = Flask(__name__)
    app.config.from_object(Config)
    if config_overrides:
        app.config.update(config_overrides)

    # Register routes
    app.register_blueprint(health_bp)
    app.register_blueprint(managers_bp)
    app.register_blueprint(user_phones_bp)

    # Database init
    check_dialect_supported(app.config["SQLALCHEMY_DATABASE_URI"])
    db.init_app(app)

    # Migrations
    Migrate(app, db)

    @app.before_request
    def _load_manager():
        load_current_manager()

    @app.after_request
    def add_cors_headers(resp):
        origin = request.headers.get("Origin")
        allowed = app.config.get("CORS_ALLOWED_ORIGIN")
        if origin and allowed and origin == allowed:
            resp.headers["Access-Control-Allow-Origin"] = origin
            resp.headers["Access-Control-Allow-Methods"] = ", ".join(app.config["CORS_ALLOWED_METHODS"])
            resp.headers["Access-Control-Allow-Headers"] = ", ".join(app.config["CORS_ALLOWED_HEADERS"])
            resp.headers["Vary"] = "Origin"
        return resp

    @app.after_request
    def add_security_headers(resp):
        resp.headers["X-Content-Type-Options"] = "nosniff"
        resp.headers["X-Frame-Options"] = "DENY"
        resp.headers["Referrer-Policy"] = "no-referrer"
        resp.headers["Content-Security-Policy"] = "default-src 'none'; frame-ancestors 'none';"
        return resp


    register_cli(app)


    return app

#-------------------------
import click
from models.manager import Manager
from repositories.sql import SqlBlacklistRepository
from security.password import hash_password

def register_cli(app):
    @app.cli.command("create-manager")
    @click.argument("login")
    @click.option("--password", prompt=True, hide_input=True, confirmation_prompt=True)
    def create_manager(login, password):
        """Provision a manager account (or reset its password)."""
        login = login.strip()
        manager = Manager.query.filter_by(login=login).first()
        if manager:
            manager.password_hash = hash_password(password)
            db.session.commit()
            click.echo(f"Password updated for {login}")
            return

        db.session.add(Manager(login=login, password_hash=hash_password(password)))
        db.session.commit()
        click.echo(f"Manager {login} created")

    @app.cli.command("unblacklist")
    @click.argument("ip")
    def unblacklist(ip):
        """Remove an IP from the login blacklist."""
        removed = SqlBlacklistRepository(db.session).remove(ip.strip())
        db.session.commit()
        if not removed:
            click.echo(f"{ip} was not blacklisted")
            return
        click.echo(f"{ip} removed from blacklist")

#-------------------------




if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    app = create_app()
    # Run locally
    app.run(host="127.0.0.1", port=4000)
