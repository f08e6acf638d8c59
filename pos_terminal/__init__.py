import click
from flask import Flask, jsonify, session
from flask_sqlalchemy import SQLAlchemy
from werkzeug.exceptions import HTTPException
from config import config

db = SQLAlchemy()


def create_app(config_name='default', backend=None):
    """
    Application factory — creates and configures the Flask app.
    `backend` replaces the HTTP BackendClient (tests pass a fake).
    """
    app = Flask(__name__)
    app.config.from_object(config[config_name])

    # ── Logging ───────────────────────────────────────────────────
    from pos_terminal.utils.logging import setup_logging
    setup_logging(app)

    # ── Extensions ────────────────────────────────────────────────
    db.init_app(app)

    from pos_terminal.backend import init_backend
    init_backend(app, backend)

    # ── Blueprints ────────────────────────────────────────────────
    from pos_terminal.auth import auth as auth_blueprint
    app.register_blueprint(auth_blueprint, url_prefix='/auth')

    from pos_terminal.pos import pos as pos_blueprint
    app.register_blueprint(pos_blueprint, url_prefix='/pos')

    # ── Error Handlers ────────────────────────────────────────────
    register_error_handlers(app)

    # ── CLI Commands ──────────────────────────────────────────────
    register_commands(app)

    # ── ProxyFix for HTTPS termination ──
    from werkzeug.middleware.proxy_fix import ProxyFix
    app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1, x_prefix=1)

    return app


def register_error_handlers(app):
    """Every error leaves the terminal as JSON: {"error": message}."""
    from pos_terminal.errors import PosError, BackendAuthError

    @app.errorhandler(PosError)
    def pos_error(e):
        if isinstance(e, BackendAuthError):
            # Token rejected by the backend: force a fresh login.
            session.clear()
        if e.status_code >= 500:
            app.logger.error(f"{type(e).__name__}: {e.message}")
        return jsonify(e.to_dict()), e.status_code

    @app.errorhandler(HTTPException)
    def http_error(e):
        if e.code is None or e.code < 400:
            return e
        return jsonify({'error': e.description, 'kind': e.name}), e.code

    @app.errorhandler(500)
    def internal_error(e):
        db.session.rollback()
        app.logger.exception("Unhandled error")
        return jsonify({'error': 'Internal server error.'}), 500


def register_commands(app):
    """Register custom Flask CLI commands."""

    @app.cli.command('init-db')
    def init_db():
        """Create the terminal's local tables (catalog snapshot, sale journal)."""
        db.create_all()
        click.echo('✅  Database tables created.')

    @app.cli.command('check-backend')
    @click.option('--username', prompt='Username', help='Cashier username')
    @click.option('--password', prompt=True, hide_input=True, help='Cashier password')
    def check_backend(username, password):
        """Log in to the retail backend and show its POS settings (diagnostic)."""
        from pos_terminal.errors import BackendError
        from pos_terminal.pos.settings import PosSettings

        client = app.extensions['backend']
        click.echo(f'Backend: {app.config["API_BASE_URL"]}')
        try:
            result = client.with_token(None).login(username, password)
            client = client.with_token(result.get('token'))
            settings = PosSettings.from_backend(client.get_settings(),
                                                PosSettings.from_config(app.config))
            stores = client.list_stores()
        except BackendError as exc:
            raise click.ClickException(exc.message)

        click.echo('✅  Login OK.')
        for key, value in settings.to_dict().items():
            click.echo(f'{key:<22} {value}')
        click.echo(f'{len(stores)} store(s) visible.')

    @app.cli.command('print-queue')
    @click.option('--store', 'store_id', type=int, default=None, help='Only this store')
    def print_queue(store_id):
        """List sales whose receipt has not been printed yet."""
        from pos_terminal.pos.models import SaleJournal

        q = SaleJournal.query.filter_by(receipt_printed=False)
        if store_id:
            q = q.filter_by(store_id=store_id)
        rows = q.order_by(SaleJournal.created_at).all()
        if not rows:
            click.echo('Print queue is empty.')
            return
        click.echo(f'{"Sale":<10} {"Number":<20} {"Store":<7} {"Total":>14}  {"Created"}')
        click.echo('─' * 72)
        for row in rows:
            click.echo(
                f'{row.backend_sale_id:<10} {row.sale_number or "-":<20} {row.store_id:<7} '
                f'{row.total_amount:>14}  {row.created_at:%Y-%m-%d %H:%M}'
            )
