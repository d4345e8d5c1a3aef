"""Flask application factory.

Uses the SQLAlchemy models from ``db.py``, the blueprints under the
``routes`` package and the console commands in ``commands.py``."""
from flask import Flask, session
from flask_login import LoginManager
from flask_wtf.csrf import CSRFProtect

from commands import switch_db_hash_command
from config import Config
from db import Session
from routes.auth import auth_bp
from routes.catalog import catalog_bp
from services.user import UserService

login_manager = LoginManager()
login_manager.login_view = "auth.login"
login_manager.login_message_category = "info"
csrf = CSRFProtect()


@login_manager.request_loader
def load_user_from_session(request):
    """Return the user stored in the session (by id or snapshot) for Flask-Login."""
    with Session() as db:
        return UserService(db, session).get_user_from_session()


def create_app(config_class: type[Config] = Config) -> Flask:
    """Application factory used by tests and ``__main__``."""
    app = Flask(__name__)
    app.config.from_object(config_class)

    login_manager.init_app(app)
    csrf.init_app(app)

    app.register_blueprint(auth_bp)
    app.register_blueprint(catalog_bp)
    app.cli.add_command(switch_db_hash_command)

    @app.route("/")
    def index():
        return "Catalog credential service is running"

    return app


app = create_app()

if __name__ == "__main__":  # pragma: no cover - manual run helper
    app.run(debug=True, host="0.0.0.0", port=5000)
