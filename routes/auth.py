"""Authentication routes for Flask application."""

from flask import (
    Blueprint,
    current_app,
    flash,
    redirect,
    render_template_string,
    request,
    session,
    url_for,
)
from flask_login import logout_user

from db import Session
from services import auth as auth_service
from services.user import UserService

auth_bp = Blueprint("auth", __name__)

LOGIN = """
<!doctype html>
<title>Login</title>
{% with messages = get_flashed_messages() %}
  {% for msg in messages %}<p class="flash">{{ msg }}</p>{% endfor %}
{% endwith %}
<form method="post" action="{{ url_for('auth.login') }}">
  <input type="hidden" name="csrf_token" value="{{ csrf_token() }}" />
  <label>Username <input name="username" required></label>
  <label>Password <input type="password" name="password" required></label>
  <button type="submit">Login</button>
</form>
"""


@auth_bp.route("/login", methods=["GET", "POST"])
def login():
    if request.method == "POST":
        username = request.form.get("username", "")
        password = request.form.get("password", "")
        with Session() as db:
            user, error = auth_service.authenticate(db, username, password)
            if user:
                users = UserService(db, session)
                users.clear_user_from_session()
                if current_app.config.get("PRIVACY_MODE"):
                    users.add_user_data_to_session(user)
                else:
                    users.add_user_id_to_session(user.id)
                current_app.logger.info("User %s logged in", user.username)
                return redirect(url_for("catalog.login"))
        current_app.logger.info("Failed login for %s", username)
        flash(error)
    return render_template_string(LOGIN)


@auth_bp.route("/logout")
def logout():
    with Session() as db:
        UserService(db, session).clear_user_from_session()
    logout_user()
    return redirect(url_for("auth.login"))
