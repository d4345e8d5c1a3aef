"""Catalog (ILS) credential routes."""

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
from flask_login import current_user, login_required

from db import Session, User
from services.catalog_credentials import set_cat_credentials
from services.ini_config import IniConfig, read_encryption_setting
from services.user import UserService

catalog_bp = Blueprint("catalog", __name__, url_prefix="/catalog")

CATALOG_LOGIN = """
<!doctype html>
<title>Library Catalog Profile</title>
{% with messages = get_flashed_messages() %}
  {% for msg in messages %}<p class="flash">{{ msg }}</p>{% endfor %}
{% endwith %}
<p>Logged in as {{ user.username }}{% if user.cat_username %}; catalog account {{ user.cat_username }}{% endif %}</p>
<form method="post" action="{{ url_for('catalog.login') }}">
  <input type="hidden" name="csrf_token" value="{{ csrf_token() }}" />
  <label>Catalog username <input name="cat_username" required></label>
  <label>Catalog password <input type="password" name="cat_password" required></label>
  <button type="submit">Save</button>
</form>
"""


def _encryption_setting():
    return read_encryption_setting(IniConfig(current_app.config["LOCAL_CONFIG_PATH"]))


@catalog_bp.route("/login", methods=["GET", "POST"])
@login_required
def login():
    if request.method == "POST":
        cat_username = request.form.get("cat_username", "").strip()
        cat_password = request.form.get("cat_password", "")
        if not cat_username or not cat_password:
            flash("Catalog username and password are required.")
            return redirect(url_for("catalog.login"))

        setting = _encryption_setting()
        with Session() as db:
            users = UserService(db, session)
            if current_app.config.get("PRIVACY_MODE"):
                user = users.get_user_from_session()
                set_cat_credentials(user, cat_username, cat_password, setting)
                users.add_user_data_to_session(user)
            else:
                user = db.get(User, current_user.id)
                set_cat_credentials(user, cat_username, cat_password, setting)
                db.commit()
        current_app.logger.info(
            "Saved catalog credentials for %s (encryption: %s)",
            current_user.username,
            setting.algorithm,
        )
        flash("Catalog credentials saved.")
        return redirect(url_for("catalog.login"))
    return render_template_string(CATALOG_LOGIN, user=current_user)
