"""Database and session lookups for :class:`db.User`.

Outside privacy mode only the user id is kept in the session.  In privacy
mode the user never has to exist in the database, so a snapshot of the
user's fields (:class:`UserDetails`) is stored in the session instead.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, fields
from datetime import datetime
from typing import Any, MutableMapping, Optional

from db import User

USER_ID_KEY = "userId"
USER_DETAILS_KEY = "userDetails"
USER_DETAILS_VERSION = 1


class InvalidFieldNameError(ValueError):
    pass


class UnsupportedIdentityTypeError(TypeError):
    pass


@dataclass
class UserDetails:
    """Fields of a user that are carried in the session."""

    id: Optional[int] = None
    username: Optional[str] = None
    firstname: Optional[str] = None
    lastname: Optional[str] = None
    email: Optional[str] = None
    cat_id: Optional[str] = None
    cat_username: Optional[str] = None
    cat_password: Optional[str] = None
    cat_pass_enc: Optional[str] = None
    home_library: Optional[str] = None
    created: Optional[str] = None
    last_login: Optional[str] = None


_DATETIME_FIELDS = ("created", "last_login")


def _isoformat(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def user_to_details(user: User) -> dict:
    """Map a user row to a JSON-friendly, versioned snapshot."""
    values = {}
    for f in fields(UserDetails):
        value = getattr(user, f.name)
        if f.name in _DATETIME_FIELDS:
            value = _isoformat(value)
        values[f.name] = value
    data = asdict(UserDetails(**values))
    data["version"] = USER_DETAILS_VERSION
    return data


def details_to_user(data: dict, user: Optional[User] = None) -> Optional[User]:
    """Populate ``user`` (or a new, unsaved one) from a snapshot.

    Returns None for a snapshot written with another version.
    """
    if data.get("version") != USER_DETAILS_VERSION:
        return None
    user = user if user is not None else User()
    for f in fields(UserDetails):
        value = data.get(f.name)
        if f.name in _DATETIME_FIELDS and value is not None:
            value = datetime.fromisoformat(value)
        setattr(user, f.name, value)
    return user


class UserService:
    """Look users up by key and keep the logged-in user in the session."""

    def __init__(self, db, session_store: MutableMapping[str, Any]):
        self.db = db
        self.session_store = session_store

    def get_user_by_id(self, user_id) -> Optional[User]:
        if user_id is None:
            return None
        return self.db.get(User, int(user_id))

    def get_user_by_username(self, username: str) -> Optional[User]:
        return self.db.query(User).filter_by(username=username).first()

    def get_user_by_catalog_id(self, cat_id: str) -> Optional[User]:
        return self.db.query(User).filter_by(cat_id=cat_id).first()

    def get_user_by_field(self, field_name: str, value) -> Optional[User]:
        """Field name must be id, username or cat_id (``catalogId`` also works)."""
        if field_name == "id":
            return self.get_user_by_id(value)
        if field_name == "username":
            return self.get_user_by_username(value)
        if field_name in ("cat_id", "catalogId"):
            return self.get_user_by_catalog_id(value)
        raise InvalidFieldNameError("Field name must be id, username or cat_id")

    def add_user_data_to_session(self, user) -> None:
        """Store a snapshot of ``user`` in the session (privacy mode)."""
        if not isinstance(user, User):
            raise UnsupportedIdentityTypeError(
                f"{type(user).__name__} not supported by add_user_data_to_session()"
            )
        self.session_store[USER_DETAILS_KEY] = user_to_details(user)

    def add_user_id_to_session(self, user_id: int) -> None:
        self.session_store[USER_ID_KEY] = user_id

    def clear_user_from_session(self) -> None:
        self.session_store.pop(USER_ID_KEY, None)
        self.session_store.pop(USER_DETAILS_KEY, None)

    def get_user_from_session(self) -> Optional[User]:
        # A stored id takes precedence over a snapshot.
        if self.session_store.get(USER_ID_KEY) is not None:
            return self.get_user_by_id(self.session_store[USER_ID_KEY])
        details = self.session_store.get(USER_DETAILS_KEY)
        if details is not None:
            return details_to_user(details, self.create_entity())
        return None

    def has_user_session_data(self) -> bool:
        return (
            self.session_store.get(USER_ID_KEY) is not None
            or self.session_store.get(USER_DETAILS_KEY) is not None
        )

    def create_entity(self) -> User:
        return User()
