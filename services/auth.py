from datetime import datetime
from typing import Optional, Tuple

from werkzeug.security import check_password_hash, generate_password_hash

from db import User


def authenticate(db, username: str, password: str) -> Tuple[Optional[User], Optional[str]]:
    """Return user if credentials are valid, otherwise an error message."""
    user = db.query(User).filter_by(username=(username or "").strip()).first()
    if not user or not user.password_hash or not check_password_hash(user.password_hash, password or ""):
        return None, "Invalid credentials"
    user.last_login = datetime.utcnow()
    db.commit()
    return user, None


def create_user(db, username: str, password: str, **fields) -> User:
    """Create and commit a local account."""
    user = User(username=username, password_hash=generate_password_hash(password), **fields)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user
