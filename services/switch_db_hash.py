"""Switch the algorithm and/or key protecting stored catalog passwords.

The local config is written before any row is touched, so a failed write
leaves the database alone.  Rows are then committed one at a time with no
transaction around the batch.  A crash part way through leaves the config
on the new setting while the rows not yet reached are still encrypted with
the old one; running the same switch again is a no-op and does not fix
them, so those rows have to be restored from a backup or re-entered by the
patrons.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Iterable, List, Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError

from db import User, UserCard
from services.cipher import (
    DISABLED,
    BlockCipher,
    EncryptionSetting,
    get_cipher_algorithm,
    parse_setting,
)
from services.ini_config import (
    IniConfig,
    read_configured_key,
    read_encryption_setting,
    write_encryption_setting,
)


class MigrationError(Exception):
    """Fatal problem; nothing past the failing step has been changed."""


class MissingKeyError(MigrationError):
    pass


class ConfigWriteError(MigrationError):
    pass


class PersistenceError(Exception):
    """A single row could not be saved; the rest of the batch carries on."""


class NoChangesRequested(Exception):
    """The requested setting is already the active one."""


@dataclass
class RowOutcome:
    label: str
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class MigrationReport:
    old: EncryptionSetting
    new: EncryptionSetting
    users: List[RowOutcome] = field(default_factory=list)
    cards: List[RowOutcome] = field(default_factory=list)

    @property
    def failures(self) -> List[RowOutcome]:
        return [o for o in self.users + self.cards if not o.ok]

    @property
    def migrated(self) -> int:
        return sum(1 for o in self.users + self.cards if o.ok)


def fix_row(db, row, old_cipher: Optional[BlockCipher], new_cipher: Optional[BlockCipher]) -> None:
    """Re-encrypt the catalog password of one user or card row and commit it.

    ``new_cipher`` of None means the target setting stores plaintext.
    """
    if old_cipher is not None and row.cat_pass_enc is not None:
        password = old_cipher.decrypt(row.cat_pass_enc)
    else:
        password = row.cat_password

    if new_cipher is None:
        row.cat_password = password
        row.cat_pass_enc = None
    else:
        row.cat_password = None
        row.cat_pass_enc = None if password is None else new_cipher.encrypt(password)

    try:
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        raise PersistenceError(f"Could not save row: {exc}") from exc


def _row_outcome(db, row, label: str, old_cipher, new_cipher) -> RowOutcome:
    try:
        fix_row(db, row, old_cipher, new_cipher)
    except Exception as exc:  # one bad row must not stop the batch
        return RowOutcome(label, exc)
    return RowOutcome(label)


def migrate_rows(
    db,
    rows: Iterable,
    label: Callable[[object], str],
    old_cipher: Optional[BlockCipher],
    new_cipher: Optional[BlockCipher],
) -> List[RowOutcome]:
    """Run :func:`fix_row` over ``rows`` and collect one outcome per row."""
    # Labels are read up front; a rollback expires every loaded row.
    labelled = [(row, label(row)) for row in rows]
    return [_row_outcome(db, row, name, old_cipher, new_cipher) for row, name in labelled]


def resolve_settings(
    config: IniConfig, new_method: str, new_key: Optional[str] = None
) -> Tuple[EncryptionSetting, EncryptionSetting, Optional[str]]:
    """Work out the old and new settings from the config and the arguments.

    Returns ``(old, new, key)`` where ``key`` is the key to write to the
    config.  Raises :class:`MissingKeyError` or :class:`NoChangesRequested`.
    """
    old = read_encryption_setting(config)
    key = new_key if new_key is not None else read_configured_key(config)

    if not key and (new_method or "").strip().lower() != DISABLED:
        raise MissingKeyError("Please specify a key as the second parameter.")
    new = parse_setting(new_method, key)

    if old == new:
        raise NoChangesRequested("No changes requested -- no action needed.")
    return old, new, key


def _print_failures(echo, outcomes: List[RowOutcome]) -> None:
    for outcome in outcomes:
        if not outcome.ok:
            echo(f"Problem with {outcome.label}: {outcome.error}")


def switch_db_hash(
    db,
    config: IniConfig,
    new_method: str,
    new_key: Optional[str] = None,
    echo: Callable[[str], None] = print,
) -> MigrationReport:
    """Move every stored catalog password to a new algorithm and/or key.

    Fatal problems raise before the database is modified:
    :class:`MissingKeyError`, :class:`~services.cipher.UnsupportedAlgorithmError`
    and :class:`ConfigWriteError`.  :class:`NoChangesRequested` is raised
    when there is nothing to do.  Failures on individual rows are returned
    in the report instead.
    """
    old, new, key = resolve_settings(config, new_method, new_key)

    # Look up both algorithms first so a typo aborts before anything is written.
    old_algorithm = get_cipher_algorithm(old.algorithm)
    new_algorithm = get_cipher_algorithm(new.algorithm)

    echo(f"\tUpdating {config.path}...")
    write_encryption_setting(config, new, key)
    if not config.save():
        raise ConfigWriteError("\tWrite failed!")

    old_cipher = None if old_algorithm is None else BlockCipher(old_algorithm, old.key)
    new_cipher = None if new_algorithm is None else BlockCipher(new_algorithm, new.key)

    users = db.query(User).filter(User.cat_username.isnot(None)).all()
    cards = db.query(UserCard).filter(UserCard.cat_username.isnot(None)).all()
    report = MigrationReport(old=old, new=new)

    echo(f"\tConverting hashes for {len(users)} user(s).")
    report.users = migrate_rows(db, users, lambda u: f"user {u.username}", old_cipher, new_cipher)
    _print_failures(echo, report.users)

    if cards:
        echo(f"\tConverting hashes for {len(cards)} card(s).")
        report.cards = migrate_rows(db, cards, lambda c: f"card {c.id}", old_cipher, new_cipher)
        _print_failures(echo, report.cards)

    echo("\tFinished.")
    return report
