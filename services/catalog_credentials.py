"""Patron-side handling of catalog (ILS) credentials on user and card rows."""

from typing import Optional

from services.cipher import EncryptionSetting, build_cipher


def get_cat_password(row, setting: EncryptionSetting) -> Optional[str]:
    """Return the plaintext catalog password stored on ``row``."""
    cipher = build_cipher(setting)
    if cipher is None:
        return row.cat_password
    if row.cat_pass_enc is None:
        return None
    return cipher.decrypt(row.cat_pass_enc)


def set_cat_credentials(row, username: str, password: Optional[str], setting: EncryptionSetting) -> None:
    """Store catalog credentials on ``row`` according to ``setting``.

    The row is only modified; committing it is left to the caller.
    """
    cipher = build_cipher(setting)
    row.cat_username = username
    if cipher is None:
        row.cat_password = password
        row.cat_pass_enc = None
    else:
        row.cat_password = None
        row.cat_pass_enc = None if password is None else cipher.encrypt(password)
