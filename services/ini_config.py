"""Read and write the local catalog ``config.ini``.

Only the ``[Authentication]`` keys that control catalog password encryption
are interpreted here; every other section is carried through unchanged.
"""

from __future__ import annotations

import configparser
import os
from typing import Optional

from services.cipher import DISABLED, EncryptionDisabled, EncryptionEnabled, EncryptionSetting

AUTH_SECTION = "Authentication"
DEFAULT_ALGORITHM = "blowfish"
_TRUE_VALUES = {"1", "true", "yes", "on"}


class IniConfig:
    """Small wrapper around :mod:`configparser` with an explicit ``save``."""

    def __init__(self, path: str):
        self.path = path
        self._parser = configparser.ConfigParser(interpolation=None)
        self._parser.optionxform = str  # keep key case as written
        if os.path.exists(path):
            self._parser.read(path, encoding="utf-8")

    def get(self, section: str, key: str) -> Optional[str]:
        if not self._parser.has_option(section, key):
            return None
        value = self._parser.get(section, key).strip().strip('"')
        return value or None

    def get_boolean(self, section: str, key: str, default: bool = False) -> bool:
        value = self.get(section, key)
        if value is None:
            return default
        return value.lower() in _TRUE_VALUES

    def set(self, section: str, key: str, value) -> None:
        if not self._parser.has_section(section):
            self._parser.add_section(section)
        if isinstance(value, bool):
            value = "true" if value else "false"
        self._parser.set(section, key, str(value))

    def save(self) -> bool:
        """Write the file; return False instead of raising on I/O errors."""
        try:
            directory = os.path.dirname(self.path)
            if directory:
                os.makedirs(directory, exist_ok=True)
            with open(self.path, "w", encoding="utf-8") as fh:
                self._parser.write(fh)
        except OSError:
            return False
        return True


def read_configured_key(config: IniConfig) -> Optional[str]:
    """Return the key on file while encryption is switched on, else None.

    The key is returned even when the algorithm is ``none``.
    """
    if not config.get_boolean(AUTH_SECTION, "encrypt_ils_password"):
        return None
    return config.get(AUTH_SECTION, "ils_encryption_key")


def read_encryption_setting(config: IniConfig) -> EncryptionSetting:
    """Return the catalog password encryption currently configured."""
    key = config.get(AUTH_SECTION, "ils_encryption_key")
    if key is None or not config.get_boolean(AUTH_SECTION, "encrypt_ils_password"):
        return EncryptionDisabled()
    algorithm = (config.get(AUTH_SECTION, "ils_encryption_algo") or DEFAULT_ALGORITHM).lower()
    if algorithm == DISABLED:
        return EncryptionDisabled()
    return EncryptionEnabled(algorithm=algorithm, key=key)


def write_encryption_setting(config: IniConfig, setting: EncryptionSetting, key: Optional[str]) -> None:
    """Stage the three encryption keys together; ``save()`` is up to the caller."""
    config.set(AUTH_SECTION, "encrypt_ils_password", setting.enabled)
    config.set(AUTH_SECTION, "ils_encryption_algo", setting.algorithm)
    if key is not None:
        config.set(AUTH_SECTION, "ils_encryption_key", key)
