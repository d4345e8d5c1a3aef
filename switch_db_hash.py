"""One-time script to move stored catalog passwords to a new algorithm or key.

Same as ``flask --app flask_app switch-db-hash NEWMETHOD [NEWKEY]``::

    python switch_db_hash.py aes "a long random key"
"""

from commands import switch_db_hash_command
from flask_app import app


def main() -> None:
    with app.app_context():
        switch_db_hash_command.main(prog_name="switch_db_hash.py")


if __name__ == "__main__":
    main()
