"""CLI script to create an administrator account in the configured DB.
Usage: python scripts/create_admin.py USERNAME [--password PASSWORD]
"""
import argparse
import getpass
from typing import Optional

from sqlmodel import Session

from studentrecords import services
from studentrecords.database import build_engine, create_db_and_tables
from studentrecords.errors import ValidationError


def main(username: str, password: str, database_url: Optional[str] = None) -> int:
    """Create the admin `username` and print the outcome.

    Returns a process exit code: 0 on success, 1 if the username exists.
    """
    engine = build_engine(database_url)
    create_db_and_tables(engine)
    try:
        with Session(engine) as session:
            admin = services.AuthService(session).create_admin(username, password)
            print(f'Created admin {admin.username} (id {admin.id})')
            return 0
    except ValidationError as e:
        print(f'Error: {e}')
        return 1
    finally:
        engine.dispose()


if __name__ == '__main__':
    parser = argparse.ArgumentParser()
    parser.add_argument('username')
    parser.add_argument('--password', help='Prompted for when omitted')
    parser.add_argument('--database-url', help='Overrides DATABASE_URL')
    args = parser.parse_args()
    pw = args.password or getpass.getpass('Password: ')
    raise SystemExit(main(args.username, pw, args.database_url))
