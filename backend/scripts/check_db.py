"""Check that the configured database is reachable.
Usage: python scripts/check_db.py [--database-url URL]
"""
import argparse
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError

from studentrecords.database import build_engine, ping


def main(database_url: Optional[str] = None) -> int:
    """Print the server time on success; return 1 on connection errors."""
    engine = build_engine(database_url)
    try:
        now = ping(engine)
    except SQLAlchemyError as e:
        print('DB connection error:', e)
        return 1
    finally:
        engine.dispose()
    print('DB connected at:', now)
    return 0


if __name__ == '__main__':
    parser = argparse.ArgumentParser()
    parser.add_argument('--database-url', help='Overrides DATABASE_URL')
    args = parser.parse_args()
    raise SystemExit(main(args.database_url))
