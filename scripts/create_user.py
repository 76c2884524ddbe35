import argparse
import os
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from userapi.database import Database
from userapi.store import StoreError


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Add a user to the user service database")
    parser.add_argument("name", help="Display name for the user")
    parser.add_argument("email", help="Unique email address")
    parser.add_argument(
        "--db",
        dest="database_url",
        default=None,
        help="Database connection string (defaults to DATABASE_URL)",
    )
    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)

    database = Database(args.database_url or os.getenv("DATABASE_URL"))
    try:
        database.initialize()
        user = database.create_user(args.name.strip(), args.email.strip())
    except StoreError as exc:  # missing configuration, duplicates, etc.
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    finally:
        database.close()

    print(f"Created user #{user.id}: {user.name} <{user.email}>")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
