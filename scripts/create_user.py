import argparse
import os
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from usercrud.database import Database, resolve_database_path
from usercrud.store import UserStore


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Register a user in the user registry")
    parser.add_argument("name", help="Display name for the user")
    parser.add_argument("age", type=int, help="Age in whole years")
    parser.add_argument("email", help="Unique email address")
    parser.add_argument(
        "--db",
        dest="db_path",
        default=None,
        help="Path to the SQLite database (defaults to USERCRUD_DB_PATH or data/users.sqlite3)",
    )
    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)

    db_env = args.db_path or os.getenv("USERCRUD_DB_PATH")
    db_path = resolve_database_path(db_env)

    database = Database(db_path)
    database.initialize()
    store = UserStore(database)

    result = store.add(args.name, args.age, args.email)
    if not result.is_ok:
        print(f"Error: {result.detail}", file=sys.stderr)
        return 1

    user = result.unwrap()
    print(f"Created user #{user.id}: {user.name} <{user.email}>")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
