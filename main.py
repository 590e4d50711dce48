"""Command-line interface for the user registry."""

from __future__ import annotations
import argparse
import logging
import sys
from pathlib import Path
from typing import Callable, List, Optional, Sequence

from usercrud.application import build_store
from usercrud.config import BACKENDS, Settings, load_settings
from usercrud.errors import StorageError
from usercrud.models import ErrorKind, OperationResult, UserRecord
from usercrud.store import UserStore
from usercrud.validation import describe_error

logger = logging.getLogger("usercrud.main")

InputFunc = Callable[[str], str]

_KNOWN_COMMANDS = {"console", "init-db", "list", "serve"}


def _parse_args(argv: Sequence[str] | None) -> argparse.Namespace:
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--config",
        default=None,
        help="Path to a YAML settings file (default: USERCRUD_CONFIG when set)",
    )
    common.add_argument(
        "--backend",
        choices=BACKENDS,
        default=None,
        help="Storage backend to use (default: sqlite)",
    )
    common.add_argument(
        "--db",
        dest="db_path",
        default=None,
        help="Path to the SQLite database (defaults to USERCRUD_DB_PATH or data/users.sqlite3)",
    )

    parser = argparse.ArgumentParser(description="User registry utilities")
    subparsers = parser.add_subparsers(dest="command")

    parser.set_defaults(command="console")

    subparsers.add_parser(
        "console", parents=[common], help="Launch the interactive user management console"
    )
    subparsers.add_parser("init-db", parents=[common], help="Initialise the user database")
    subparsers.add_parser("list", parents=[common], help="Print all registered users")

    serve_parser = subparsers.add_parser(
        "serve", parents=[common], help="Start the HTTP user registry API"
    )
    serve_parser.add_argument("--host", default="127.0.0.1", help="Bind address for the API")
    serve_parser.add_argument(
        "--port",
        type=int,
        default=8000,
        help="Port for the HTTP API (default: 8000)",
    )

    args_list = list(argv) if argv is not None else sys.argv[1:]

    if not args_list:
        args_list = ["console"]
    else:
        first = args_list[0]
        if first in ("-h", "--help"):
            return parser.parse_args(args_list)
        if first not in _KNOWN_COMMANDS:
            if any(flag in args_list for flag in ("-h", "--help")):
                return parser.parse_args(args_list)
            args_list = ["console", *args_list]

    return parser.parse_args(args_list)


def _load_settings(args: argparse.Namespace) -> Settings:
    config_path = Path(args.config).expanduser() if getattr(args, "config", None) else None
    settings = load_settings(config_path)
    return settings.with_overrides(
        backend=getattr(args, "backend", None),
        database_path=getattr(args, "db_path", None),
    )


def _serve(*, settings: Settings, host: str, port: int) -> None:
    from usercrud.application import create_application
    import uvicorn

    logger.info("Starting user registry API on http://%s:%s", host, port)
    app = create_application(settings=settings)
    uvicorn.run(app, host=host, port=port, log_level=settings.log_level.lower())


def _report_failure(action: str, result: OperationResult) -> None:
    kind = result.error or ErrorKind.STORAGE_ERROR
    print(f"{action}: {result.detail or describe_error(kind)}")


def _format_user(user: UserRecord) -> str:
    registered = user.registered_at.strftime("%Y-%m-%d %H:%M:%S %Z")
    line = (
        f"{user.id:>4}  {user.name:<24}  {user.age:>3}  {user.email:<32}  {registered}"
    )
    if user.updated_at is not None:
        line += f"  (updated {user.updated_at.strftime('%Y-%m-%d %H:%M:%S %Z')})"
    return line


def _print_users(users: List[UserRecord]) -> None:
    print(f"{'ID':>4}  {'Name':<24}  {'Age':>3}  {'Email':<32}  Registered")
    print("-" * 96)
    for user in users:
        print(_format_user(user))


def _prompt_int(prompt: str, label: str, input_func: InputFunc) -> Optional[int]:
    raw = input_func(prompt).strip()
    try:
        return int(raw)
    except ValueError:
        print(f"{label} must be a whole number.")
        return None


def _list_users(store: UserStore) -> None:
    result = store.list()
    if not result.is_ok:
        _report_failure("Failed to list users", result)
        return

    users = result.unwrap()
    if not users:
        print("No users are currently registered.")
        return

    print(f"{len(users)} user(s) found:")
    _print_users(users)


def _add_user(store: UserStore, input_func: InputFunc = input) -> None:
    print("\nCreate a new user.")
    name = input_func("Name: ")
    age = _prompt_int("Age: ", "Age", input_func)
    if age is None:
        return
    email = input_func("Email address: ")

    result = store.add(name, age, email)
    if not result.is_ok:
        _report_failure("Failed to create user", result)
        return

    user = result.unwrap()
    print(f"Created user #{user.id}: {user.name} <{user.email}>")


def _edit_user(store: UserStore, input_func: InputFunc = input) -> None:
    user_id = _prompt_int("ID of the user to edit: ", "User ID", input_func)
    if user_id is None:
        return

    current = store.get(user_id)
    if not current.is_ok:
        _report_failure("Cannot edit user", current)
        return
    user = current.unwrap()

    print("Leave a field blank to keep its current value.")
    name = input_func(f"New name [{user.name}]: ").strip() or user.name

    raw_age = input_func(f"New age [{user.age}]: ").strip()
    if raw_age:
        try:
            age = int(raw_age)
        except ValueError:
            print("Age must be a whole number.")
            return
    else:
        age = user.age

    email = input_func(f"New email [{user.email}]: ").strip() or user.email

    result = store.edit(user_id, name, age, email)
    if not result.is_ok:
        _report_failure("Failed to update user", result)
        return

    updated = result.unwrap()
    print(f"Updated user #{updated.id}: {updated.name} <{updated.email}>")


def _delete_user(store: UserStore, input_func: InputFunc = input) -> None:
    user_id = _prompt_int("ID of the user to delete: ", "User ID", input_func)
    if user_id is None:
        return

    result = store.delete(user_id)
    if not result.is_ok:
        _report_failure("Failed to delete user", result)
        return

    removed = result.unwrap()
    print(f"Deleted user #{removed.id}: {removed.name}")


def _show_user(store: UserStore, input_func: InputFunc = input) -> None:
    user_id = _prompt_int("User ID: ", "User ID", input_func)
    if user_id is None:
        return

    result = store.get(user_id)
    if not result.is_ok:
        _report_failure("Cannot show user", result)
        return

    _print_users([result.unwrap()])


def _search_users(store: UserStore, input_func: InputFunc = input) -> None:
    fragment = input_func("Name contains: ")
    result = store.find(fragment)
    if not result.is_ok:
        _report_failure("Search failed", result)
        return

    users = result.unwrap()
    if not users:
        print(f"No users match '{fragment}'.")
        return

    print(f"{len(users)} user(s) match '{fragment}':")
    _print_users(users)


def _run_console(store: UserStore, input_func: InputFunc = input) -> None:
    """Provide an interactive console for managing users."""

    print("User Registry Console")
    print("Press Ctrl+C at any time to exit.\n")

    try:
        while True:
            print("Select an option:")
            print("  1) Add a new user")
            print("  2) List all users")
            print("  3) Edit a user")
            print("  4) Delete a user")
            print("  5) Show a user by ID")
            print("  6) Search users by name")
            print("  7) Exit")

            choice = input_func("Enter choice [1-7]: ").strip()

            if choice == "1":
                _add_user(store, input_func)
            elif choice == "2":
                _list_users(store)
            elif choice == "3":
                _edit_user(store, input_func)
            elif choice == "4":
                _delete_user(store, input_func)
            elif choice == "5":
                _show_user(store, input_func)
            elif choice == "6":
                _search_users(store, input_func)
            elif choice == "7":
                print("\nRegistered users (final):")
                _list_users(store)
                print("Goodbye!")
                return
            else:
                print("Invalid selection. Please choose a number from the menu.\n")

            print()
    except (KeyboardInterrupt, EOFError):
        print("\nExiting user registry console.")
        print("Registered users (final):")
        _list_users(store)


def main(argv: Sequence[str] | None = None) -> None:
    """Entry point for CLI usage."""

    args = _parse_args(argv)
    try:
        settings = _load_settings(args)
    except (OSError, ValueError) as exc:
        raise SystemExit(f"Invalid configuration: {exc}") from exc

    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(message)s",
    )

    if args.command == "init-db" and settings.backend != "sqlite":
        raise SystemExit("init-db requires the sqlite backend; the memory backend has no database to initialise.")

    if args.command == "serve":
        try:
            _serve(settings=settings, host=args.host, port=args.port)
        except StorageError as exc:
            raise SystemExit(f"Unable to open user database: {exc}") from exc
        return

    try:
        store = build_store(settings)
    except StorageError as exc:
        raise SystemExit(f"Unable to open user database: {exc}") from exc
    if settings.backend == "sqlite":
        logger.info("Using database at %s", settings.database_path)

    if args.command == "console":
        _run_console(store)
    elif args.command == "list":
        _list_users(store)
    elif args.command == "init-db":
        print("Database initialisation complete.")


if __name__ == "__main__":
    main()
