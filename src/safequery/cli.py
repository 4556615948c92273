"""Command line entry point for safequery."""

import json
import logging
import sys
import traceback

from .constants import EXIT_FAILURE, EXIT_SUCCESS, MIN_ARGS, VERSION
from .database.adapters import create_adapter
from .database.connection import execute_query
from .database.introspection import get_schema_context
from .database.models import ConnectionConfig, DatabaseType, DocumentOperation
from .encryption import SecretResolver
from .errors import SafeQueryError

# Set up safequery logger
logger = logging.getLogger("safequery")
logger.setLevel(logging.INFO)
handler = logging.StreamHandler(sys.stderr)
handler.setFormatter(logging.Formatter("%(levelname)s: %(message)s"))
logger.addHandler(handler)

USAGE = """\
Usage: safequery <command> <argument> [<query>]

Commands:
  test <config.json>             - Connect, run a trivial probe and disconnect
  schema <config.json>           - Print the schema block for a relational connection
  query <config.json> <query>    - Run one read-only query and print rows as JSON
  encrypt <text>                 - Encrypt a password or connection URL with ENCRYPTION_KEY

Examples:
  safequery test ./warehouse.json
  safequery schema ./warehouse.json
  safequery query ./warehouse.json "SELECT id, name FROM users"
  safequery query ./events.json '{"collection": "events", "operation": "count"}'
  safequery encrypt 's3cret'

The config file holds one connection record, for example:
  {"id": "warehouse", "type": "postgresql", "host": "db", "port": 5432,
   "database": "sales", "username": "reader", "passwordEncrypted": "..."}
"""

COMMAND_ARGS = {
    "test": 1,
    "schema": 1,
    "query": 2,
    "encrypt": 1,
}


def load_config(path: str) -> ConnectionConfig:
    """Load one connection record from a JSON file."""
    with open(path, encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, dict):
        raise ValueError(f"{path} must contain a JSON object")
    return ConnectionConfig.from_dict(data)


def command_test(config: ConnectionConfig) -> int:
    adapter = create_adapter(config)
    print(f"Testing {config.type.value} connection {config.id} ({adapter.dsn})...")
    if adapter.test_connection():
        print("[PASSED] Connection test PASSED")
        return EXIT_SUCCESS
    print("[FAILED] Connection test FAILED")
    return EXIT_FAILURE


def command_schema(config: ConnectionConfig) -> int:
    context = get_schema_context(config)
    sys.stdout.write(context.formatted)
    return EXIT_SUCCESS


def command_query(config: ConnectionConfig, text: str) -> int:
    if config.type is DatabaseType.MONGODB and text.lstrip().startswith("{"):
        request = DocumentOperation.from_json(text)
    else:
        request = text
    result = execute_query(config, request)
    print(json.dumps({"row_count": result.row_count, "rows": result.rows}, indent=2, default=str))
    return EXIT_SUCCESS


def command_encrypt(plaintext: str) -> int:
    print(SecretResolver.from_env().encrypt(plaintext))
    return EXIT_SUCCESS


def main(argv=None) -> int:
    """Parse command line arguments and dispatch one command."""
    args = list(sys.argv[1:] if argv is None else argv)

    if args and args[0] in ("--version", "-V"):
        print(f"safequery {VERSION}")
        return EXIT_SUCCESS

    if len(args) < MIN_ARGS or args[0] not in COMMAND_ARGS:
        if args and args[0] not in COMMAND_ARGS:
            sys.stderr.write(f"Error: Unknown command '{args[0]}'\n")
        else:
            sys.stderr.write("Error: Missing required arguments\n")
        sys.stderr.write(USAGE)
        return EXIT_FAILURE

    command = args[0]
    if len(args) - 1 != COMMAND_ARGS[command]:
        sys.stderr.write(f"Error: '{command}' takes {COMMAND_ARGS[command]} argument(s)\n")
        sys.stderr.write(USAGE)
        return EXIT_FAILURE

    try:
        if command == "encrypt":
            return command_encrypt(args[1])

        config = load_config(args[1])
        if command == "test":
            return command_test(config)
        if command == "schema":
            return command_schema(config)
        return command_query(config, args[2])

    except (SafeQueryError, OSError, ValueError) as e:
        sys.stderr.write(f"Error: {e}\n")
        logger.debug(f"Command error traceback: {traceback.format_exc()}")
        return EXIT_FAILURE


def run():
    """Entry point for the safequery command."""
    sys.exit(main())


if __name__ == "__main__":
    run()
