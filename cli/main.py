"""CLI entry point."""

import os
import sys
from typing import Optional

from common.logging_config import setup_logging
from cli.commands import close_catalog, set_database_path
from cli.parser import ParseError, parse_command
from cli.repl import repl_loop, run_command
from filestore.exceptions import FileStoreException


def _pop_option(argv: list[str], option: str) -> Optional[str]:
    if option not in argv:
        return None
    index = argv.index(option)
    if index + 1 >= len(argv):
        raise SystemExit(f"{option} requires a value")
    value = argv[index + 1]
    del argv[index:index + 2]
    return value


def main(argv: Optional[list[str]] = None) -> int:
    """Entry point for CLI.

    With arguments, runs one command and exits; otherwise starts the REPL.
    """
    args = list(sys.argv[1:] if argv is None else argv)

    debug = '--debug' in args
    log_level = 'DEBUG' if debug else os.getenv('LOG_LEVEL', 'INFO')

    logger = setup_logging('cli', log_level=log_level)
    setup_logging('filestore', log_level=log_level)

    if debug:
        logger.info("Debug logging enabled")
        args.remove('--debug')

    database_path = _pop_option(args, '--database')
    if database_path:
        set_database_path(database_path)

    logger.info("CLI starting...")
    try:
        if not args:
            repl_loop()
            return 0

        try:
            cmd_obj = parse_command(args)
        except ParseError as e:
            print(f"Error: {e}")
            return 2

        try:
            print(run_command(cmd_obj))
        except FileStoreException as e:
            logger.error(f"Command failed: {e}")
            print(f"Error: {e}")
            return 1
        return 0
    except Exception as e:
        logger.error(f"CLI error: {e}", exc_info=True)
        raise
    finally:
        close_catalog()
        logger.info("CLI exiting")


if __name__ == "__main__":
    sys.exit(main())
