"""Interactive prompt_toolkit shell for the file store."""

import asyncio
import os
import sys

from prompt_toolkit import PromptSession
from prompt_toolkit.completion import WordCompleter
from prompt_toolkit.history import InMemoryHistory

from cli.commands import close_catalog, handle_download, handle_list, handle_upload
from cli.constants import (
    COMMANDS,
    HELP_TEXT,
    PROMPT_TEXT,
    STYLE,
    WELCOME_HELP,
    WELCOME_TITLE,
)
from cli.models import CommandRequest, DownloadCommand, ListCommand, UploadCommand
from cli.parser import ParseError, parse_command
from common.logging_config import get_logger
from filestore.exceptions import FileStoreException

logger = get_logger(__name__)

HANDLERS = {
    ListCommand: handle_list,
    DownloadCommand: handle_download,
    UploadCommand: handle_upload,
}


def clear_screen() -> None:
    os.system("cls" if sys.platform == "win32" else "clear")


def show_banner() -> None:
    print(WELCOME_TITLE)
    print(WELCOME_HELP)


def run_command(cmd_obj: CommandRequest) -> str:
    """Run one parsed command to completion on a fresh event loop."""
    handler = HANDLERS.get(type(cmd_obj))
    if handler is None:
        return f"Unknown command type: {type(cmd_obj).__name__}"
    return asyncio.run(handler(cmd_obj))


def execute_line(line: str) -> str:
    """
    Parse and run one REPL line.

    Parse failures and store errors become an 'Error: ...' message so the
    session keeps going.
    """
    try:
        return run_command(parse_command(line))
    except ParseError as e:
        return f"Error: {e}"
    except FileStoreException as e:
        logger.error(f"Command failed: {e}")
        return f"Error: {e}"


def repl_loop() -> None:
    """Prompt for commands until 'exit' or EOF."""
    session: PromptSession = PromptSession(
        completer=WordCompleter(COMMANDS, ignore_case=True),
        history=InMemoryHistory(),
        style=STYLE,
    )

    clear_screen()
    show_banner()

    try:
        while True:
            try:
                line = session.prompt([("class:prompt", PROMPT_TEXT)]).strip()
            except KeyboardInterrupt:
                continue
            except EOFError:
                print("\nGoodbye!")
                break

            if not line:
                continue
            if line == "exit":
                print("Goodbye!")
                break
            if line == "help":
                print(HELP_TEXT)
            elif line == "clear":
                clear_screen()
                show_banner()
            else:
                try:
                    print(execute_line(line))
                except KeyboardInterrupt:
                    print("\nInterrupted")
    finally:
        close_catalog()
