"""Command parser for CLI input."""

import shlex
from datetime import datetime
from typing import Optional, Sequence, Union

from cli.models import (
    CommandRequest,
    DownloadCommand,
    FilterArgs,
    ListCommand,
    UploadCommand,
)
from filestore.database import to_utc


class ParseError(Exception):
    """Raised when command parsing fails."""

    pass


FILTER_OPTIONS = ("--start-date", "--end-date", "--hierarchy", "--name", "--id")


def parse_command(command_input: Union[str, Sequence[str]]) -> CommandRequest:
    """Parse user input into a CommandRequest object.

    Args:
        command_input: Raw REPL line, or argv tokens from the shell

    Returns:
        CommandRequest object (one of List/Download/Upload)

    Raises:
        ParseError: If command syntax is invalid
    """
    if isinstance(command_input, str):
        if not command_input.strip():
            raise ParseError("Empty command")
        try:
            tokens = shlex.split(command_input)
        except ValueError as e:
            raise ParseError(f"Invalid syntax: {e}")
    else:
        tokens = list(command_input)

    if not tokens:
        raise ParseError("Empty command")

    command_name = tokens[0]

    if command_name == "list":
        return _parse_list(tokens[1:])
    elif command_name == "download":
        return _parse_download(tokens[1:])
    elif command_name == "upload":
        return _parse_upload(tokens[1:])
    else:
        raise ParseError(f"Unknown command: {command_name}")


def _split_options(
    args: list[str],
    value_options: Sequence[str],
    flag_options: Sequence[str] = (),
) -> tuple[list[str], dict[str, Union[str, bool]]]:
    """Separate positional arguments from '--option value' pairs and flags."""
    positionals: list[str] = []
    options: dict[str, Union[str, bool]] = {}

    index = 0
    while index < len(args):
        arg = args[index]
        if arg in flag_options:
            options[arg] = True
        elif arg in value_options:
            if index + 1 >= len(args):
                raise ParseError(f"{arg} requires a value")
            options[arg] = args[index + 1]
            index += 1
        elif arg.startswith("--"):
            raise ParseError(f"Unknown option: {arg}")
        else:
            positionals.append(arg)
        index += 1

    return positionals, options


def _parse_date(option: str, value: Optional[str]) -> Optional[datetime]:
    if value is None:
        return None
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        raise ParseError(f"{option} must be an ISO 8601 date, got '{value}'")


def _parse_hierarchy(value: Optional[str]) -> tuple[str, ...]:
    if not value:
        return ()
    return tuple(segment.strip() for segment in value.split(",") if segment.strip())


def _build_filters(options: dict) -> FilterArgs:
    start_date = _parse_date("--start-date", options.get("--start-date"))
    end_date = _parse_date("--end-date", options.get("--end-date"))
    if start_date and end_date and to_utc(start_date) > to_utc(end_date):
        raise ParseError("--start-date must not be after --end-date")

    return FilterArgs(
        start_date=start_date,
        end_date=end_date,
        hierarchy=_parse_hierarchy(options.get("--hierarchy")),
        name=options.get("--name"),
        file_id=options.get("--id"),
    )


def _parse_list(args: list[str]) -> ListCommand:
    """Parse 'list [filters]' command."""
    positionals, options = _split_options(args, FILTER_OPTIONS)
    if positionals:
        raise ParseError(f"list takes no positional arguments, got {positionals}")

    return ListCommand(filters=_build_filters(options))


def _parse_download(args: list[str]) -> DownloadCommand:
    """Parse 'download <dest_dir> [filters] [--flat]' command."""
    positionals, options = _split_options(args, FILTER_OPTIONS, flag_options=("--flat",))
    if len(positionals) != 1:
        raise ParseError("download requires exactly 1 argument: <dest_dir>")

    return DownloadCommand(
        dest_dir=positionals[0],
        filters=_build_filters(options),
        flat=bool(options.get("--flat", False)),
    )


def _parse_upload(args: list[str]) -> UploadCommand:
    """Parse 'upload <path> [options]' command."""
    positionals, options = _split_options(
        args,
        ("--hierarchy", "--file-date", "--name", "--id"),
        flag_options=("--no-dedup",),
    )
    if len(positionals) != 1:
        raise ParseError("upload requires exactly 1 argument: <path>")

    return UploadCommand(
        path=positionals[0],
        hierarchy=_parse_hierarchy(options.get("--hierarchy")),
        file_date=_parse_date("--file-date", options.get("--file-date")),
        name=options.get("--name"),
        file_id=options.get("--id"),
        deduplicate=not options.get("--no-dedup", False),
    )
