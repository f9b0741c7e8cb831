"""CLI constants and configuration."""

from prompt_toolkit.styles import Style

COMMANDS = ["list", "download", "upload", "help", "clear", "exit"]

STYLE = Style.from_dict(
    {
        "prompt": "#F45935 bold",
        "command": "#0088ff bold",
    }
)

GREEN = "\033[32m"
RESET = "\033[0m"

WELCOME_TITLE = "File Store CLI - chunked file storage"
WELCOME_HELP = "Type 'help' for commands or 'exit' to quit.\n"

PROMPT_TEXT = "filestore> "

HELP_TEXT = """Available commands:
  list [filters]                      Summarize matching files by hierarchy
  download <dest_dir> [filters] [--flat]
                                      Download matching files into dest_dir/<hierarchy>/
  upload <path> [--hierarchy a,b] [--file-date D] [--name N] [--id X] [--no-dedup]
                                      Store a local file
  help                                Show this help
  clear                               Clear the screen
  exit                                Exit REPL

Filters:
  --start-date D    Files dated on or after D (ISO 8601)
  --end-date D      Files dated on or before D (ISO 8601)
  --hierarchy a,b   Files sharing any of these hierarchy segments
  --name N          Generated name contains N
  --id X            Exactly this file id

Examples:
  list --hierarchy invoices
  download downloads --start-date 2024-01-01 --flat
  upload reports/q1.pdf --hierarchy reports,2024"""
