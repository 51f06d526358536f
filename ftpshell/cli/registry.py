"""Command table for ftpshell.

Maps each command word typed at the prompt to its handler and help
text. The table is built once at startup and handed to the driver.
"""

from dataclasses import dataclass
from typing import Any, Callable, Dict, List

from ftpshell.ftp import commands
from ftpshell.ftp.session import Session

# Type alias for command handlers
CommandHandler = Callable[[Session, List[str]], Any]


@dataclass(frozen=True)
class CommandSpec:
    """One entry of the command table."""
    name: str
    usage: str
    description: str
    handler: CommandHandler


CommandTable = Dict[str, CommandSpec]


def format_help(table: CommandTable) -> List[str]:
    """Help lines for every command, sorted by name."""
    lines = ["Supported commands:"]
    for name in sorted(table):
        spec = table[name]
        lines.append(f" {spec.usage} - {spec.description}")
    return lines


def build_command_table() -> CommandTable:
    """Create the command table."""
    specs = [
        CommandSpec("auth", "auth",
                    "Authenticate with the configured username and password.",
                    commands.handle_auth),
        CommandSpec("pwd", "pwd", "Print working directory.", commands.handle_pwd),
        CommandSpec("pasv", "pasv",
                    "Enter passive mode; the server listens for the next data connection.",
                    commands.handle_pasv),
        CommandSpec("epsv", "epsv", "Enter extended passive mode.", commands.handle_epsv),
        CommandSpec("list", "list [pathname]",
                    "List a directory over the negotiated data connection.",
                    commands.handle_list),
        CommandSpec("cwd", "cwd <pathname>", "Change the working directory.",
                    commands.handle_cwd),
        CommandSpec("cdup", "cdup", "Change working directory to parent directory.",
                    commands.handle_cdup),
        CommandSpec("retr", "retr <pathname>",
                    "Download a file into the current local directory.",
                    commands.handle_retr),
        CommandSpec("stor", "stor <filename> [remote name]",
                    "Upload a local file to the server.",
                    commands.handle_stor),
        CommandSpec("stat", "stat [pathname]",
                    "Show server status, or the status of a path.",
                    commands.handle_stat),
        CommandSpec("size", "size <pathname>", "Display size of file on server.",
                    commands.handle_size),
        CommandSpec("serverhelp", "serverhelp [command]",
                    "Display the server's help message.",
                    commands.handle_server_help),
        CommandSpec("quit", "quit", "Close the connection and exit.", commands.handle_quit),
    ]
    table: CommandTable = {spec.name: spec for spec in specs}

    def handle_help(session: Session, args: List[str]) -> None:
        for line in format_help(table):
            session.output(line)

    table["help"] = CommandSpec("help", "help", "Display this help message.", handle_help)
    return table
