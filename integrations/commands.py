"""Chat command parsing.

Turns raw inbound bot text into a typed command. Pure string rules, no I/O.
"""

from dataclasses import dataclass
from enum import Enum


class CommandKind(Enum):
    ADD_TASK = "add_task"
    ADD_NOTE = "add_note"
    LIST_TASKS = "list_tasks"
    DONE_TASK = "done_task"
    CHECK_TRENDS = "check_trends"
    GET_IDEA = "get_idea"
    HELP = "get_help"
    START = "start"
    STATUS = "get_status"
    NONE = "none"


# Longer aliases first: "/tasks" must win over "/task"
COMMAND_TOKENS: tuple[tuple[str, CommandKind], ...] = (
    ("/tasks", CommandKind.LIST_TASKS),
    ("/task", CommandKind.ADD_TASK),
    ("/note", CommandKind.ADD_NOTE),
    ("/list", CommandKind.LIST_TASKS),
    ("/done", CommandKind.DONE_TASK),
    ("/trends", CommandKind.CHECK_TRENDS),
    ("/check", CommandKind.CHECK_TRENDS),
    ("/idea", CommandKind.GET_IDEA),
    ("/help", CommandKind.HELP),
    ("/start", CommandKind.START),
    ("/status", CommandKind.STATUS),
)


class ParseError(ValueError):
    """A command payload that could not be interpreted."""


@dataclass(frozen=True)
class Command:
    kind: CommandKind
    payload: str = ""


NO_COMMAND = Command(CommandKind.NONE)


def parse_command(text: str) -> Command:
    """Parse inbound text into a Command; unknown or empty text gives NONE."""
    text = (text or "").strip()
    if not text.startswith("/"):
        return NO_COMMAND

    for token, kind in COMMAND_TOKENS:
        if not text.startswith(token):
            continue
        rest = text[len(token):]
        if rest and not (rest[0].isspace() or rest[0] == "@"):
            continue
        # Group chats address bots as /task@MyBot
        if rest.startswith("@"):
            _, _, rest = rest.partition(" ")
        return Command(kind, rest.strip())

    return NO_COMMAND


def parse_position(payload: str) -> int:
    """Parse a /done payload into a 1-based task number."""
    token = (payload or "").split()
    if not token:
        raise ParseError("Missing task number")
    try:
        return int(token[0])
    except ValueError as e:
        raise ParseError(f"Not a task number: {token[0]!r}") from e
