"""Parsing of ``:`` command-line input into typed commands."""

from dataclasses import dataclass
from typing import Union


@dataclass(frozen=True)
class RefreshCommand:
    pass


@dataclass(frozen=True)
class SetCommand:
    key: str
    value: str


@dataclass(frozen=True)
class HelpCommand:
    pass


@dataclass(frozen=True)
class LogsCommand:
    pass


@dataclass(frozen=True)
class FilterCommand:
    tab: str
    query: str


@dataclass(frozen=True)
class ViewCommand:
    tab: str


@dataclass(frozen=True)
class QuitCommand:
    pass


@dataclass(frozen=True)
class UnknownCommand:
    text: str


Command = Union[
    RefreshCommand,
    SetCommand,
    HelpCommand,
    LogsCommand,
    FilterCommand,
    ViewCommand,
    QuitCommand,
    UnknownCommand,
]


def parse_command(raw: str) -> Command:
    """Tokenize on whitespace and map the leading verb to a command.

    ``set api-key`` keeps every remaining token so keys containing spaces
    survive; other ``set`` keys take the first token only.
    """
    text = raw.strip()
    if text.startswith(":"):
        text = text[1:]
    tokens = text.split()
    if not tokens:
        return UnknownCommand(raw.strip())
    head, rest = tokens[0], tokens[1:]

    if head == "refresh":
        return RefreshCommand()
    if head == "set":
        if not rest:
            return SetCommand("", "")
        key = rest[0]
        if key == "api-key":
            return SetCommand(key, " ".join(rest[1:]))
        return SetCommand(key, rest[1] if len(rest) > 1 else "")
    if head == "help":
        return HelpCommand()
    if head == "logs":
        return LogsCommand()
    if head == "filter":
        tab = rest[0] if rest else ""
        return FilterCommand(tab, " ".join(rest[1:]))
    if head == "view":
        return ViewCommand(rest[0] if rest else "")
    if head in ("quit", "q"):
        return QuitCommand()
    return UnknownCommand(raw.strip())
