# tchat_core/irc/irc_message.py
from dataclasses import dataclass, field
from typing import Optional, Tuple


class MalformedLineError(ValueError):
    """Raised when no command verb can be extracted from a raw line."""

    def __init__(self, raw_line: str, reason: str):
        super().__init__(f"{reason}: {raw_line!r}")
        self.raw_line = raw_line
        self.reason = reason


def _parse_source_nick(raw_source: Optional[str]) -> Optional[str]:
    # "nick!user@host" -> "nick"; server names and odd prefixes have no sender
    if not raw_source:
        return None
    source_parts = raw_source.split("!")
    if len(source_parts) == 2:
        return source_parts[0]
    return None


@dataclass(frozen=True)
class IRCMessage:
    """
    One parsed line from the chat service.

    Only the subset needed to recognise keepalives and chat lines is
    interpreted: message tags are skipped, the prefix is reduced to a sender
    nick, and everything after the first ':' following the command is kept
    as a single `parameters` string.

    Attributes:
        command (str): The command verb, e.g. "PRIVMSG" or "PING".
        source (Optional[str]): Sender nick when the prefix was "nick!user@host".
        parameters (Optional[str]): Trailing text after the command's ':' delimiter.
        arguments (Tuple[str, ...]): Remaining tokens of the command component,
            e.g. ("#channel",) for a PRIVMSG.
        raw_line (str): The line without its terminator.
    """

    command: str
    source: Optional[str] = None
    parameters: Optional[str] = None
    arguments: Tuple[str, ...] = field(default_factory=tuple)
    raw_line: str = ""

    @classmethod
    def parse(cls, line: str) -> "IRCMessage":
        message = line.rstrip("\r\n")
        idx = 0

        # Tags are not interpreted, only skipped
        if message.startswith("@"):
            tag_end = message.find(" ")
            if tag_end == -1:
                raise MalformedLineError(line, "Tag segment without command")
            idx = tag_end + 1

        raw_source = None
        if message.startswith(":", idx):
            source_end = message.find(" ", idx + 1)
            if source_end == -1:
                raise MalformedLineError(line, "Source segment without command")
            raw_source = message[idx + 1:source_end]
            idx = source_end + 1

        params_start = message.find(":", idx)
        if params_start == -1:
            raw_command = message[idx:].strip()
            parameters = None
        else:
            raw_command = message[idx:params_start].strip()
            parameters = message[params_start + 1:].strip()

        command_parts = raw_command.split()
        if not command_parts:
            raise MalformedLineError(line, "Missing command")

        return cls(
            command=command_parts[0],
            source=_parse_source_nick(raw_source),
            parameters=parameters,
            arguments=tuple(command_parts[1:]),
            raw_line=message,
        )
