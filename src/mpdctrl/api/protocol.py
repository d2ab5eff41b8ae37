"""MPD wire protocol helpers.

MPD uses a simple line-based text protocol:
- Commands are sent as plain text lines
- Responses are key-value pairs: "key: value"
- Responses end with "OK" or "ACK [error@index] {command} message"
- The connection opens with a greeting: "OK MPD <version>"

Reference: https://mpd.readthedocs.io/en/stable/protocol.html
"""

import re

OK = "OK"
ACK_PREFIX = "ACK"
GREETING_PREFIX = "OK MPD "

IDLE = "idle"
NOIDLE = "noidle"


class MpdError(Exception):
    """MPD protocol error."""

    def __init__(self, code: int, command: str, message: str) -> None:
        self.code = code
        self.command = command
        self.message = message
        super().__init__(f"MPD error {code} in {command}: {message}")


class MpdConnectionError(Exception):
    """Failed to connect to MPD server, or not connected."""


# Pattern for ACK responses: ACK [error@command_listNum] {current_command} message_text
ACK_PATTERN = re.compile(r"ACK \[(\d+)@\d+\] \{(\w*)\} (.+)")


def is_ack(line: str) -> bool:
    """Return True if the line is an error line."""
    return line.startswith(ACK_PREFIX)


def parse_ack(line: str) -> MpdError:
    """Build an MpdError from an ACK line.

    Lines that do not follow the usual ACK layout still produce an error
    with code 0 and the whole line as message.
    """
    match = ACK_PATTERN.match(line)
    if match:
        return MpdError(int(match.group(1)), match.group(2), match.group(3))
    return MpdError(0, "", line)


def parse_greeting(line: str) -> str:
    """Return the protocol version announced by a greeting line."""
    if line.startswith(GREETING_PREFIX):
        return line[len(GREETING_PREFIX) :]
    return line


def split_pair(line: str) -> tuple[str, str]:
    """Split a "key: value" line at the first separator.

    A line without a separator is returned as a key with an empty value.
    """
    key, sep, value = line.partition(": ")
    if not sep:
        return line.rstrip(":"), ""
    return key, value


def escape_arg(arg: str) -> str:
    """Escape an argument for MPD command.

    MPD requires arguments with spaces or special chars to be quoted.
    Inside quotes, backslash and double-quote must be escaped.

    Args:
        arg: The argument to escape.

    Returns:
        Escaped argument, quoted if necessary.
    """
    if arg and not any(c in arg for c in ' "\'\t\n\\'):
        return arg

    escaped = arg.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def format_command(command: str, *args: object) -> str:
    """Format an MPD command with arguments.

    Strings are escaped; numbers are written as-is.

    Args:
        command: The MPD command name.
        *args: Command arguments.

    Returns:
        Formatted command string (without newline).
    """
    if not args:
        return command
    parts = [escape_arg(arg) if isinstance(arg, str) else str(arg) for arg in args]
    return f"{command} {' '.join(parts)}"
