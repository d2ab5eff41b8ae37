"""Wire-level pieces of the MPD client: protocol helpers, parsing, transport."""

from mpdctrl.api.lines import LineBuffer
from mpdctrl.api.protocol import MpdConnectionError, MpdError, escape_arg, format_command
from mpdctrl.api.records import Record, parse_records, parse_status_block
from mpdctrl.api.transport import TcpTransport, Transport

__all__ = [
    "LineBuffer",
    "MpdConnectionError",
    "MpdError",
    "Record",
    "TcpTransport",
    "Transport",
    "escape_arg",
    "format_command",
    "parse_records",
    "parse_status_block",
]
