"""Tests for MPD protocol helpers."""

from mpdctrl.api.protocol import (
    MpdError,
    escape_arg,
    format_command,
    is_ack,
    parse_ack,
    parse_greeting,
    split_pair,
)


class TestEscapeArg:
    """Tests for escape_arg function."""

    def test_simple_arg(self) -> None:
        """Test simple argument without special chars."""
        assert escape_arg("simple") == "simple"

    def test_arg_with_space(self) -> None:
        """Test argument with space."""
        assert escape_arg("hello world") == '"hello world"'

    def test_arg_with_quote(self) -> None:
        """Test argument with double quote."""
        assert escape_arg('say "hi"') == '"say \\"hi\\""'

    def test_arg_with_backslash(self) -> None:
        """Test argument with backslash."""
        assert escape_arg("path\\file") == '"path\\\\file"'

    def test_arg_with_single_quote(self) -> None:
        """Test argument with single quote."""
        assert escape_arg("it's") == "\"it's\""

    def test_empty_arg(self) -> None:
        """Test that an empty argument is sent as an empty quoted string."""
        assert escape_arg("") == '""'


class TestFormatCommand:
    """Tests for format_command function."""

    def test_command_no_args(self) -> None:
        """Test command without arguments."""
        assert format_command("status") == "status"

    def test_command_with_arg(self) -> None:
        """Test command with simple argument."""
        assert format_command("listplaylistinfo", "rock") == "listplaylistinfo rock"

    def test_command_with_path_arg(self) -> None:
        """Test command with path containing spaces."""
        result = format_command("add", "/music/My Song.mp3")
        assert result == 'add "/music/My Song.mp3"'

    def test_numbers_are_not_quoted(self) -> None:
        """Test that numeric arguments are written as-is."""
        assert format_command("seekid", 11, 12.5) == "seekid 11 12.5"

    def test_multiple_args(self) -> None:
        """Test command with mixed arguments."""
        result = format_command("playlistmove", "Road Trip", 1, 3)
        assert result == 'playlistmove "Road Trip" 1 3'


class TestAck:
    """Tests for ACK line handling."""

    def test_is_ack(self) -> None:
        """Test ACK detection."""
        assert is_ack("ACK [50@0] {load} No such playlist")
        assert not is_ack("OK")
        assert not is_ack("file: ACK.mp3")

    def test_parse_ack(self) -> None:
        """Test parsing a well-formed ACK line."""
        error = parse_ack("ACK [50@0] {albumart} No file exists")
        assert isinstance(error, MpdError)
        assert error.code == 50
        assert error.command == "albumart"
        assert error.message == "No file exists"

    def test_parse_malformed_ack(self) -> None:
        """Test that an unusual ACK line still yields an error."""
        error = parse_ack("ACK something odd")
        assert error.code == 0
        assert error.message == "ACK something odd"


class TestLineHelpers:
    """Tests for greeting and pair splitting."""

    def test_parse_greeting(self) -> None:
        """Test extracting the protocol version."""
        assert parse_greeting("OK MPD 0.23.5") == "0.23.5"

    def test_split_pair(self) -> None:
        """Test that only the first separator splits."""
        assert split_pair("file: a: b.mp3") == ("file", "a: b.mp3")

    def test_split_pair_without_separator(self) -> None:
        """Test a line lacking the separator."""
        assert split_pair("directory") == ("directory", "")

    def test_split_pair_empty_value(self) -> None:
        """Test a key with an empty value."""
        assert split_pair("Title: ") == ("Title", "")
