"""Incremental line reassembly for the MPD stream."""


class LineBuffer:
    """Accumulates raw text fragments into complete lines.

    The transport may deliver a response in arbitrarily small pieces. The
    buffer keeps the unterminated tail until its newline arrives, so the
    completed lines are identical however the input was chunked.

    Example:
        buffer = LineBuffer()
        buffer.feed("OK MPD 0.2")
        buffer.feed("3.5\\nstat")
        assert buffer.lines == ["OK MPD 0.23.5"]
    """

    def __init__(self) -> None:
        self._fragment = ""
        self.lines: list[str] = []

    @property
    def fragment(self) -> str:
        """Return the held, not yet terminated text."""
        return self._fragment

    def feed(self, text: str) -> list[str]:
        """Append a chunk and collect the lines it completes.

        Args:
            text: Newly received text.

        Returns:
            The lines completed by this chunk, in order.
        """
        if not text:
            return []
        pieces = (self._fragment + text).split("\n")
        self._fragment = pieces.pop()
        completed = [piece.removesuffix("\r") for piece in pieces]
        self.lines.extend(completed)
        return completed

    def reset(self) -> None:
        """Drop any held fragment and unconsumed lines."""
        self._fragment = ""
        self.lines.clear()
