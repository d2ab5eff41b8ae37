"""Parsing of "key: value" response blocks into typed records.

MPD streams lists (songs, playlists, tag values, directory entries) as a
flat run of key/value lines with no delimiter between entries. A new entry
starts whenever the key that opened the first entry appears again.
"""

import re
from collections.abc import Collection
from datetime import UTC, datetime
from typing import Any

from mpdctrl.api.protocol import split_pair

Record = dict[str, Any]

_NUMBER_PATTERN = re.compile(r"-?(\d+\.?\d*|\.\d+)")
_DATE_PATTERN = re.compile(r"(\d{4})-(\d{2})-(\d{2})T(\d{2}):(\d{2}):(\d{2})Z")
_KEY_SEPARATORS = re.compile(r"[^a-z0-9]+")

# Values that name something on the server; they are sent back verbatim.
IDENTIFIER_KEYS = frozenset({"file", "directory", "playlist"})


def normalize_key(key: str) -> str:
    """Lowercase a key and collapse non-alphanumeric runs to "_".

    "Last-Modified" becomes "last_modified", "MUSICBRAINZ_TRACKID" becomes
    "musicbrainz_trackid".
    """
    return _KEY_SEPARATORS.sub("_", key.lower())


def parse_number(value: str) -> int | float | None:
    """Return the number a numeric-looking value represents, else None."""
    if not value or not _NUMBER_PATTERN.fullmatch(value):
        return None
    if "." in value:
        return float(value)
    return int(value)


def parse_date(value: str) -> datetime | None:
    """Parse a "YYYY-MM-DDThh:mm:ssZ" timestamp into an aware UTC datetime."""
    match = _DATE_PATTERN.fullmatch(value)
    if not match:
        return None
    try:
        return datetime(*(int(part) for part in match.groups()), tzinfo=UTC)
    except ValueError:
        return None


def coerce_value(value: str) -> Any:
    """Turn a raw value into a number, a datetime, or leave it as text."""
    number = parse_number(value)
    if number is not None:
        return number
    date = parse_date(value)
    if date is not None:
        return date
    return value


def parse_records(lines: list[str], raw_keys: Collection[str] = IDENTIFIER_KEYS) -> list[Record]:
    """Split a flat key/value block into records.

    The first key seen is the start key; every later occurrence of it begins
    a new record. This assumes each record carries its start key exactly once.

    Args:
        lines: Response lines without the terminating "OK".
        raw_keys: Normalized keys whose values are kept as text.

    Returns:
        Records in response order, with normalized keys and coerced values.
    """
    records: list[Record] = []
    current: Record = {}
    start_key: str | None = None

    for line in lines:
        raw_key, raw_value = split_pair(line)
        key = normalize_key(raw_key)

        if key == start_key:
            records.append(current)
            current = {}
        current[key] = raw_value if key in raw_keys else coerce_value(raw_value)

        if start_key is None:
            start_key = key

    if current:
        records.append(current)
    return records


def parse_status_block(lines: list[str]) -> dict[str, Any]:
    """Parse a status response as one flat mapping.

    Keys are kept as MPD sends them; only numeric coercion is applied.
    """
    status: dict[str, Any] = {}
    for line in lines:
        key, value = split_pair(line)
        number = parse_number(value)
        status[key] = value if number is None else number
    return status
