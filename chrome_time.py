"""
Chrome/Edge timestamp helpers.

Bookmark files store times as microseconds elapsed since 1601-01-01 UTC,
written out as decimal strings.
"""

import time
from datetime import datetime, timedelta, timezone
from typing import Optional, Union

CHROME_EPOCH = datetime(1601, 1, 1, tzinfo=timezone.utc)
UNIX_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def to_chrome_timestamp(utc: Optional[datetime] = None) -> str:
    """Encode a UTC datetime (now by default) as a Chrome timestamp string.

    Precision is milliseconds: the millisecond difference from the epoch
    is taken first and then scaled to microseconds.
    """
    if utc is None:
        utc = datetime.now(timezone.utc)
    elif utc.tzinfo is None:
        utc = utc.replace(tzinfo=timezone.utc)

    milliseconds = (utc - CHROME_EPOCH) // timedelta(milliseconds=1)
    return str(milliseconds * 1000)


def chrome_timestamp_to_datetime(chrome_timestamp: Optional[Union[str, int]]) -> datetime:
    """Decode a Chrome timestamp string, falling back to the current time.

    Sub-millisecond precision is dropped.
    """
    now = datetime.now(timezone.utc)
    if chrome_timestamp is None:
        return now

    try:
        micro = int(str(chrome_timestamp).strip())
    except ValueError:
        return now

    # Truncate toward zero
    milliseconds = abs(micro) // 1000
    if micro < 0:
        milliseconds = -milliseconds

    try:
        return CHROME_EPOCH + timedelta(milliseconds=milliseconds)
    except OverflowError:
        return now


def chrome_timestamp_to_unix(chrome_timestamp: Optional[Union[str, int]]) -> int:
    """Decode a Chrome timestamp string into Unix seconds (for ADD_DATE)."""
    if not chrome_timestamp or not str(chrome_timestamp).strip():
        return int(time.time())

    dt = chrome_timestamp_to_datetime(chrome_timestamp)
    return (dt - UNIX_EPOCH) // timedelta(seconds=1)
