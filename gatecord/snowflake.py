import datetime

# Discord epoch, in milliseconds
EPOCH = 1420070400000


def snowflake_time(snowflake) -> int:
    """Get a unix timestamp, in milliseconds, from a snowflake."""
    return (int(snowflake) >> 22) + EPOCH


def deconstruct(snowflake) -> dict:
    """Split a snowflake into its fields.

    Returns
    -------
    dict
        With the ``timestamp``(ms since the Discord epoch), ``worker_id``,
        ``process_id`` and ``increment`` fields, plus ``unix_timestamp``(ms)
        and a UTC ``datetime``.
    """
    snowflake = int(snowflake)
    unix_ts = snowflake_time(snowflake)

    return {
        'timestamp': snowflake >> 22,
        'worker_id': (snowflake >> 17) & 0x1F,
        'process_id': (snowflake >> 12) & 0x1F,
        'increment': snowflake & 0xFFF,
        'unix_timestamp': unix_ts,
        'datetime': datetime.datetime.fromtimestamp(unix_ts / 1000,
                                                    tz=datetime.timezone.utc),
    }
