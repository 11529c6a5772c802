import datetime

import pytest

from gatecord import OP, Intents, Backoff, ReconnectExhausted, \
    snowflake_time, deconstruct
from gatecord.utils import gateway_url


@pytest.mark.parametrize('value, op', [
    (0, OP.DISPATCH),
    (10, OP.HELLO),
    (11, OP.HEARTBEAT_ACK),
    (42, OP.UNKNOWN),
    (-1, OP.UNKNOWN),
    ('1', OP.UNKNOWN),
    (True, OP.UNKNOWN),
    (None, OP.UNKNOWN),
])
def test_op_parse(value, op):
    assert OP.parse(value) is op


def test_intents():
    assert Intents.calculate(['guilds', 'GUILD_MESSAGES']) == 513
    assert Intents.reverse(513) == ['guilds', 'guild_messages']
    assert Intents.calculate(Intents.FLAGS) == (1 << 17) - 1

    with pytest.raises(KeyError):
        Intents.calculate(['everything'])


def test_gateway_url():
    assert gateway_url('wss://gateway.discord.gg') == \
        'wss://gateway.discord.gg/?v=10&encoding=json'
    assert gateway_url('wss://x/', 9) == 'wss://x/?v=9&encoding=json'


def test_snowflake():
    parts = deconstruct('175928847299117063')

    assert parts['timestamp'] == 41944705796
    assert parts['worker_id'] == 1
    assert parts['process_id'] == 0
    assert parts['increment'] == 7
    assert parts['unix_timestamp'] == 1462015105796
    assert parts['datetime'].tzinfo is datetime.timezone.utc
    assert snowflake_time(175928847299117063) == 1462015105796


def test_backoff_grows_and_caps():
    backoff = Backoff(base=1, max_delay=4)

    assert backoff.delay() == 0
    assert 0.5 <= backoff.delay() <= 1
    assert 1 <= backoff.delay() <= 2
    assert 2 <= backoff.delay() <= 4
    assert 2 <= backoff.delay() <= 4

    backoff.reset()
    assert backoff.delay() == 0


def test_backoff_max_retries():
    backoff = Backoff(max_retries=2)
    backoff.delay()
    backoff.delay()

    with pytest.raises(ReconnectExhausted):
        backoff.delay()
