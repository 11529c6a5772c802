#!/usr/bin/env python3
import logging
import asyncio
import os
import sys

import gatecord

# uvloop is only installed where it builds, see pyproject.toml
if sys.platform != 'win32':
    import uvloop
else:
    uvloop = None

log = logging.getLogger('gatecord')

loggers_to_info = ['websockets.client', 'websockets.protocol']


def setup_logging(flags):
    """Configure logging from the ``verbosity`` and ``logging`` flags."""
    level = gatecord.resolve_verbosity(flags['verbosity'])
    if level is None:
        logging.disable(logging.CRITICAL)
        return

    logging.basicConfig(level=level, \
        format='[%(levelname)7s] [%(name)s] %(message)s')

    logfile = flags['logging']['file']
    if logfile:
        handler = logging.FileHandler(logfile)
        handler.setLevel(level)

        formatter = logging.Formatter('%(asctime)s - [%(levelname)s] [%(name)s] %(message)s')
        handler.setFormatter(formatter)

        log.addHandler(handler)

    shush_loggers()


def shush_loggers():
    """Set some specific loggers to `INFO` level."""
    for logger in loggers_to_info:
        logging.getLogger(logger).setLevel(logging.INFO)


def on_event(event):
    log.info('[event] %s (seq %r)', event.get('t'), event.get('s'))


def main():
    try:
        config_path = sys.argv[1]
    except IndexError:
        config_path = 'gatecord_config.json'

    try:
        flags = gatecord.load_config(config_path)
    except gatecord.ConfigError as err:
        print(f'Error loading configuration: {err}', file=sys.stderr)
        return 1

    setup_logging(flags)

    token = flags['token'] or os.environ.get('GATECORD_TOKEN')
    if not token:
        log.critical('No token in the configuration or in GATECORD_TOKEN')
        return 1

    loop = uvloop.new_event_loop() if uvloop else asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    client = gatecord.GatewayClient(token, on_event, flags=flags)

    try:
        loop.run_until_complete(client.start())
    except KeyboardInterrupt:
        log.info('Exiting from a CTRL-C...')
    except gatecord.GatewayURLError:
        log.critical('Failed to get the gateway URL. Exiting.', exc_info=True)
        return 1
    except gatecord.ReconnectExhausted as err:
        log.critical('%s. Exiting.', err)
        return 1
    finally:
        loop.run_until_complete(client.close())
        loop.close()

    return 0

if __name__ == "__main__":
    sys.exit(main())
