import sys

API_VERSION = 10
API_BASE = 'https://discord.com/api'

# GUILDS | GUILD_MESSAGES
DEFAULT_INTENTS = 513
MAX_INTENTS = (1 << 17) - 1

DEFAULT_OS = sys.platform
DEFAULT_BROWSER = 'gatecord'
DEFAULT_DEVICE = 'gatecord'

# Activity keys accepted in IDENTIFY, by credential type
ACTIVITY_KEYS = {
    'Bearer': frozenset([
        'name', 'type', 'url', 'created_at', 'timestamps',
        'application_id', 'details', 'state', 'emoji', 'party',
        'assets', 'secrets', 'instance', 'flags', 'buttons',
    ]),
    'Bot': frozenset(['name', 'state', 'type', 'url']),
}
