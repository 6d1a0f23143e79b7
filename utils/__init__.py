"""
Utility modules for Hearth
"""

from .formatting import (
    format_uptime,
    truncate,
    is_valid_hex,
    hex_to_int,
    discord_timestamp,
    DISCORD_MESSAGE_LIMIT
)
from .permissions import (
    has_manage_guild,
    has_staff_permissions,
    missing_channel_permissions,
    format_permissions
)
from .webhook_logging import WebhookLogHandler

__all__ = [
    'format_uptime',
    'truncate',
    'is_valid_hex',
    'hex_to_int',
    'discord_timestamp',
    'DISCORD_MESSAGE_LIMIT',
    'has_manage_guild',
    'has_staff_permissions',
    'missing_channel_permissions',
    'format_permissions',
    'WebhookLogHandler'
]
