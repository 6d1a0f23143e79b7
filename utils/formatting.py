"""
Text formatting helpers
"""

import re

DISCORD_MESSAGE_LIMIT = 2000

_HEX_COLOR = re.compile(r'^#([A-Fa-f0-9]{6}|[A-Fa-f0-9]{3})$')

def format_uptime(seconds: float) -> str:
    """Format a duration as '1d 2h 3m 4s', dropping zero parts"""
    seconds = int(seconds)
    minutes, secs = divmod(seconds, 60)
    hours, minutes = divmod(minutes, 60)
    days, hours = divmod(hours, 24)

    parts = []
    if days > 0:
        parts.append(f"{days}d")
    if hours > 0:
        parts.append(f"{hours}h")
    if minutes > 0:
        parts.append(f"{minutes}m")
    if secs > 0:
        parts.append(f"{secs}s")

    return ' '.join(parts) if parts else '0s'

def truncate(text: str, limit: int = DISCORD_MESSAGE_LIMIT) -> str:
    if len(text) > limit:
        return text[:limit - 3] + '...'
    return text

def is_valid_hex(color: str) -> bool:
    return bool(color and _HEX_COLOR.match(color))

def hex_to_int(color: str) -> int:
    """Convert '#rgb' or '#rrggbb' to an integer colour value"""
    digits = color.lstrip('#')
    if len(digits) == 3:
        digits = ''.join(c * 2 for c in digits)
    return int(digits, 16)

def discord_timestamp(dt, style: str = 'R') -> str:
    return f"<t:{int(dt.timestamp())}:{style}>"
