"""
Permission helpers shared by the services
"""

from typing import Iterable, List

def has_manage_guild(member) -> bool:
    permissions = getattr(member, 'guild_permissions', None)
    return bool(permissions and permissions.manage_guild)

def has_staff_permissions(member, staff_role_ids: Iterable[int]) -> bool:
    """Manage Guild, or membership in any configured staff role"""
    if has_manage_guild(member):
        return True

    staff = set(staff_role_ids)
    return any(role.id in staff for role in getattr(member, 'roles', []))

def missing_channel_permissions(channel, member, required: Iterable[str]) -> List[str]:
    """Return the names from `required` that `member` lacks in `channel`"""
    permissions = channel.permissions_for(member)
    return [name for name in required if not getattr(permissions, name, False)]

def format_permissions(names: Iterable[str]) -> str:
    return '\n'.join(f"• {name.replace('_', ' ').title()}" for name in names)
