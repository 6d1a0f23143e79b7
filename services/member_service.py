"""
Member Service for Hearth
"""

import logging
from datetime import datetime, timezone
import discord

from core import ServiceRegistry, StateManager, EventBus
from utils import hex_to_int, is_valid_hex, missing_channel_permissions

logger = logging.getLogger('services.member_service')

WELCOME_PERMISSIONS = ('view_channel', 'send_messages', 'embed_links')

class MemberService:
    """
    New-member handling: autorole assignment and the welcome embed.

    A configured role or channel that no longer exists switches its
    feature off instead of failing on every join.
    """

    def __init__(self, service_registry: ServiceRegistry):
        self.service_registry = service_registry
        self.state_manager = service_registry.get(StateManager)
        self.event_bus = service_registry.get(EventBus)

        logger.info("MemberService initialized")

    async def on_member_join(self, member: discord.Member):
        await self.assign_autorole(member)
        await self.send_welcome(member)

    async def assign_autorole(self, member: discord.Member) -> bool:
        settings = self.state_manager.settings.autorole
        if not settings.enabled or not settings.role_id:
            return False

        guild = member.guild
        role = guild.get_role(settings.role_id)
        if role is None:
            logger.warning(f"Autorole {settings.role_id} not found in {guild.name}, disabling autorole")
            self.state_manager.update_feature('autorole', {'enabled': False, 'role_id': None})
            return False

        me = guild.me
        if not me.guild_permissions.manage_roles:
            logger.warning(f"Missing Manage Roles permission in {guild.name}, cannot assign autorole")
            return False
        if me.top_role.position <= role.position:
            logger.warning(f"Role {role.name} is too high in {guild.name}, cannot assign autorole")
            return False

        try:
            await member.add_roles(role, reason="Autorole")
        except Exception as e:
            logger.error(f"Failed to assign autorole to {member}: {e}")
            return False

        logger.info(f"Autorole {role.name} assigned to {member} in {guild.name}")
        await self.event_bus.emit_async('autorole_assigned', member_id=member.id, role_id=role.id)
        return True

    async def send_welcome(self, member: discord.Member) -> bool:
        settings = self.state_manager.settings.welcome
        if not settings.enabled or not settings.channel_id:
            return False

        guild = member.guild
        channel = guild.get_channel(settings.channel_id)
        if channel is None:
            logger.warning(f"Welcome channel {settings.channel_id} not found in {guild.name}, disabling welcome")
            self.state_manager.update_feature('welcome', {'enabled': False, 'channel_id': None})
            return False

        missing = missing_channel_permissions(channel, guild.me, WELCOME_PERMISSIONS)
        if missing:
            logger.warning(f"Missing permissions in welcome channel {channel.name}: {', '.join(missing)}")
            return False

        try:
            await channel.send(embed=self.build_welcome_embed(member))
        except Exception as e:
            logger.error(f"Failed to send welcome message for {member}: {e}")
            return False

        logger.info(f"Welcome message sent for {member} in {guild.name}")
        return True

    def render_description(self, member: discord.Member) -> str:
        template = self.state_manager.settings.welcome.embed.description
        return (template
                .replace('{user}', member.mention)
                .replace('{username}', member.name)
                .replace('{server}', member.guild.name)
                .replace('{membercount}', str(member.guild.member_count)))

    def build_welcome_embed(self, member: discord.Member) -> discord.Embed:
        embed_settings = self.state_manager.settings.welcome.embed
        color = embed_settings.color if self.is_valid_hex(embed_settings.color) else '#0099ff'

        embed = discord.Embed(
            title=f"Welcome to {member.guild.name}!",
            description=self.render_description(member),
            color=hex_to_int(color),
            timestamp=datetime.now(timezone.utc)
        )

        if embed_settings.thumbnail:
            embed.set_thumbnail(url=member.display_avatar.with_size(256).url)
        if embed_settings.footer:
            embed.set_footer(text=embed_settings.footer)
        if embed_settings.image:
            embed.set_image(url=embed_settings.image)
        return embed

    @staticmethod
    def is_valid_hex(color: str) -> bool:
        return is_valid_hex(color)
