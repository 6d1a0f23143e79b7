"""
UI Service for Hearth
"""

import logging
from typing import Any, Dict, Optional, List
from datetime import datetime, timezone
import discord

from core import ServiceRegistry, StateManager
from utils import format_uptime, discord_timestamp

logger = logging.getLogger('services.ui_service')

INVITE_PERMISSIONS = 2147485696

class UIService:
    """
    Embed construction for every user-facing message.

    Keeps colours, emoji and wording consistent across the ticket,
    suggestion, info and bot commands.
    """

    def __init__(self, service_registry: ServiceRegistry):
        self.service_registry = service_registry
        self.state_manager = service_registry.get(StateManager)

        self.colors = {
            'primary': 0x0099ff,
            'success': 0x00ff00,
            'error': 0xff0000
        }

        logger.info("UIService initialized")

    def _embed(self, title: Optional[str] = None, description: Optional[str] = None,
               color: str = 'primary', bot_user=None) -> discord.Embed:
        embed = discord.Embed(
            title=title,
            description=description,
            color=self.colors[color],
            timestamp=datetime.now(timezone.utc)
        )
        if bot_user is not None:
            embed.set_author(name=bot_user.name, icon_url=bot_user.display_avatar.url)
        return embed

    # Tickets

    def ticket_panel_embed(self) -> discord.Embed:
        embed = self._embed(
            title='🎫 Support Ticket',
            description='Need help? Click the button below to create a support ticket!\n\n'
                        'Our staff will assist you as soon as possible.'
        )
        embed.set_footer(text='You can only have 1 open ticket at a time!')
        return embed

    def ticket_intro_embed(self, requester) -> discord.Embed:
        return self._embed(
            title='🎫 Support Ticket',
            description=f"Hello {requester.mention}, welcome to your support ticket!\n\n"
                        "Please describe your issue and our staff will assist you shortly.",
            color='success'
        )

    def ticket_created_log_embed(self, requester, channel) -> discord.Embed:
        embed = self._embed(
            title='📋 New Ticket Created',
            description=f"Ticket created by {requester.name}",
            color='success'
        )
        embed.add_field(name='User', value=requester.mention, inline=True)
        embed.add_field(name='Channel', value=channel.mention, inline=True)
        return embed

    def ticket_closed_embed(self, actor, reason: str) -> discord.Embed:
        embed = self._embed(
            title='🔒 Ticket Closed',
            description=f"This ticket has been closed by {actor.name}",
            color='error'
        )
        embed.add_field(name='Reason', value=reason, inline=False)
        return embed

    def ticket_closed_log_embed(self, channel, actor, reason: str) -> discord.Embed:
        embed = self._embed(
            title='📋 Ticket Closed',
            description=f"Ticket {channel.name} was closed",
            color='error'
        )
        embed.add_field(name='Channel', value=channel.name, inline=True)
        embed.add_field(name='Closed by', value=actor.name, inline=True)
        embed.add_field(name='Reason', value=reason, inline=False)
        return embed

    # Suggestions

    def suggestion_embed(self, suggestion_id: int, text: str, author, bot_user=None) -> discord.Embed:
        embed = self._embed(
            title=f"📬 New Suggestion (ID: {suggestion_id})",
            description=text,
            bot_user=bot_user
        )
        embed.add_field(name='Author', value=author.mention, inline=True)
        embed.add_field(name='Submitted', value=discord_timestamp(datetime.now(timezone.utc)), inline=True)
        return embed

    def reviewed_suggestion_embed(self, original: discord.Embed, approved: bool, reviewer,
                                  reason: str, bot_user=None) -> discord.Embed:
        status, verb, color = ('✅', 'Approved', 'success') if approved else ('❌', 'Rejected', 'error')

        embed = self._embed(
            title=f"{status} {original.title.replace('📬 New', verb)}",
            description=original.description,
            color=color,
            bot_user=bot_user
        )
        for embed_field in original.fields:
            embed.add_field(name=embed_field.name, value=embed_field.value, inline=embed_field.inline)
        embed.add_field(name='Status', value=f"{status} {verb}", inline=True)
        embed.add_field(name=f"{verb} by", value=reviewer.mention, inline=True)
        embed.add_field(name='Reason', value=reason, inline=False)
        return embed

    # Bot commands

    def invite_embed(self, bot_user) -> discord.Embed:
        invite_url = discord.utils.oauth_url(
            bot_user.id,
            permissions=discord.Permissions(INVITE_PERMISSIONS),
            scopes=('bot', 'applications.commands')
        )
        return self._embed(
            title='Bot Invite Link',
            description=f"[Click here to invite me to your server!]({invite_url})",
            bot_user=bot_user
        )

    def stats_embed(self, bot_user, guilds: List[Any], activity: Optional[Dict[str, int]] = None,
                    open_tickets: Optional[int] = None) -> discord.Embed:
        embed = self._embed(title='Bot Statistics', bot_user=bot_user)
        embed.add_field(name='Servers', value=str(len(guilds)), inline=True)
        embed.add_field(name='Users', value=str(sum(g.member_count or 0 for g in guilds)), inline=True)
        embed.add_field(name='Uptime', value=format_uptime(self.state_manager.uptime_seconds()), inline=True)

        if open_tickets is not None:
            embed.add_field(name='Open Tickets', value=str(open_tickets), inline=True)
        if activity:
            embed.add_field(
                name='Since Startup',
                value=f"🎫 {activity['tickets_opened']} opened / {activity['tickets_closed']} closed\n"
                      f"📬 {activity['suggestions_submitted']} suggestions, {activity['votes_recorded']} votes\n"
                      f"⚠️ {activity['command_errors']} command errors",
                inline=False
            )
        return embed

    def uptime_embed(self, bot_user) -> discord.Embed:
        uptime = format_uptime(self.state_manager.uptime_seconds())
        return self._embed(
            title='Bot Uptime',
            description=f"I've been online for: **{uptime}**",
            bot_user=bot_user
        )

    # Info commands

    def user_info_embed(self, user, member=None, bot_user=None) -> discord.Embed:
        embed = self._embed(title=f"User Information: {user.name}", bot_user=bot_user)
        embed.set_thumbnail(url=user.display_avatar.with_size(256).url)
        embed.add_field(name='Username', value=user.name, inline=True)
        embed.add_field(name='Discriminator', value=user.discriminator or 'None', inline=True)
        embed.add_field(name='ID', value=str(user.id), inline=True)
        embed.add_field(name='Bot', value='Yes' if user.bot else 'No', inline=True)
        embed.add_field(name='Created', value=discord_timestamp(user.created_at), inline=True)

        if member is not None:
            if member.joined_at:
                embed.add_field(name='Joined Server', value=discord_timestamp(member.joined_at), inline=True)
            # @everyone is always present
            embed.add_field(name='Roles', value=str(max(len(member.roles) - 1, 0)), inline=True)
        return embed

    def channel_info_embed(self, channel, bot_user=None) -> discord.Embed:
        embed = self._embed(title=f"Channel Information: {channel.name}", bot_user=bot_user)
        embed.add_field(name='Name', value=channel.name, inline=True)
        embed.add_field(name='Type', value=str(channel.type), inline=True)
        embed.add_field(name='ID', value=str(channel.id), inline=True)
        embed.add_field(name='Created', value=discord_timestamp(channel.created_at), inline=True)

        topic = getattr(channel, 'topic', None)
        if topic:
            embed.add_field(name='Topic', value=topic, inline=False)
        return embed

    def guild_info_embed(self, guild, bot_user=None) -> discord.Embed:
        embed = self._embed(title=f"Guild Information: {guild.name}", bot_user=bot_user)
        if guild.icon:
            embed.set_thumbnail(url=guild.icon.with_size(256).url)
        embed.add_field(name='Name', value=guild.name, inline=True)
        embed.add_field(name='ID', value=str(guild.id), inline=True)
        embed.add_field(name='Owner', value=f"<@{guild.owner_id}>", inline=True)
        embed.add_field(name='Members', value=str(guild.member_count), inline=True)
        embed.add_field(name='Channels', value=str(len(guild.channels)), inline=True)
        embed.add_field(name='Roles', value=str(len(guild.roles)), inline=True)
        embed.add_field(name='Created', value=discord_timestamp(guild.created_at), inline=True)
        embed.add_field(name='Verification Level', value=str(guild.verification_level), inline=True)

        if guild.description:
            embed.add_field(name='Description', value=guild.description, inline=False)
        return embed

    def avatar_embed(self, user, bot_user=None) -> discord.Embed:
        embed = self._embed(
            title=f"Avatar: {user.name}",
            description=f"[Download Avatar]({user.display_avatar.with_size(1024).url})",
            bot_user=bot_user
        )
        embed.set_image(url=user.display_avatar.with_size(512).url)
        return embed

    def emoji_embed(self, emoji, bot_user=None) -> discord.Embed:
        embed = self._embed(
            title=f"Emoji Information: {emoji.name}",
            description=f"Usage: `{emoji}`",
            bot_user=bot_user
        )
        embed.set_thumbnail(url=emoji.url)
        embed.add_field(name='Name', value=emoji.name, inline=True)
        embed.add_field(name='ID', value=str(emoji.id), inline=True)
        embed.add_field(name='Animated', value='Yes' if emoji.animated else 'No', inline=True)
        embed.add_field(name='Created', value=discord_timestamp(emoji.created_at), inline=True)
        embed.add_field(name='URL', value=f"[Link]({emoji.url})", inline=True)
        return embed

    def autorole_embed(self, role, enabled: bool, bot_user=None) -> discord.Embed:
        embed = self._embed(title='🤖 Autorole Configuration', bot_user=bot_user)
        embed.add_field(name='Status', value='✅ Enabled' if enabled else '❌ Disabled', inline=True)
        embed.add_field(name='Role', value=role.mention, inline=True)
        embed.add_field(name='Role ID', value=str(role.id), inline=True)
        return embed

