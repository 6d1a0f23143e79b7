"""
Command Service for Hearth
"""

import logging
from typing import Iterable, List, Literal, Optional
from urllib.parse import urlparse
import discord
from discord import app_commands
from discord.ext import commands

from core import ServiceRegistry, StateManager, EventBus, HearthConfiguration, TicketOutcome
from hearth_errors import MissingManageGuild, MissingStaffPermissions, NotATicketChannel
from .ui_service import UIService
from .error_service import ErrorService
from .ticket_service import TicketService
from .suggestion_service import SuggestionService
from .member_service import MemberService
from .chatbot_service import ChatbotService
from .stock_service import StockService
from .activity_service import ActivityService
from ui.views import TicketPanelView
from utils import has_manage_guild, missing_channel_permissions, format_permissions, is_valid_hex

logger = logging.getLogger('services.command_service')

EMBED_PERMISSIONS = ('view_channel', 'send_messages', 'embed_links')
SUGGESTION_PERMISSIONS = ('view_channel', 'send_messages', 'embed_links', 'add_reactions', 'read_message_history')
CHATBOT_PERMISSIONS = ('view_channel', 'send_messages', 'read_message_history')

Toggle = Literal['ON', 'OFF']

class CommandService:
    """
    Discord slash command handler service.

    Every command is a thin callback around a handler method on this
    service, so handlers can be exercised without a connected client.
    Permission failures are raised as Hearth errors and answered by the
    ErrorService through the command tree's error hook.
    """

    def __init__(self, service_registry: ServiceRegistry):
        self.service_registry = service_registry
        self.state_manager = service_registry.get(StateManager)
        self.event_bus = service_registry.get(EventBus)
        self.config = service_registry.get(HearthConfiguration)

        # Get other services
        self.ui_service = service_registry.get(UIService)
        self.error_service = service_registry.get(ErrorService)
        self.ticket_service = service_registry.get(TicketService)
        self.suggestion_service = service_registry.get(SuggestionService)
        self.member_service = service_registry.get(MemberService)
        self.chatbot_service = service_registry.get(ChatbotService)
        self.stock_service = service_registry.get(StockService)
        self.activity_service = service_registry.get(ActivityService)

        logger.info("CommandService initialized")

    async def register_commands(self, bot: commands.Bot) -> None:
        """Register all slash commands and event listeners with the Discord bot"""
        try:
            logger.info("Registering slash commands...")

            self._register_stock_command(bot)
            self._register_bot_commands(bot)
            self._register_info_commands(bot)
            self._register_suggestion_commands(bot)
            self._register_welcome_commands(bot)
            self._register_autorole_commands(bot)
            self._register_ticket_commands(bot)
            self._register_chatbot_commands(bot)

            bot.add_listener(self.member_service.on_member_join, 'on_member_join')
            bot.add_listener(self.chatbot_service.on_message, 'on_message')
            bot.add_listener(self.ticket_service.on_guild_channel_delete, 'on_guild_channel_delete')

            logger.info("Slash commands /stock, /bot, /info, /autorole, /welcome, /suggestion, "
                        "/ticket, and /chatbot registered successfully")

        except Exception as e:
            logger.error(f"Failed to register commands: {e}")
            raise

    # Shared checks

    def _require_manage_guild(self, interaction: discord.Interaction) -> None:
        if not has_manage_guild(interaction.user):
            raise MissingManageGuild("You need `Manage Guild` permission to use this command!")

    def _missing_bot_permissions(self, interaction: discord.Interaction, channel,
                                 required: Iterable[str]) -> List[str]:
        return missing_channel_permissions(channel, interaction.guild.me, required)

    async def _reply(self, interaction: discord.Interaction, content: str, ephemeral: bool = True) -> None:
        await interaction.response.send_message(content, ephemeral=ephemeral)

    # /stock

    def _register_stock_command(self, bot: commands.Bot) -> None:
        @bot.tree.command(name='stock', description="Check the current stock information")
        @app_commands.guild_only()
        @app_commands.checks.cooldown(rate=1, per=self.config.stock_cooldown_seconds)
        async def stock(interaction: discord.Interaction):
            await self.stock(interaction)

    async def stock(self, interaction: discord.Interaction) -> None:
        if interaction.guild is None:
            await self._reply(interaction, "Cannot use command in DM")
            return

        await interaction.response.defer()
        logger.info(f"Stock command used by {interaction.user} in {interaction.guild.name}")

        try:
            data = await self.stock_service.fetch_stock()
        except Exception as e:
            logger.error(f"Error fetching stock data for {interaction.user}: {e}")
            await interaction.edit_original_response(content="**There was an error! Please try again later**")
            return

        embed = self.stock_service.build_stock_embed(data, bot_user=interaction.client.user)
        await interaction.edit_original_response(embed=embed)

    # /bot

    def _register_bot_commands(self, bot: commands.Bot) -> None:
        group = app_commands.Group(name='bot', description="Bot related commands")

        @group.command(name='invite', description="Get bot's invite link")
        async def invite(interaction: discord.Interaction):
            await self.bot_invite(interaction)

        @group.command(name='stats', description="Show bot statistics")
        async def stats(interaction: discord.Interaction):
            await self.bot_stats(interaction)

        @group.command(name='uptime', description="Show bot uptime")
        async def uptime(interaction: discord.Interaction):
            await self.bot_uptime(interaction)

        bot.tree.add_command(group)

    async def bot_invite(self, interaction: discord.Interaction) -> None:
        await interaction.response.send_message(embed=self.ui_service.invite_embed(interaction.client.user))
        logger.info(f"Invite command used by {interaction.user}")

    async def bot_stats(self, interaction: discord.Interaction) -> None:
        client = interaction.client
        embed = self.ui_service.stats_embed(
            client.user,
            list(client.guilds),
            activity=self.activity_service.get_totals(),
            open_tickets=self.ticket_service.registry.count()
        )
        await interaction.response.send_message(embed=embed)
        logger.info(f"Stats command used by {interaction.user}")

    async def bot_uptime(self, interaction: discord.Interaction) -> None:
        await interaction.response.send_message(embed=self.ui_service.uptime_embed(interaction.client.user))
        logger.info(f"Uptime command used by {interaction.user}")

    # /info

    def _register_info_commands(self, bot: commands.Bot) -> None:
        group = app_commands.Group(name='info', description="Information commands")

        @group.command(name='user', description="Get information about a user")
        @app_commands.describe(name="User to look up")
        async def user(interaction: discord.Interaction, name: Optional[discord.User] = None):
            await self.info_user(interaction, name)

        @group.command(name='channel', description="Get information about a channel")
        @app_commands.describe(name="Channel to look up")
        async def channel(interaction: discord.Interaction, name: Optional[discord.abc.GuildChannel] = None):
            await self.info_channel(interaction, name)

        @group.command(name='guild', description="Get information about this server")
        async def guild(interaction: discord.Interaction):
            await self.info_guild(interaction)

        @group.command(name='avatar', description="Get a user's avatar")
        @app_commands.describe(name="User whose avatar to show")
        async def avatar(interaction: discord.Interaction, name: Optional[discord.User] = None):
            await self.info_avatar(interaction, name)

        @group.command(name='emoji', description="Get information about an emoji")
        @app_commands.describe(name="Emoji name")
        async def emoji(interaction: discord.Interaction, name: str):
            await self.info_emoji(interaction, name)

        bot.tree.add_command(group)

    async def info_user(self, interaction: discord.Interaction, user=None) -> None:
        user = user or interaction.user
        member = interaction.guild.get_member(user.id) if interaction.guild else None

        embed = self.ui_service.user_info_embed(user, member, bot_user=interaction.client.user)
        await interaction.response.send_message(embed=embed)
        logger.info(f"User info command used by {interaction.user} for {user.name}")

    async def info_channel(self, interaction: discord.Interaction, channel=None) -> None:
        if channel is None and interaction.guild is None:
            await self._reply(interaction, "This command can only be used in a server!")
            return

        channel = channel or interaction.channel
        embed = self.ui_service.channel_info_embed(channel, bot_user=interaction.client.user)
        await interaction.response.send_message(embed=embed)
        logger.info(f"Channel info command used by {interaction.user} for {channel.name}")

    async def info_guild(self, interaction: discord.Interaction) -> None:
        guild = interaction.guild
        if guild is None:
            await self._reply(interaction, "This command can only be used in a server!")
            return

        await interaction.response.send_message(embed=self.ui_service.guild_info_embed(guild, bot_user=interaction.client.user))
        logger.info(f"Guild info command used by {interaction.user} in {guild.name}")

    async def info_avatar(self, interaction: discord.Interaction, user=None) -> None:
        user = user or interaction.user
        await interaction.response.send_message(embed=self.ui_service.avatar_embed(user, bot_user=interaction.client.user))
        logger.info(f"Avatar command used by {interaction.user} for {user.name}")

    async def info_emoji(self, interaction: discord.Interaction, name: str) -> None:
        emoji = discord.utils.get(interaction.guild.emojis, name=name) if interaction.guild else None
        if emoji is None:
            await self._reply(interaction, f'Emoji "{name}" not found in this server!')
            return

        await interaction.response.send_message(embed=self.ui_service.emoji_embed(emoji, bot_user=interaction.client.user))
        logger.info(f"Emoji info command used by {interaction.user} for {emoji.name}")

    # /suggestion

    def _register_suggestion_commands(self, bot: commands.Bot) -> None:
        group = app_commands.Group(
            name='suggestion',
            description="Configure suggestion system or submit suggestions",
            guild_only=True
        )

        @group.command(name='submit', description="Submit a suggestion")
        @app_commands.describe(text="Your suggestion")
        async def submit(interaction: discord.Interaction, text: str):
            await self.suggestion_service.submit(interaction, text)

        @group.command(name='status', description="Enable or disable suggestion system")
        async def status(interaction: discord.Interaction, enabled: Toggle):
            await self.suggestion_status(interaction, enabled)

        @group.command(name='channel', description="Set suggestion channel")
        @app_commands.describe(channel_name="Channel for suggestions (leave empty to disable)")
        async def channel(interaction: discord.Interaction, channel_name: Optional[discord.TextChannel] = None):
            await self.suggestion_channel(interaction, channel_name)

        @group.command(name='appch', description="Set approved suggestions channel")
        @app_commands.describe(channel_name="Channel for approved suggestions")
        async def appch(interaction: discord.Interaction, channel_name: Optional[discord.TextChannel] = None):
            await self.suggestion_review_channel(interaction, channel_name, approved=True)

        @group.command(name='rejch', description="Set rejected suggestions channel")
        @app_commands.describe(channel_name="Channel for rejected suggestions")
        async def rejch(interaction: discord.Interaction, channel_name: Optional[discord.TextChannel] = None):
            await self.suggestion_review_channel(interaction, channel_name, approved=False)

        @group.command(name='approve', description="Approve a suggestion")
        @app_commands.describe(channel_name="Channel where the suggestion is",
                               message_id="Message ID of the suggestion",
                               reason="Reason for approval")
        async def approve(interaction: discord.Interaction, channel_name: discord.TextChannel,
                          message_id: str, reason: Optional[str] = None):
            await self.suggestion_service.review(interaction, channel_name, message_id, True, reason)

        @group.command(name='reject', description="Reject a suggestion")
        @app_commands.describe(channel_name="Channel where the suggestion is",
                               message_id="Message ID of the suggestion",
                               reason="Reason for rejection")
        async def reject(interaction: discord.Interaction, channel_name: discord.TextChannel,
                         message_id: str, reason: Optional[str] = None):
            await self.suggestion_service.review(interaction, channel_name, message_id, False, reason)

        @group.command(name='staffadd', description="Add a suggestion staff role")
        async def staffadd(interaction: discord.Interaction, role: discord.Role):
            await self.add_staff_role(interaction, 'suggestion', role)

        @group.command(name='staffremove', description="Remove a suggestion staff role")
        async def staffremove(interaction: discord.Interaction, role: discord.Role):
            await self.remove_staff_role(interaction, 'suggestion', role)

        bot.tree.add_command(group)

    async def suggestion_status(self, interaction: discord.Interaction, enabled: str) -> None:
        self._require_manage_guild(interaction)

        settings = self.state_manager.update_feature('suggestion', {'enabled': enabled == 'ON'})
        state = 'enabled' if settings.enabled else 'disabled'
        await self._reply(interaction, f"Suggestion system is now {state}!")
        logger.info(f"Suggestion system {state} by {interaction.user}")

    async def suggestion_channel(self, interaction: discord.Interaction, channel=None) -> None:
        self._require_manage_guild(interaction)

        if channel is None:
            self.state_manager.update_feature('suggestion', {'channel_id': None})
            await self._reply(interaction, "Suggestion channel has been disabled!")
            return

        if self._missing_bot_permissions(interaction, channel, SUGGESTION_PERMISSIONS):
            await self._reply(
                interaction,
                f"I need the following permissions in {channel.mention}:\n{format_permissions(SUGGESTION_PERMISSIONS)}"
            )
            return

        self.state_manager.update_feature('suggestion', {'channel_id': channel.id})
        await self._reply(interaction, f"Suggestions will now be sent to {channel.mention}!")
        logger.info(f"Suggestion channel set to {channel.name} by {interaction.user}")

    async def suggestion_review_channel(self, interaction: discord.Interaction, channel, approved: bool) -> None:
        self._require_manage_guild(interaction)

        kind = 'Approved' if approved else 'Rejected'
        field = 'approved_channel_id' if approved else 'rejected_channel_id'

        if channel is None:
            self.state_manager.update_feature('suggestion', {field: None})
            await self._reply(interaction, f"{kind} suggestions channel has been disabled!")
            return

        if self._missing_bot_permissions(interaction, channel, EMBED_PERMISSIONS):
            await self._reply(interaction, f"I need permissions to view, send messages, and embed links in {channel.mention}!")
            return

        self.state_manager.update_feature('suggestion', {field: channel.id})
        await self._reply(interaction, f"{kind} suggestions will now be sent to {channel.mention}!")

    async def add_staff_role(self, interaction: discord.Interaction, feature: str, role) -> None:
        self._require_manage_guild(interaction)

        settings = self.state_manager.get_feature(feature)
        if role.id in settings.staff_role_ids:
            await self._reply(interaction, f"`{role.name}` is already a staff role!")
            return

        self.state_manager.update_feature(feature, {'staff_role_ids': settings.staff_role_ids | {role.id}})
        await self._reply(interaction, f"`{role.name}` is now a staff role!")
        logger.info(f"{feature.capitalize()} staff role added by {interaction.user}: {role.name}")

    async def remove_staff_role(self, interaction: discord.Interaction, feature: str, role) -> None:
        self._require_manage_guild(interaction)

        settings = self.state_manager.get_feature(feature)
        if role.id not in settings.staff_role_ids:
            await self._reply(interaction, f"`{role.name}` is not a staff role!")
            return

        self.state_manager.update_feature(feature, {'staff_role_ids': settings.staff_role_ids - {role.id}})
        await self._reply(interaction, f"`{role.name}` is no longer a staff role!")
        logger.info(f"{feature.capitalize()} staff role removed by {interaction.user}: {role.name}")

    # /welcome

    def _register_welcome_commands(self, bot: commands.Bot) -> None:
        group = app_commands.Group(name='welcome', description="Configure welcome messages", guild_only=True)

        @group.command(name='status', description="Enable or disable welcome messages")
        async def status(interaction: discord.Interaction, status: Toggle):
            await self.welcome_status(interaction, status)

        @group.command(name='preview', description="Send a preview of the welcome message")
        async def preview(interaction: discord.Interaction):
            await self.welcome_preview(interaction)

        @group.command(name='channel', description="Set welcome channel")
        async def channel(interaction: discord.Interaction, channel: discord.TextChannel):
            await self.welcome_channel(interaction, channel)

        @group.command(name='desc', description="Set welcome message description")
        @app_commands.describe(content="Supports {user}, {username}, {server} and {membercount}")
        async def desc(interaction: discord.Interaction, content: str):
            await self.welcome_description(interaction, content)

        @group.command(name='thumbnail', description="Toggle the user's avatar as thumbnail")
        async def thumbnail(interaction: discord.Interaction, status: Toggle):
            await self.welcome_thumbnail(interaction, status)

        @group.command(name='color', description="Set welcome embed color")
        @app_commands.rename(hex_code='hex-code')
        async def color(interaction: discord.Interaction, hex_code: str):
            await self.welcome_color(interaction, hex_code)

        @group.command(name='footer', description="Set welcome embed footer")
        async def footer(interaction: discord.Interaction, content: str):
            await self.welcome_footer(interaction, content)

        @group.command(name='image', description="Set welcome embed image")
        async def image(interaction: discord.Interaction, url: str):
            await self.welcome_image(interaction, url)

        bot.tree.add_command(group)

    async def welcome_status(self, interaction: discord.Interaction, status: str) -> None:
        self._require_manage_guild(interaction)

        settings = self.state_manager.update_feature('welcome', {'enabled': status == 'ON'})
        state = 'enabled' if settings.enabled else 'disabled'
        await self._reply(interaction, f"Welcome message system is now {state}!")
        logger.info(f"Welcome system {state} by {interaction.user}")

    async def welcome_preview(self, interaction: discord.Interaction) -> None:
        settings = self.state_manager.settings.welcome
        if not settings.enabled:
            await self._reply(interaction, "Welcome message system is not enabled!")
            return
        if not settings.channel_id:
            await self._reply(interaction, "No welcome channel has been configured!")
            return

        channel = interaction.guild.get_channel(settings.channel_id)
        if channel is None:
            await self._reply(interaction, "Configured welcome channel no longer exists!")
            return

        try:
            await channel.send(embed=self.member_service.build_welcome_embed(interaction.user))
        except discord.HTTPException as e:
            logger.warning(f"Failed to send welcome preview: {e}")
            await self._reply(interaction, "Failed to send preview message!")
            return

        await self._reply(interaction, f"Welcome preview sent to {channel.mention}!")
        logger.info(f"Welcome preview sent by {interaction.user}")

    async def welcome_channel(self, interaction: discord.Interaction, channel) -> None:
        self._require_manage_guild(interaction)

        if self._missing_bot_permissions(interaction, channel, EMBED_PERMISSIONS):
            await self._reply(interaction, f"I need permissions to view, send messages, and embed links in {channel.mention}!")
            return

        self.state_manager.update_feature('welcome', {'channel_id': channel.id})
        await self._reply(interaction, f"Welcome messages will now be sent to {channel.mention}!")
        logger.info(f"Welcome channel set to {channel.name} by {interaction.user}")

    async def welcome_description(self, interaction: discord.Interaction, content: str) -> None:
        self._require_manage_guild(interaction)

        self.state_manager.settings.welcome.embed.description = content
        await self._reply(
            interaction,
            "Welcome message description updated!\n\nAvailable placeholders:\n"
            "• `{user}` - Mentions the user\n"
            "• `{username}` - User's username\n"
            "• `{server}` - Server name\n"
            "• `{membercount}` - Total member count"
        )

    async def welcome_thumbnail(self, interaction: discord.Interaction, status: str) -> None:
        self._require_manage_guild(interaction)

        embed_settings = self.state_manager.settings.welcome.embed
        embed_settings.thumbnail = status == 'ON'
        await self._reply(interaction, f"Welcome message thumbnail {'enabled' if embed_settings.thumbnail else 'disabled'}!")

    async def welcome_color(self, interaction: discord.Interaction, color: str) -> None:
        self._require_manage_guild(interaction)

        if not is_valid_hex(color):
            await self._reply(interaction, "Invalid hex color! Please use format like #ff0000")
            return

        self.state_manager.settings.welcome.embed.color = color
        await self._reply(interaction, f"Welcome message color updated to {color}!")

    async def welcome_footer(self, interaction: discord.Interaction, content: str) -> None:
        self._require_manage_guild(interaction)

        self.state_manager.settings.welcome.embed.footer = content
        await self._reply(interaction, "Welcome message footer updated!")

    async def welcome_image(self, interaction: discord.Interaction, url: str) -> None:
        self._require_manage_guild(interaction)

        parsed = urlparse(url)
        if not parsed.scheme or not parsed.netloc:
            await self._reply(interaction, "Invalid URL provided!")
            return

        self.state_manager.settings.welcome.embed.image = url
        await self._reply(interaction, "Welcome message image updated!")

    # /autorole

    def _register_autorole_commands(self, bot: commands.Bot) -> None:
        group = app_commands.Group(name='autorole', description="Configure the role given to new members", guild_only=True)

        @group.command(name='add', description="Set the autorole")
        @app_commands.describe(role="Role to assign", role_id="ID of the role to assign")
        async def add(interaction: discord.Interaction, role: Optional[discord.Role] = None,
                      role_id: Optional[str] = None):
            await self.autorole_add(interaction, role, role_id)

        @group.command(name='remove', description="Disable the autorole")
        async def remove(interaction: discord.Interaction):
            await self.autorole_remove(interaction)

        @group.command(name='list', description="Show the autorole configuration")
        async def list_(interaction: discord.Interaction):
            await self.autorole_list(interaction)

        bot.tree.add_command(group)

    async def autorole_add(self, interaction: discord.Interaction, role=None, role_id: Optional[str] = None) -> None:
        self._require_manage_guild(interaction)
        guild = interaction.guild

        if role is None:
            if not role_id:
                await self._reply(interaction, "Please provide a role or role ID!")
                return
            role = guild.get_role(int(role_id)) if role_id.isdigit() else None
            if role is None:
                await self._reply(interaction, "No role found with that ID!")
                return

        if role.id == guild.default_role.id:
            await self._reply(interaction, "You cannot set `@everyone` as the autorole!")
            return
        if not guild.me.guild_permissions.manage_roles:
            await self._reply(interaction, "I don't have the `ManageRoles` permission!")
            return
        if guild.me.top_role.position <= role.position:
            await self._reply(interaction, "I don't have the permissions to assign this role! The role must be below my highest role.")
            return
        if role.managed:
            await self._reply(interaction, "Oops! This role is managed by an integration and cannot be assigned!")
            return

        self.state_manager.update_feature('autorole', {'enabled': True, 'role_id': role.id})
        await self._reply(interaction, f"✅ Autorole has been set to **{role.name}**! New members will automatically receive this role.")
        logger.info(f"Autorole set to {role.name} by {interaction.user}")

    async def autorole_remove(self, interaction: discord.Interaction) -> None:
        self._require_manage_guild(interaction)

        self.state_manager.update_feature('autorole', {'enabled': False, 'role_id': None})
        await self._reply(interaction, "✅ Autorole has been disabled!")
        logger.info(f"Autorole disabled by {interaction.user}")

    async def autorole_list(self, interaction: discord.Interaction) -> None:
        settings = self.state_manager.settings.autorole
        if not settings.enabled or not settings.role_id:
            await self._reply(interaction, "Autorole is currently disabled.")
            return

        role = interaction.guild.get_role(settings.role_id)
        if role is None:
            self.state_manager.update_feature('autorole', {'enabled': False, 'role_id': None})
            await self._reply(interaction, "The configured autorole no longer exists. Autorole has been disabled.")
            return

        embed = self.ui_service.autorole_embed(role, settings.enabled, bot_user=interaction.client.user)
        await interaction.response.send_message(embed=embed, ephemeral=True)

    # /ticket

    def _register_ticket_commands(self, bot: commands.Bot) -> None:
        group = app_commands.Group(name='ticket', description="Ticket system management", guild_only=True)

        @group.command(name='setup', description="Setup ticket creation message in a channel")
        @app_commands.describe(channel="Channel to send ticket creation message")
        async def setup(interaction: discord.Interaction, channel: discord.TextChannel):
            await self.ticket_setup(interaction, channel)

        @group.command(name='close', description="Close the current ticket")
        @app_commands.describe(reason="Reason for closing the ticket")
        async def close(interaction: discord.Interaction, reason: Optional[str] = None):
            await self.ticket_close(interaction, reason)

        @group.command(name='add', description="Add a user to the ticket")
        @app_commands.describe(user="User to add to the ticket")
        async def add(interaction: discord.Interaction, user: discord.Member):
            await self.ticket_member(interaction, user, added=True)

        @group.command(name='remove', description="Remove a user from the ticket")
        @app_commands.describe(user="User to remove from the ticket")
        async def remove(interaction: discord.Interaction, user: discord.Member):
            await self.ticket_member(interaction, user, added=False)

        @group.command(name='log', description="Set ticket log channel")
        @app_commands.describe(channel="Channel for ticket logs")
        async def log(interaction: discord.Interaction, channel: discord.TextChannel):
            await self.ticket_log(interaction, channel)

        @group.command(name='limit', description="Set the maximum number of open tickets")
        async def limit(interaction: discord.Interaction, count: app_commands.Range[int, 1, 500]):
            await self.ticket_limit(interaction, count)

        @group.command(name='category', description="Set the category new tickets are created in")
        @app_commands.describe(category="Category for ticket channels (leave empty to clear)")
        async def category(interaction: discord.Interaction, category: Optional[discord.CategoryChannel] = None):
            await self.ticket_category(interaction, category)

        @group.command(name='staffadd', description="Add a ticket staff role")
        async def staffadd(interaction: discord.Interaction, role: discord.Role):
            await self.add_staff_role(interaction, 'ticket', role)

        @group.command(name='staffremove', description="Remove a ticket staff role")
        async def staffremove(interaction: discord.Interaction, role: discord.Role):
            await self.remove_staff_role(interaction, 'ticket', role)

        bot.tree.add_command(group)

    async def ticket_setup(self, interaction: discord.Interaction, channel) -> None:
        self._require_manage_guild(interaction)

        if not interaction.guild.me.guild_permissions.manage_channels:
            await self._reply(interaction, "I need `Manage Channels` permission to create ticket channels!")
            return

        if self._missing_bot_permissions(interaction, channel, EMBED_PERMISSIONS):
            await self._reply(interaction, f"I need permissions to view, send messages, and embed links in {channel.mention}!")
            return

        try:
            await channel.send(embed=self.ui_service.ticket_panel_embed(), view=TicketPanelView(self.ticket_service))
        except discord.HTTPException as e:
            logger.error(f"Failed to set up ticket panel in {channel.name}: {e}")
            await self._reply(interaction, "Failed to set up ticket system. Please check my permissions and try again.")
            return

        await self._reply(interaction, f"✅ Ticket system has been successfully set up in {channel.mention}!")
        logger.info(f"Ticket system set up in {channel.name} by {interaction.user}")

    async def ticket_close(self, interaction: discord.Interaction, reason: Optional[str] = None) -> None:
        result = await self.ticket_service.close_ticket(
            interaction.channel, interaction.user, reason or "No reason provided"
        )
        if result.outcome == TicketOutcome.NOT_A_TICKET:
            raise NotATicketChannel(self.ticket_service.closure_message(result))

        await self._reply(interaction, self.ticket_service.closure_message(result), ephemeral=not result.ok)

    async def ticket_member(self, interaction: discord.Interaction, user, added: bool) -> None:
        if added:
            result = await self.ticket_service.add_member(interaction.channel, interaction.user, user)
        else:
            result = await self.ticket_service.remove_member(interaction.channel, interaction.user, user)

        message = self.ticket_service.membership_message(result, user, added)
        if result.outcome == TicketOutcome.NOT_A_TICKET:
            raise NotATicketChannel(message)
        if result.outcome == TicketOutcome.MISSING_PERMISSIONS:
            raise MissingStaffPermissions(message)

        await self._reply(interaction, message, ephemeral=not result.ok)

    async def ticket_log(self, interaction: discord.Interaction, channel) -> None:
        self._require_manage_guild(interaction)

        if self._missing_bot_permissions(interaction, channel, EMBED_PERMISSIONS):
            await self._reply(interaction, f"I need permissions to view, send messages, and embed links in {channel.mention}!")
            return

        self.state_manager.update_feature('ticket', {'log_channel_id': channel.id})
        await self._reply(interaction, f"Ticket logs will now be sent to {channel.mention}!")
        logger.info(f"Ticket log channel set to {channel.name} by {interaction.user}")

    async def ticket_limit(self, interaction: discord.Interaction, count: int) -> None:
        self._require_manage_guild(interaction)

        self.state_manager.update_feature('ticket', {'limit': count})
        await self._reply(interaction, f"Ticket limit set to {count}! Currently open: {self.ticket_service.registry.count()}")
        logger.info(f"Ticket limit set to {count} by {interaction.user}")

    async def ticket_category(self, interaction: discord.Interaction, category=None) -> None:
        self._require_manage_guild(interaction)

        self.state_manager.update_feature('ticket', {'category_id': category.id if category else None})
        if category is None:
            await self._reply(interaction, "Ticket category cleared! New tickets will be created without a category.")
        else:
            await self._reply(interaction, f"New tickets will now be created in **{category.name}**!")

    # /chatbot

    def _register_chatbot_commands(self, bot: commands.Bot) -> None:
        group = app_commands.Group(name='chatbot', description="Configure the chatbot", guild_only=True)

        @group.command(name='channel', description="Set the chatbot channel")
        async def channel(interaction: discord.Interaction, channel: discord.TextChannel):
            await self.chatbot_channel(interaction, channel)

        @group.command(name='reset', description="Disable the chatbot")
        async def reset(interaction: discord.Interaction):
            await self.chatbot_reset(interaction)

        bot.tree.add_command(group)

    async def chatbot_channel(self, interaction: discord.Interaction, channel) -> None:
        self._require_manage_guild(interaction)

        if self._missing_bot_permissions(interaction, channel, CHATBOT_PERMISSIONS):
            await self._reply(interaction, f"I need permissions to view, send messages, and read message history in {channel.mention}!")
            return

        self.state_manager.update_feature('chatbot', {'enabled': True, 'channel_id': channel.id})
        await self._reply(interaction, f"✅ Chatbot responses will now be active in {channel.mention}! Users can chat naturally and I'll respond.")
        logger.info(f"Chatbot channel set to {channel.name} by {interaction.user}")

    async def chatbot_reset(self, interaction: discord.Interaction) -> None:
        self._require_manage_guild(interaction)

        self.state_manager.update_feature('chatbot', {'enabled': False, 'channel_id': None})
        await self._reply(interaction, "✅ Chatbot channel has been reset. The chatbot is now disabled.")
        logger.info(f"Chatbot reset by {interaction.user}")
