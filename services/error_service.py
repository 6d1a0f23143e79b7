"""
Error Service for Hearth
"""

import logging
import math
from typing import Dict, Any
import discord
from discord import app_commands

import hearth_errors
from core import ServiceRegistry, EventBus
from utils import format_permissions

logger = logging.getLogger('services.error_service')

class ErrorService:
    """
    Centralized error handling for application commands.

    Maps every error a command can raise to a short ephemeral reply and
    logs it at a level matching its severity.
    """

    def __init__(self, service_registry: ServiceRegistry):
        self.service_registry = service_registry
        self.event_bus = service_registry.get(EventBus)

        # Fallback wording when the error carries no message of its own
        self.error_messages = {
            'missing_manage_guild': "You need `Manage Guild` permission to use this command!",
            'missing_staff': "You need staff permissions to use this command!",
            'not_a_ticket': "This command can only be used in ticket channels!",
            'feature_disabled': "This feature is currently disabled!",
            'cooldown': "Please wait a moment before using this command again!",
            'no_private_message': "Cannot use command in DM",
            'bot_missing_permissions': "I'm missing permissions to do that",
            'generic': "An unexpected error occurred while processing your command"
        }

        logger.info("ErrorService initialized")

    async def handle_command_error(self, interaction: discord.Interaction, error: Exception) -> None:
        """
        Handle an application command error with appropriate user feedback.

        Args:
            interaction: Discord interaction that caused the error
            error: Exception that occurred
        """
        original_error = getattr(error, 'original', error)

        error_info = self._categorize_error(original_error)
        error_message = self._format_error_message(error_info, original_error)

        await self._log_error(interaction, original_error, error_info)
        await self._send_error_response(interaction, error_message)

    def _categorize_error(self, error: Exception) -> Dict[str, Any]:
        """Categorize error for appropriate handling"""
        if isinstance(error, hearth_errors.MissingManageGuild):
            return {'category': 'missing_manage_guild', 'severity': 'low'}
        elif isinstance(error, hearth_errors.MissingStaffPermissions):
            return {'category': 'missing_staff', 'severity': 'low'}
        elif isinstance(error, hearth_errors.NotATicketChannel):
            return {'category': 'not_a_ticket', 'severity': 'low'}
        elif isinstance(error, hearth_errors.FeatureDisabled):
            return {'category': 'feature_disabled', 'severity': 'low'}
        elif isinstance(error, app_commands.CommandOnCooldown):
            return {'category': 'cooldown', 'severity': 'low'}
        elif isinstance(error, app_commands.NoPrivateMessage):
            return {'category': 'no_private_message', 'severity': 'low'}
        elif isinstance(error, app_commands.BotMissingPermissions):
            return {'category': 'bot_missing_permissions', 'severity': 'high'}
        else:
            return {'category': 'generic', 'severity': 'high'}

    def _format_error_message(self, error_info: Dict[str, Any], original_error: Exception) -> str:
        """Format user-friendly error message"""
        category = error_info['category']

        if category == 'cooldown':
            return f"Please wait {math.ceil(original_error.retry_after)} seconds!"
        if category == 'bot_missing_permissions':
            return f"I need the following permissions:\n{format_permissions(original_error.missing_permissions)}"
        if category in ('missing_staff', 'not_a_ticket', 'feature_disabled') and str(original_error):
            return str(original_error)

        return self.error_messages.get(category, self.error_messages['generic'])

    async def _send_error_response(self, interaction: discord.Interaction, message: str) -> None:
        """Send error response to user"""
        try:
            if interaction.response.is_done():
                await interaction.followup.send(message, ephemeral=True)
            else:
                await interaction.response.send_message(message, ephemeral=True)
        except discord.HTTPException as e:
            logger.error(f"Failed to send error response via Discord API: {e}")

    async def _log_error(self, interaction: discord.Interaction, error: Exception,
                         error_info: Dict[str, Any]) -> None:
        """Log error for debugging"""
        log_data = {
            'guild_id': interaction.guild_id,
            'user_id': interaction.user.id if interaction.user else None,
            'command': interaction.command.qualified_name if interaction.command else 'unknown',
            'error_type': type(error).__name__,
            'error_category': error_info['category'],
            'severity': error_info['severity'],
            'message': str(error)
        }

        if error_info['severity'] == 'high':
            logger.error(f"Command error: {log_data}", exc_info=error)
        elif error_info['severity'] == 'medium':
            logger.warning(f"Command error: {log_data}")
        else:
            logger.info(f"Command error: {log_data}")

        await self.event_bus.emit_async('command_error_occurred', **log_data)
