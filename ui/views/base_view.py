"""
Base View for Hearth UI System
"""

import discord
from typing import Optional, Any
import logging

logger = logging.getLogger('ui.views.base_view')

ERROR_REPLY = "❌ An error occurred while processing your request. Please try again."

class BaseView(discord.ui.View):
    """
    Base view for Hearth buttons.

    Pass timeout=None for persistent views whose buttons must keep
    working for as long as the process runs.
    """

    def __init__(self, *, timeout: Optional[float] = 180):
        super().__init__(timeout=timeout)

    async def on_error(self, interaction: discord.Interaction, error: Exception, item: discord.ui.Item[Any]) -> None:
        """Log a failed button callback and tell the clicking user"""
        logger.error(f"View error in {self.__class__.__name__} ({getattr(item, 'custom_id', None)}): {error}",
                     exc_info=error)

        try:
            if interaction.response.is_done():
                await interaction.followup.send(ERROR_REPLY, ephemeral=True)
            else:
                await interaction.response.send_message(ERROR_REPLY, ephemeral=True)
        except discord.HTTPException as e:
            logger.error(f"Failed to send error message: {e}")
