"""
Ticket views for Hearth

Both views are persistent (timeout=None, fixed custom_id) and are
re-registered with the bot on startup, so the panel and close buttons of
messages sent before a restart keep working.
"""

import logging
import discord

from .base_view import BaseView

logger = logging.getLogger('ui.views.ticket_views')

class TicketPanelView(BaseView):
    """The 'Open Ticket' button posted by /ticket setup"""

    def __init__(self, ticket_service):
        super().__init__(timeout=None)
        self.ticket_service = ticket_service

    @discord.ui.button(label='🎫 Open Ticket', style=discord.ButtonStyle.success, custom_id='create_ticket')
    async def open_ticket(self, interaction: discord.Interaction, button: discord.ui.Button):
        await interaction.response.defer(ephemeral=True, thinking=True)

        result = await self.ticket_service.create_ticket(interaction.guild, interaction.user)
        await interaction.followup.send(self.ticket_service.creation_message(result), ephemeral=True)

class TicketControlView(BaseView):
    """The close button attached to a ticket's intro message"""

    def __init__(self, ticket_service):
        super().__init__(timeout=None)
        self.ticket_service = ticket_service

    @discord.ui.button(label='🔒 Close Ticket', style=discord.ButtonStyle.danger, custom_id='close_ticket')
    async def close_ticket(self, interaction: discord.Interaction, button: discord.ui.Button):
        result = await self.ticket_service.close_ticket(interaction.channel, interaction.user, 'Closed via button')
        await interaction.response.send_message(
            self.ticket_service.closure_message(result, source='button'),
            ephemeral=True
        )
