"""
Suggestion Service for Hearth
"""

import itertools
import logging
import re
from typing import Optional
import discord

from core import (
    ServiceRegistry, StateManager, EventBus, VoteEvent, HearthConfiguration,
    SuggestionTally, VoteDirection
)
from core.state_manager import SuggestionSettings
from hearth_errors import FeatureDisabled, MissingStaffPermissions
from .ui_service import UIService
from ui.views.suggestion_views import SuggestionVoteView
from utils import has_staff_permissions

logger = logging.getLogger('services.suggestion_service')

SUGGESTION_ID_PATTERN = re.compile(r"\(ID: (\d+)\)")

class SuggestionService:
    """
    Suggestion submission, voting and staff review.

    Ids come from a process-lifetime counter and are never reused. Vote
    counts are read back from the tally after each write and rendered into
    the button labels.
    """

    def __init__(self, service_registry: ServiceRegistry):
        self.service_registry = service_registry
        self.state_manager = service_registry.get(StateManager)
        self.event_bus = service_registry.get(EventBus)
        self.tally = service_registry.get(SuggestionTally)
        self.ui_service = service_registry.get(UIService)

        config = service_registry.get(HearthConfiguration)
        self.thread_archive_minutes = config.suggestion_thread_archive_minutes

        self._ids = itertools.count(1)

        logger.info("SuggestionService initialized")

    @property
    def settings(self) -> SuggestionSettings:
        return self.state_manager.settings.suggestion

    def next_id(self) -> int:
        return next(self._ids)

    async def submit(self, interaction: discord.Interaction, text: str) -> Optional[int]:
        """Post a suggestion with vote buttons and a discussion thread"""
        if not self.settings.enabled:
            raise FeatureDisabled("Suggestion system is currently disabled!")

        if not self.settings.channel_id:
            await interaction.response.send_message("No suggestion channel has been configured!", ephemeral=True)
            return None

        channel = interaction.guild.get_channel(self.settings.channel_id)
        if channel is None:
            await interaction.response.send_message("Configured suggestion channel no longer exists!", ephemeral=True)
            return None

        suggestion_id = self.next_id()
        author = interaction.user

        embed = self.ui_service.suggestion_embed(suggestion_id, text, author, bot_user=interaction.client.user)
        message = await channel.send(embed=embed, view=SuggestionVoteView(self, suggestion_id))

        thread = await message.create_thread(
            name=f"Suggestion {suggestion_id} - {author.name}",
            auto_archive_duration=self.thread_archive_minutes,
            reason=f"Thread for suggestion {suggestion_id}"
        )
        await thread.add_user(author)
        await thread.send(
            f"**Discussion thread for suggestion {suggestion_id}**\n\n"
            f"Original suggestion by {author.mention}:\n> {text}\n\n"
            f"Feel free to discuss this suggestion here! 💬"
        )

        await interaction.response.send_message(
            f"Your suggestion has been submitted to {channel.mention} with a discussion thread created!",
            ephemeral=True
        )
        logger.info(f"Suggestion {suggestion_id} submitted by {author}: {text}")
        await self.event_bus.emit_async('suggestion_submitted', suggestion_id=suggestion_id, author_id=author.id)
        return suggestion_id

    async def handle_vote(self, interaction: discord.Interaction, suggestion_id: int, direction: VoteDirection):
        """Toggle the voter's vote and re-render the buttons with fresh counts"""
        result = self.tally.cast_vote(suggestion_id, interaction.user.id, direction)
        emoji = '👍' if direction == VoteDirection.UP else '👎'

        if result.removed:
            content = f"Your {emoji} vote has been removed!"
        else:
            content = f"You {'upvoted' if direction == VoteDirection.UP else 'downvoted'} {emoji} this suggestion!"
        await interaction.response.send_message(content, ephemeral=True)

        upvotes, downvotes = self.tally.tally(suggestion_id)
        await interaction.message.edit(
            embeds=interaction.message.embeds,
            view=SuggestionVoteView(self, suggestion_id, upvotes, downvotes)
        )

        logger.info(f"User {interaction.user} {direction.value}d suggestion {suggestion_id} - "
                    f"Upvotes: {upvotes}, Downvotes: {downvotes}")
        await self.event_bus.publish_async(
            VoteEvent(suggestion_id, interaction.user.id, result.action.value, upvotes, downvotes)
        )

    async def review(self, interaction: discord.Interaction, channel, message_id: str,
                     approve: bool, reason: Optional[str] = None) -> bool:
        """Approve or reject a posted suggestion"""
        verb = 'approve' if approve else 'reject'
        if not has_staff_permissions(interaction.user, self.settings.staff_role_ids):
            raise MissingStaffPermissions(f"You need staff permissions to {verb} suggestions!")

        reason = reason or 'No reason provided'

        try:
            message = await channel.fetch_message(int(message_id))
        except (ValueError, discord.HTTPException) as e:
            logger.debug(f"Suggestion message {message_id} not found in {channel}: {e}")
            await interaction.response.send_message("Could not find that message!", ephemeral=True)
            return False

        original = message.embeds[0] if message.embeds else None
        if original is None or 'New Suggestion' not in (original.title or ''):
            await interaction.response.send_message("That message is not a valid suggestion!", ephemeral=True)
            return False

        reviewed = self.ui_service.reviewed_suggestion_embed(
            original, approve, interaction.user, reason, bot_user=interaction.client.user
        )
        await message.edit(embed=reviewed, view=None)

        mirror_id = self.settings.approved_channel_id if approve else self.settings.rejected_channel_id
        if mirror_id:
            mirror = interaction.guild.get_channel(mirror_id)
            if mirror is not None:
                await mirror.send(embed=reviewed)
            else:
                logger.warning(f"{verb.capitalize()}d suggestions channel {mirror_id} not found")

        match = SUGGESTION_ID_PATTERN.search(original.title)
        if match:
            self.tally.retire(int(match.group(1)))

        await interaction.response.send_message(f"Suggestion {verb}d successfully!", ephemeral=True)
        logger.info(f"Suggestion {verb}d by {interaction.user}: {message_id}")
        return True
