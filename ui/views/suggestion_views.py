"""
Suggestion vote buttons for Hearth
"""

import logging
import discord

from core import VoteDirection
from .base_view import BaseView

logger = logging.getLogger('ui.views.suggestion_views')

class SuggestionVoteButton(discord.ui.DynamicItem[discord.ui.Button],
                           template=r'suggestion_(?P<direction>upvote|downvote)_(?P<id>\d+)'):
    """
    One vote button; the custom id carries the suggestion id and direction.

    Registered with `bot.add_dynamic_items`, so a click on any suggestion
    message is routed here, including messages posted before a restart.
    The service is taken from `interaction.client.suggestion_service` when
    the button is rebuilt from a click.
    """

    def __init__(self, suggestion_service, suggestion_id: int, direction: VoteDirection, count: int = 0):
        upvote = direction == VoteDirection.UP
        super().__init__(
            discord.ui.Button(
                style=discord.ButtonStyle.success if upvote else discord.ButtonStyle.danger,
                label=f"👍 Upvote ({count})" if upvote else f"👎 Downvote ({count})",
                custom_id=f"suggestion_{'upvote' if upvote else 'downvote'}_{suggestion_id}"
            )
        )
        self.suggestion_service = suggestion_service
        self.suggestion_id = suggestion_id
        self.direction = direction

    @classmethod
    async def from_custom_id(cls, interaction: discord.Interaction, item: discord.ui.Button, match, /):
        direction = VoteDirection.UP if match['direction'] == 'upvote' else VoteDirection.DOWN
        return cls(interaction.client.suggestion_service, int(match['id']), direction)

    async def callback(self, interaction: discord.Interaction):
        await self.suggestion_service.handle_vote(interaction, self.suggestion_id, self.direction)

class SuggestionVoteView(BaseView):
    """
    Upvote/downvote buttons under a suggestion.

    Labels carry the current counts; the view is rebuilt with fresh counts
    after every vote and swapped onto the message.
    """

    def __init__(self, suggestion_service, suggestion_id: int, upvotes: int = 0, downvotes: int = 0):
        super().__init__(timeout=None)
        self.suggestion_id = suggestion_id

        self.add_item(SuggestionVoteButton(suggestion_service, suggestion_id, VoteDirection.UP, upvotes))
        self.add_item(SuggestionVoteButton(suggestion_service, suggestion_id, VoteDirection.DOWN, downvotes))
