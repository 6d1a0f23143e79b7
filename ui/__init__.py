"""
UI components for Hearth

Discord views carrying the buttons the bot attaches to its messages:
- TicketPanelView / TicketControlView: persistent ticket open and close buttons
- SuggestionVoteView: vote buttons labelled with the current tally
- SuggestionVoteButton: vote button routed by custom id, so old suggestions keep working
"""

from .views import BaseView, TicketPanelView, TicketControlView, SuggestionVoteView, SuggestionVoteButton

__all__ = [
    'BaseView',
    'TicketPanelView',
    'TicketControlView',
    'SuggestionVoteView',
    'SuggestionVoteButton'
]
