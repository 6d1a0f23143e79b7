"""
Views for Hearth
"""

from .base_view import BaseView
from .ticket_views import TicketPanelView, TicketControlView
from .suggestion_views import SuggestionVoteView, SuggestionVoteButton

__all__ = [
    'BaseView',
    'TicketPanelView',
    'TicketControlView',
    'SuggestionVoteView',
    'SuggestionVoteButton'
]
