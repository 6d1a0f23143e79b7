"""
Hearth Services Package

Service modules for Hearth functionality.
"""

from .activity_service import ActivityService
from .ui_service import UIService
from .error_service import ErrorService
from .ticket_service import TicketService
from .suggestion_service import SuggestionService
from .member_service import MemberService
from .chatbot_service import ChatbotService
from .stock_service import StockService
from .command_service import CommandService
from .bot_application import HearthApplication, create_application

__all__ = [
    'ActivityService',
    'UIService',
    'ErrorService',
    'TicketService',
    'SuggestionService',
    'MemberService',
    'ChatbotService',
    'StockService',
    'CommandService',
    'HearthApplication',
    'create_application'
]
