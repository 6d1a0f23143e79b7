"""
Core Infrastructure for Hearth

Provides dependency injection, configuration management, settings state,
event-driven communication, and the in-memory ticket and suggestion
bookkeeping the services build on.

Key Components:
- ServiceRegistry: Dependency injection container for all services
- ConfigurationManager: Centralized configuration with environment support
- StateManager: Per-feature settings replacing module-level globals
- EventBus: Internal event system for component communication
- TicketRegistry: Directory of open support tickets
- SuggestionTally: Per-suggestion vote table
"""

from .service_registry import ServiceRegistry, ServiceLifetime, ServiceNotFound
from .config_manager import ConfigurationManager, ConfigurationError, HearthConfiguration
from .state_manager import (
    StateManager, BotSettings, SuggestionSettings, TicketSettings,
    AutoroleSettings, WelcomeSettings, WelcomeEmbedSettings, ChatbotSettings
)
from .event_bus import EventBus, Event, TicketEvent, VoteEvent
from .ticket_registry import TicketRegistry, Ticket, TicketOutcome, TicketResult
from .suggestion_tally import SuggestionTally, VoteDirection, VoteAction, VoteResult

__all__ = [
    'ServiceRegistry',
    'ServiceLifetime',
    'ServiceNotFound',
    'ConfigurationManager',
    'ConfigurationError',
    'HearthConfiguration',
    'StateManager',
    'BotSettings',
    'SuggestionSettings',
    'TicketSettings',
    'AutoroleSettings',
    'WelcomeSettings',
    'WelcomeEmbedSettings',
    'ChatbotSettings',
    'EventBus',
    'Event',
    'TicketEvent',
    'VoteEvent',
    'TicketRegistry',
    'Ticket',
    'TicketOutcome',
    'TicketResult',
    'SuggestionTally',
    'VoteDirection',
    'VoteAction',
    'VoteResult'
]
