"""
State Management System for Hearth
"""

import logging
from datetime import datetime, timezone
from typing import Dict, Any, Optional, Set
from dataclasses import dataclass, field

logger = logging.getLogger('core.state_manager')

@dataclass
class SuggestionSettings:
    enabled: bool = True
    channel_id: Optional[int] = None
    approved_channel_id: Optional[int] = None
    rejected_channel_id: Optional[int] = None
    staff_role_ids: Set[int] = field(default_factory=set)

@dataclass
class TicketSettings:
    log_channel_id: Optional[int] = None
    limit: int = 5
    staff_role_ids: Set[int] = field(default_factory=set)
    category_id: Optional[int] = None

@dataclass
class AutoroleSettings:
    enabled: bool = False
    role_id: Optional[int] = None

@dataclass
class WelcomeEmbedSettings:
    description: str = "Welcome to {server}! We're glad to have you here, {user}!"
    thumbnail: bool = True
    color: str = "#0099ff"
    footer: Optional[str] = "Welcome to our community!"
    image: Optional[str] = None

@dataclass
class WelcomeSettings:
    enabled: bool = False
    channel_id: Optional[int] = None
    embed: WelcomeEmbedSettings = field(default_factory=WelcomeEmbedSettings)

@dataclass
class ChatbotSettings:
    enabled: bool = False
    channel_id: Optional[int] = None

@dataclass
class BotSettings:
    """
    Mutable per-feature settings for the bot.

    Command handlers mutate these directly; services only read them.
    Nothing here outlives the process.
    """

    suggestion: SuggestionSettings = field(default_factory=SuggestionSettings)
    ticket: TicketSettings = field(default_factory=TicketSettings)
    autorole: AutoroleSettings = field(default_factory=AutoroleSettings)
    welcome: WelcomeSettings = field(default_factory=WelcomeSettings)
    chatbot: ChatbotSettings = field(default_factory=ChatbotSettings)

class StateManager:
    """
    Owner of the bot's in-memory settings and runtime information.

    Replaces module-level settings dictionaries with one injectable
    object so handlers and tests share the same explicit state.
    """

    FEATURES = ('suggestion', 'ticket', 'autorole', 'welcome', 'chatbot')

    def __init__(self, settings: Optional[BotSettings] = None):
        self.settings = settings or BotSettings()
        self.started_at = datetime.now(timezone.utc)

        logger.info("StateManager initialized")

    def get_feature(self, feature: str) -> Any:
        """
        Get the settings object for a feature.

        Raises:
            KeyError: If the feature is unknown
        """
        if feature not in self.FEATURES:
            raise KeyError(f"Unknown feature '{feature}'")
        return getattr(self.settings, feature)

    def update_feature(self, feature: str, updates: Dict[str, Any]) -> Any:
        """
        Update fields on a feature's settings.

        Args:
            feature: Feature name ('ticket', 'suggestion', ...)
            updates: Dictionary of field updates

        Returns:
            Updated settings object

        Raises:
            KeyError: If the feature or one of the fields is unknown
        """
        settings = self.get_feature(feature)

        unknown = [name for name in updates if not hasattr(settings, name)]
        if unknown:
            raise KeyError(f"Unknown {feature} setting(s): {', '.join(unknown)}")

        for name, new_value in updates.items():
            old_value = getattr(settings, name)
            setattr(settings, name, new_value)
            logger.debug(f"{feature}.{name}: {old_value!r} -> {new_value!r}")

        return settings

    def uptime_seconds(self) -> float:
        return (datetime.now(timezone.utc) - self.started_at).total_seconds()
