"""
Event Bus System for Hearth
"""

import logging
import asyncio
import itertools
from datetime import datetime, timezone
from typing import Dict, Any, Optional, List, Callable, Union
from dataclasses import dataclass, field

logger = logging.getLogger('core.event_bus')

_event_ids = itertools.count(1)

@dataclass
class Event:
    """
    Something that happened inside the bot.

    Services publish these to announce lifecycle changes (ticket opened,
    vote cast, ...) without knowing who listens.
    """

    event_type: str
    event_id: int = field(default_factory=lambda: next(_event_ids))
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    source: Optional[str] = None
    data: Dict[str, Any] = field(default_factory=dict)

    def get_event_data(self, key: str, default: Any = None) -> Any:
        return self.data.get(key, default)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'event_type': self.event_type,
            'event_id': self.event_id,
            'timestamp': self.timestamp.isoformat(),
            'source': self.source,
            'data': self.data
        }

class TicketEvent(Event):
    """Events related to the ticket lifecycle"""

    def __init__(self, event_type: str, channel_id: int, user_id: Optional[int] = None, **data):
        super().__init__(event_type=event_type, source='tickets')
        self.data.update({'channel_id': channel_id, 'user_id': user_id, **data})

class VoteEvent(Event):
    """Event fired after a suggestion vote is recorded"""

    def __init__(self, suggestion_id: int, voter_id: int, action: str,
                 upvotes: int, downvotes: int):
        super().__init__(event_type='suggestion_vote', source='suggestions')
        self.data.update({
            'suggestion_id': suggestion_id,
            'voter_id': voter_id,
            'action': action,
            'upvotes': upvotes,
            'downvotes': downvotes
        })

@dataclass
class Subscription:
    handler_id: str
    handler: Callable
    event_types: List[str]

    def matches(self, event: Event) -> bool:
        return '*' in self.event_types or event.event_type in self.event_types

class EventBus:
    """
    In-process publish/subscribe with a bounded history.

    Handlers may be plain functions or coroutines. A failing handler is
    logged and counted; the publisher never sees its exception.
    """

    def __init__(self, max_history: int = 500):
        self._subscriptions: Dict[str, Subscription] = {}
        self._history: List[Event] = []
        self._max_history = max_history
        self._stats = {
            'events_published': 0,
            'events_handled': 0,
            'handler_errors': 0
        }

        logger.info("EventBus initialized")

    def subscribe(self, event_types: Union[str, List[str]], handler: Callable,
                  handler_id: Optional[str] = None) -> str:
        """
        Register `handler` for one or more event types ('*' for all).

        Returns:
            Handler ID for later unsubscription
        """
        if isinstance(event_types, str):
            event_types = [event_types]

        handler_id = handler_id or f"{getattr(handler, '__name__', 'handler')}_{id(handler)}"
        self._subscriptions[handler_id] = Subscription(handler_id, handler, list(event_types))

        logger.debug(f"Subscribed {handler_id} to {event_types}")
        return handler_id

    def unsubscribe(self, handler_id: str) -> bool:
        return self._subscriptions.pop(handler_id, None) is not None

    async def publish_async(self, event: Event) -> int:
        """
        Deliver `event` to every matching handler and wait for them.

        Returns:
            Number of handlers that completed without raising
        """
        self._stats['events_published'] += 1
        self._history.append(event)
        if len(self._history) > self._max_history:
            del self._history[:-self._max_history]

        handled = 0
        for subscription in [s for s in self._subscriptions.values() if s.matches(event)]:
            try:
                result = subscription.handler(event)
                if asyncio.iscoroutine(result):
                    await result
            except Exception as e:
                self._stats['handler_errors'] += 1
                logger.error(f"Error in event handler {subscription.handler_id}: {e}")
            else:
                handled += 1

        self._stats['events_handled'] += handled
        logger.debug(f"Published {event.event_type} to {handled} handler(s)")
        return handled

    async def emit_async(self, event_type: str, **data) -> int:
        """Shorthand for publishing a plain Event"""
        return await self.publish_async(Event(event_type=event_type, data=data))

    def get_stats(self) -> Dict[str, Any]:
        return {
            **self._stats,
            'active_handlers': len(self._subscriptions),
            'history_size': len(self._history)
        }

    def get_event_history(self, limit: Optional[int] = None) -> List[Event]:
        if limit:
            return self._history[-limit:]
        return list(self._history)
