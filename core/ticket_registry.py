"""
Ticket Registry for Hearth
"""

import logging
from datetime import datetime, timezone
from typing import Dict, Optional, List, Callable, Union
from dataclasses import dataclass, field
from enum import Enum

from hearth_errors import TicketAlreadyOpen, TicketLimitReached, TicketNotFound

logger = logging.getLogger('core.ticket_registry')

class TicketOutcome(Enum):
    """Result kinds for ticket lifecycle operations"""
    SUCCESS = "success"
    ALREADY_OPEN = "already_open"
    LIMIT_REACHED = "limit_reached"
    NOT_A_TICKET = "not_a_ticket"
    NOT_FOUND = "not_found"
    MISSING_PERMISSIONS = "missing_permissions"
    ERROR = "error"

@dataclass
class Ticket:
    """An open support ticket, identified by its channel"""

    channel_id: int
    user_id: int
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    guild_id: Optional[int] = None
    channel_name: Optional[str] = None

    def to_dict(self) -> Dict[str, object]:
        return {
            'channel_id': self.channel_id,
            'user_id': self.user_id,
            'created_at': self.created_at.isoformat(),
            'guild_id': self.guild_id,
            'channel_name': self.channel_name
        }

@dataclass
class TicketResult:
    """Outcome of a ticket lifecycle operation"""

    outcome: TicketOutcome
    ticket: Optional[Ticket] = None
    channel: object = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.outcome == TicketOutcome.SUCCESS

class TicketRegistry:
    """
    In-memory directory of open support tickets.

    Enforces at most one open ticket per user and a global open-ticket
    limit. Every check-and-mutate runs synchronously so a coroutine can
    never be suspended between validating and inserting.
    """

    def __init__(self, limit: Union[int, Callable[[], int]] = 5):
        self._tickets: Dict[int, Ticket] = {}
        self._by_user: Dict[int, int] = {}
        self._limit = limit

        logger.info("TicketRegistry initialized")

    @property
    def limit(self) -> int:
        """Current ticket limit, resolved at call time"""
        if callable(self._limit):
            return self._limit()
        return self._limit

    def set_limit_source(self, limit: Union[int, Callable[[], int]]):
        """Replace the limit or the callable the limit is read from"""
        self._limit = limit

    def find_open_ticket_for_user(self, user_id: int) -> Optional[Ticket]:
        channel_id = self._by_user.get(user_id)
        if channel_id is None:
            return None
        return self._tickets.get(channel_id)

    def count(self) -> int:
        return len(self._tickets)

    def is_tracked(self, channel_id: int) -> bool:
        return channel_id in self._tickets

    def get(self, channel_id: int) -> Optional[Ticket]:
        return self._tickets.get(channel_id)

    def all(self) -> List[Ticket]:
        return list(self._tickets.values())

    def register(
        self,
        channel_id: int,
        user_id: int,
        created_at: Optional[datetime] = None,
        guild_id: Optional[int] = None,
        channel_name: Optional[str] = None
    ) -> Ticket:
        """
        Track a newly provisioned ticket channel.

        Raises:
            TicketAlreadyOpen: If the user already has a tracked ticket
            TicketLimitReached: If the registry is at capacity
        """
        existing = self.find_open_ticket_for_user(user_id)
        if existing is not None:
            raise TicketAlreadyOpen(user_id, existing)

        limit = self.limit
        if len(self._tickets) >= limit:
            raise TicketLimitReached(limit)

        ticket = Ticket(
            channel_id=channel_id,
            user_id=user_id,
            created_at=created_at or datetime.now(timezone.utc),
            guild_id=guild_id,
            channel_name=channel_name
        )
        self._tickets[channel_id] = ticket
        self._by_user[user_id] = channel_id

        logger.debug(f"Registered ticket {channel_id} for user {user_id} ({len(self._tickets)}/{limit})")
        return ticket

    def unregister(self, channel_id: int) -> Ticket:
        """
        Stop tracking a ticket channel.

        Raises:
            TicketNotFound: If the channel is not a tracked ticket
        """
        ticket = self._tickets.pop(channel_id, None)
        if ticket is None:
            raise TicketNotFound(f"Channel {channel_id} is not a tracked ticket")

        if self._by_user.get(ticket.user_id) == channel_id:
            del self._by_user[ticket.user_id]

        logger.debug(f"Unregistered ticket {channel_id} (owner {ticket.user_id})")
        return ticket

    def __len__(self) -> int:
        return len(self._tickets)

    def __contains__(self, channel_id: int) -> bool:
        return channel_id in self._tickets
