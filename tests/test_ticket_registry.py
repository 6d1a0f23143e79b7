"""
Ticket registry tests
"""

import pytest

from core import TicketRegistry
from hearth_errors import TicketAlreadyOpen, TicketLimitReached, TicketNotFound


class TestTicketRegistry:
    """Test open-ticket bookkeeping and its invariants"""

    def test_register_and_lookup(self):
        registry = TicketRegistry(limit=5)

        ticket = registry.register(100, 1, channel_name='ticket-alice')

        assert registry.count() == 1
        assert registry.is_tracked(100)
        assert 100 in registry
        assert registry.get(100) is ticket
        assert registry.find_open_ticket_for_user(1) is ticket
        assert registry.find_open_ticket_for_user(2) is None
        assert ticket.to_dict()['channel_name'] == 'ticket-alice'

    def test_one_ticket_per_user(self):
        registry = TicketRegistry(limit=5)
        first = registry.register(100, 1)

        with pytest.raises(TicketAlreadyOpen) as exc_info:
            registry.register(101, 1)

        assert exc_info.value.ticket is first
        assert registry.count() == 1
        assert not registry.is_tracked(101)

    def test_limit_reached_leaves_size_unchanged(self):
        registry = TicketRegistry(limit=2)
        registry.register(100, 1)
        registry.register(101, 2)

        with pytest.raises(TicketLimitReached) as exc_info:
            registry.register(102, 3)

        assert exc_info.value.limit == 2
        assert len(registry) == 2

    def test_limit_is_read_at_call_time(self):
        limits = {'value': 1}
        registry = TicketRegistry(limit=lambda: limits['value'])
        registry.register(100, 1)

        with pytest.raises(TicketLimitReached):
            registry.register(101, 2)

        limits['value'] = 2
        registry.register(101, 2)
        assert registry.count() == 2

    def test_set_limit_source(self):
        registry = TicketRegistry(limit=1)
        registry.set_limit_source(3)
        assert registry.limit == 3

    def test_unregister_frees_the_user(self):
        registry = TicketRegistry(limit=5)
        registry.register(100, 1)

        removed = registry.unregister(100)

        assert removed.user_id == 1
        assert registry.count() == 0
        assert registry.find_open_ticket_for_user(1) is None
        # The user may open a new ticket again
        registry.register(101, 1)
        assert registry.find_open_ticket_for_user(1).channel_id == 101

    def test_unregister_unknown_channel(self):
        registry = TicketRegistry(limit=5)

        with pytest.raises(TicketNotFound):
            registry.unregister(404)

    def test_all_lists_open_tickets(self):
        registry = TicketRegistry(limit=5)
        registry.register(100, 1)
        registry.register(101, 2)

        assert sorted(t.channel_id for t in registry.all()) == [100, 101]
