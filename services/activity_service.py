"""
Activity Service for Hearth
"""

import logging
from collections import Counter
from typing import Dict

from core import ServiceRegistry, EventBus, Event

logger = logging.getLogger('services.activity_service')

class ActivityService:
    """
    Running totals of what the bot has done since it started.

    Fed only from the EventBus, so the services publishing events never
    know the totals exist. `/bot stats` reads them back.
    """

    # event type -> counter name
    COUNTED_EVENTS = {
        'ticket_created': 'tickets_opened',
        'ticket_closed': 'tickets_closed',
        'suggestion_submitted': 'suggestions_submitted',
        'suggestion_vote': 'votes_recorded',
        'autorole_assigned': 'roles_assigned',
        'command_error_occurred': 'command_errors'
    }

    def __init__(self, service_registry: ServiceRegistry):
        self.service_registry = service_registry
        self.event_bus = service_registry.get(EventBus)

        self._totals: Counter = Counter()

        self.event_bus.subscribe(list(self.COUNTED_EVENTS), self.handle_event,
                                 handler_id='activity_service')

        logger.info("ActivityService initialized")

    def handle_event(self, event: Event) -> None:
        counter = self.COUNTED_EVENTS.get(event.event_type)
        if counter is None:
            return

        self._totals[counter] += 1
        if event.event_type == 'command_error_occurred' and event.get_event_data('severity') == 'high':
            self._totals['serious_errors'] += 1

    def get_totals(self) -> Dict[str, int]:
        """Every counter, including the ones that are still zero"""
        totals = {name: 0 for name in self.COUNTED_EVENTS.values()}
        totals['serious_errors'] = 0
        totals.update(self._totals)
        return totals
