"""
Ticket lifecycle tests

Covers creation, closing, delayed deletion, membership changes and the
interleavings that must not double-create or double-close.
"""

import asyncio
import pytest
import pytest_asyncio
from unittest.mock import Mock, AsyncMock

from conftest import make_member, make_channel, make_interaction
from core import EventBus, TicketRegistry, TicketOutcome
from services.ticket_service import TicketService
from ui.views.ticket_views import TicketControlView, TicketPanelView


@pytest_asyncio.fixture
async def ticket_service(service_registry):
    service = TicketService(service_registry)
    yield service
    await service.shutdown()


@pytest.fixture
def registry(service_registry):
    return service_registry.get(TicketRegistry)


class TestTicketCreation:
    """Test opening tickets"""

    @pytest.mark.asyncio
    async def test_create_ticket_success(self, ticket_service, registry, guild):
        alice = make_member('alice')

        result = await ticket_service.create_ticket(guild, alice)

        assert result.outcome == TicketOutcome.SUCCESS
        assert result.channel.name == 'ticket-alice'
        assert registry.count() == 1
        assert registry.find_open_ticket_for_user(alice.id).channel_id == result.channel.id

        kwargs = guild.create_text_channel.call_args.kwargs
        assert kwargs['name'] == 'ticket-alice'
        assert kwargs['category'] is None
        overwrites = kwargs['overwrites']
        assert overwrites[guild.default_role].view_channel is False
        assert overwrites[alice].send_messages is True
        assert overwrites[guild.me].manage_channels is True

    @pytest.mark.asyncio
    async def test_intro_message_has_close_button(self, ticket_service, guild):
        alice = make_member('alice')

        result = await ticket_service.create_ticket(guild, alice)

        send_kwargs = result.channel.send.call_args.kwargs
        assert send_kwargs['content'] == alice.mention
        assert isinstance(send_kwargs['view'], TicketControlView)
        assert send_kwargs['embed'].title == '🎫 Support Ticket'

    @pytest.mark.asyncio
    async def test_second_ticket_for_same_user(self, ticket_service, registry, guild):
        alice = make_member('alice')
        first = await ticket_service.create_ticket(guild, alice)

        second = await ticket_service.create_ticket(guild, alice)

        assert second.outcome == TicketOutcome.ALREADY_OPEN
        assert second.ticket.channel_id == first.channel.id
        assert guild.create_text_channel.await_count == 1
        assert registry.count() == 1
        assert ticket_service.creation_message(second) == f"You already have an open ticket: <#{first.channel.id}>"

    @pytest.mark.asyncio
    async def test_limit_reached(self, ticket_service, state_manager, registry, guild):
        state_manager.settings.ticket.limit = 1
        await ticket_service.create_ticket(guild, make_member('alice'))

        result = await ticket_service.create_ticket(guild, make_member('bob'))

        assert result.outcome == TicketOutcome.LIMIT_REACHED
        assert registry.count() == 1
        assert guild.create_text_channel.await_count == 1
        assert "Maximum number of tickets reached" in ticket_service.creation_message(result)

    @pytest.mark.asyncio
    async def test_concurrent_creation_for_same_user(self, ticket_service, registry, guild):
        alice = make_member('alice')

        results = await asyncio.gather(
            ticket_service.create_ticket(guild, alice),
            ticket_service.create_ticket(guild, alice)
        )

        outcomes = sorted(r.outcome.value for r in results)
        assert outcomes == [TicketOutcome.ALREADY_OPEN.value, TicketOutcome.SUCCESS.value]
        assert registry.count() == 1

        # The losing channel was provisioned and must be removed again
        deleted = [c for c in guild.created_channels if c.delete.await_count]
        assert len(guild.created_channels) == 2
        assert len(deleted) == 1
        assert not registry.is_tracked(deleted[0].id)

    @pytest.mark.asyncio
    async def test_concurrent_creation_at_limit(self, ticket_service, state_manager, registry, guild):
        state_manager.settings.ticket.limit = 1

        results = await asyncio.gather(
            ticket_service.create_ticket(guild, make_member('alice')),
            ticket_service.create_ticket(guild, make_member('bob'))
        )

        outcomes = sorted(r.outcome.value for r in results)
        assert outcomes == [TicketOutcome.LIMIT_REACHED.value, TicketOutcome.SUCCESS.value]
        assert registry.count() == 1

    @pytest.mark.asyncio
    async def test_channel_creation_error(self, ticket_service, registry, guild):
        guild.create_text_channel = AsyncMock(side_effect=RuntimeError("Missing Permissions"))

        result = await ticket_service.create_ticket(guild, make_member('alice'))

        assert result.outcome == TicketOutcome.ERROR
        assert registry.count() == 0
        assert ticket_service.creation_message(result).startswith("An error occurred")

    @pytest.mark.asyncio
    async def test_failed_intro_still_opens_ticket(self, ticket_service, registry, guild):
        async def create_text_channel(name, **kwargs):
            channel = make_channel(name, guild)
            channel.send = AsyncMock(side_effect=RuntimeError("Cannot send"))
            return channel

        guild.create_text_channel = AsyncMock(side_effect=create_text_channel)

        result = await ticket_service.create_ticket(guild, make_member('alice'))

        assert result.outcome == TicketOutcome.SUCCESS
        assert registry.count() == 1

    @pytest.mark.asyncio
    async def test_creation_is_logged(self, ticket_service, state_manager, guild):
        log_channel = make_channel('ticket-logs-staff', guild, channel_id=555)
        guild.channels_by_id[555] = log_channel
        state_manager.settings.ticket.log_channel_id = 555

        await ticket_service.create_ticket(guild, make_member('alice'))

        log_channel.send.assert_awaited_once()
        assert log_channel.send.call_args.kwargs['embed'].title == '📋 New Ticket Created'

    @pytest.mark.asyncio
    async def test_creation_publishes_event(self, ticket_service, service_registry, guild):
        event_bus = service_registry.get(EventBus)
        alice = make_member('alice')

        result = await ticket_service.create_ticket(guild, alice)

        events = [e for e in event_bus.get_event_history() if e.event_type == 'ticket_created']
        assert len(events) == 1
        assert events[0].get_event_data('channel_id') == result.channel.id
        assert events[0].get_event_data('user_id') == alice.id


class TestTicketClosing:
    """Test closing and delayed deletion"""

    @pytest.mark.asyncio
    async def test_close_ticket(self, ticket_service, registry, guild):
        alice = make_member('alice')
        created = await ticket_service.create_ticket(guild, alice)
        channel = created.channel

        result = await ticket_service.close_ticket(channel, alice, "Resolved")

        assert result.outcome == TicketOutcome.SUCCESS
        assert result.ticket.user_id == alice.id
        assert registry.count() == 0
        assert ticket_service.is_closing(channel.id)
        assert channel.id in ticket_service.pending_deletions()
        closing_embed = channel.send.call_args.kwargs['embed']
        assert closing_embed.title == '🔒 Ticket Closed'
        assert ticket_service.closure_message(result) == "Ticket will be closed in 0.01 seconds..."

        await ticket_service._pending_deletions[channel.id]

        channel.delete.assert_awaited_once_with(reason="Ticket closed")
        assert ticket_service.pending_deletions() == set()
        assert not ticket_service.is_closing(channel.id)

    @pytest.mark.asyncio
    async def test_concurrent_close(self, ticket_service, guild):
        alice = make_member('alice')
        channel = (await ticket_service.create_ticket(guild, alice)).channel
        channel.send.reset_mock()

        results = await asyncio.gather(
            ticket_service.close_ticket(channel, alice),
            ticket_service.close_ticket(channel, alice)
        )

        assert [r.outcome for r in results] == [TicketOutcome.SUCCESS, TicketOutcome.NOT_A_TICKET]
        assert channel.send.await_count == 1
        assert len(ticket_service.pending_deletions()) == 1

    @pytest.mark.asyncio
    async def test_close_outside_ticket(self, ticket_service, guild):
        general = make_channel('general', guild)

        result = await ticket_service.close_ticket(general, make_member('alice'))

        assert result.outcome == TicketOutcome.NOT_A_TICKET
        general.send.assert_not_awaited()
        assert ticket_service.closure_message(result) == "This command can only be used in ticket channels!"
        assert ticket_service.closure_message(result, source='button') == "This button can only be used in ticket channels!"

    @pytest.mark.asyncio
    async def test_close_untracked_channel_by_name(self, ticket_service, guild):
        leftover = make_channel('ticket-old', guild)

        result = await ticket_service.close_ticket(leftover, make_member('staff', manage_guild=True))

        assert result.outcome == TicketOutcome.SUCCESS
        assert result.ticket is None
        await ticket_service._pending_deletions[leftover.id]
        leftover.delete.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_close_send_failure_keeps_ticket_open(self, ticket_service, registry, guild):
        alice = make_member('alice')
        channel = (await ticket_service.create_ticket(guild, alice)).channel
        channel.send = AsyncMock(side_effect=RuntimeError("Cannot send"))

        result = await ticket_service.close_ticket(channel, alice)

        assert result.outcome == TicketOutcome.ERROR
        assert registry.is_tracked(channel.id)
        assert not ticket_service.is_closing(channel.id)
        assert ticket_service.pending_deletions() == set()
        assert ticket_service.closure_message(result) == "Failed to close ticket."

    @pytest.mark.asyncio
    async def test_user_can_reopen_after_close(self, ticket_service, registry, guild):
        alice = make_member('alice')
        first = await ticket_service.create_ticket(guild, alice)
        await ticket_service.close_ticket(first.channel, alice)

        second = await ticket_service.create_ticket(guild, alice)

        assert second.outcome == TicketOutcome.SUCCESS
        assert registry.find_open_ticket_for_user(alice.id).channel_id == second.channel.id

    @pytest.mark.asyncio
    async def test_cancel_deletion(self, service_registry, config, guild):
        config.ticket_close_delay = 60
        service = TicketService(service_registry)
        alice = make_member('alice')
        channel = (await service.create_ticket(guild, alice)).channel
        await service.close_ticket(channel, alice)
        task = service._pending_deletions[channel.id]

        assert service.cancel_deletion(channel.id)
        with pytest.raises(asyncio.CancelledError):
            await task

        channel.delete.assert_not_awaited()
        assert service.pending_deletions() == set()
        assert not service.cancel_deletion(channel.id)
        assert not service.is_closing(channel.id)
        assert service.is_ticket_channel(channel)

    @pytest.mark.asyncio
    async def test_cancel_before_first_step(self, service_registry, config, guild):
        config.ticket_close_delay = 60
        service = TicketService(service_registry)
        channel = make_channel('ticket-alice', guild)

        service.schedule_deletion(channel)
        assert service.cancel_deletion(channel.id)
        await asyncio.sleep(0.01)

        channel.delete.assert_not_awaited()
        assert service.pending_deletions() == set()
        assert service.is_ticket_channel(channel)
        assert (await service.close_ticket(channel, make_member('alice'))).ok
        await service.shutdown()

    @pytest.mark.asyncio
    async def test_shutdown_cancels_pending_deletions(self, service_registry, config, guild):
        config.ticket_close_delay = 60
        service = TicketService(service_registry)
        alice = make_member('alice')
        channel = (await service.create_ticket(guild, alice)).channel
        await service.close_ticket(channel, alice)

        await service.shutdown()

        channel.delete.assert_not_awaited()
        assert service.pending_deletions() == set()

    @pytest.mark.asyncio
    async def test_schedule_deletion_reuses_live_task(self, ticket_service, guild):
        channel = make_channel('ticket-alice', guild)

        first = ticket_service.schedule_deletion(channel)
        second = ticket_service.schedule_deletion(channel)

        assert first is second
        await first
        channel.delete.assert_awaited_once()


class TestDeletedTicketChannels:
    """Test tickets whose channel disappears outside the close flow"""

    @pytest.mark.asyncio
    async def test_missing_channel_is_untracked_on_next_request(self, ticket_service, registry, guild):
        bob = make_member('bob')
        first = await ticket_service.create_ticket(guild, bob)
        del guild.channels_by_id[first.channel.id]

        second = await ticket_service.create_ticket(guild, bob)

        assert second.outcome == TicketOutcome.SUCCESS
        assert second.channel is not first.channel
        assert registry.count() == 1
        assert not registry.is_tracked(first.channel.id)

    @pytest.mark.asyncio
    async def test_channel_delete_event_untracks_ticket(self, ticket_service, registry, service_registry, guild):
        seen = []
        service_registry.get(EventBus).subscribe('ticket_channel_deleted', seen.append)
        alice = make_member('alice')
        channel = (await ticket_service.create_ticket(guild, alice)).channel

        await ticket_service.on_guild_channel_delete(channel)

        assert registry.count() == 0
        assert registry.find_open_ticket_for_user(alice.id) is None
        assert seen[0].get_event_data('user_id') == alice.id

    @pytest.mark.asyncio
    async def test_channel_delete_event_for_other_channel(self, ticket_service, registry, guild):
        await ticket_service.create_ticket(guild, make_member('alice'))

        await ticket_service.on_guild_channel_delete(make_channel('general', guild))

        assert registry.count() == 1


class TestTicketMembership:
    """Test adding and removing members"""

    @pytest.mark.asyncio
    async def test_staff_adds_member(self, ticket_service, guild):
        channel = make_channel('ticket-alice', guild)
        staff = make_member('staff', manage_guild=True)
        bob = make_member('bob')

        result = await ticket_service.add_member(channel, staff, bob)

        assert result.outcome == TicketOutcome.SUCCESS
        args, kwargs = channel.set_permissions.call_args
        assert args == (bob,)
        assert kwargs['view_channel'] is True
        assert kwargs['send_messages'] is True
        assert kwargs['read_message_history'] is True
        assert ticket_service.membership_message(result, bob, added=True) == f"Added {bob.mention} to the ticket!"

    @pytest.mark.asyncio
    async def test_staff_role_removes_member(self, ticket_service, state_manager, guild):
        state_manager.settings.ticket.staff_role_ids.add(77)
        channel = make_channel('ticket-alice', guild)
        staff = make_member('helper', role_ids=[77])
        bob = make_member('bob')

        result = await ticket_service.remove_member(channel, staff, bob)

        assert result.outcome == TicketOutcome.SUCCESS
        kwargs = channel.set_permissions.call_args.kwargs
        assert kwargs['view_channel'] is False
        assert kwargs['send_messages'] is False
        assert ticket_service.membership_message(result, bob, added=False) == f"Removed {bob.mention} from the ticket!"

    @pytest.mark.asyncio
    async def test_non_staff_cannot_add(self, ticket_service, guild):
        channel = make_channel('ticket-alice', guild)

        result = await ticket_service.add_member(channel, make_member('alice'), make_member('bob'))

        assert result.outcome == TicketOutcome.MISSING_PERMISSIONS
        channel.set_permissions.assert_not_awaited()
        assert ticket_service.membership_message(result, None, added=True) == \
            "You need staff permissions to add users to tickets!"

    @pytest.mark.asyncio
    async def test_membership_outside_ticket(self, ticket_service, guild):
        general = make_channel('general', guild)

        result = await ticket_service.add_member(general, make_member('staff', manage_guild=True), make_member('bob'))

        assert result.outcome == TicketOutcome.NOT_A_TICKET

    @pytest.mark.asyncio
    async def test_permission_error(self, ticket_service, guild):
        channel = make_channel('ticket-alice', guild)
        channel.set_permissions = AsyncMock(side_effect=RuntimeError("Forbidden"))

        result = await ticket_service.add_member(channel, make_member('staff', manage_guild=True), make_member('bob'))

        assert result.outcome == TicketOutcome.ERROR
        assert ticket_service.membership_message(result, None, added=True) == "Failed to add user to ticket."


class TestTicketViews:
    """Test the panel and close buttons"""

    @pytest.mark.asyncio
    async def test_views_are_persistent(self, ticket_service):
        panel = TicketPanelView(ticket_service)
        control = TicketControlView(ticket_service)

        assert panel.timeout is None
        assert control.timeout is None
        assert panel.is_persistent()
        assert control.is_persistent()
        assert [item.custom_id for item in panel.children] == ['create_ticket']
        assert [item.custom_id for item in control.children] == ['close_ticket']

    @pytest.mark.asyncio
    async def test_panel_button_opens_ticket(self, ticket_service, registry, guild):
        view = TicketPanelView(ticket_service)
        interaction = make_interaction(make_member('alice'), guild)

        await view.open_ticket.callback(interaction)

        interaction.response.defer.assert_awaited_once_with(ephemeral=True, thinking=True)
        assert registry.count() == 1
        message = interaction.followup.send.call_args.args[0]
        assert message.startswith("Your ticket has been created: <#")

    @pytest.mark.asyncio
    async def test_close_button(self, ticket_service, guild):
        alice = make_member('alice')
        channel = (await ticket_service.create_ticket(guild, alice)).channel
        view = TicketControlView(ticket_service)
        interaction = make_interaction(alice, guild, channel)

        await view.close_ticket.callback(interaction)

        interaction.response.send_message.assert_awaited_once_with(
            "Ticket will be closed in 0.01 seconds...", ephemeral=True
        )
        embed = channel.send.call_args.kwargs['embed']
        assert embed.fields[0].value == 'Closed via button'

    @pytest.mark.asyncio
    async def test_button_error_is_reported(self, ticket_service, guild):
        view = TicketPanelView(ticket_service)
        interaction = make_interaction(make_member('alice'), guild)
        interaction.response.is_done = Mock(return_value=True)

        await view.on_error(interaction, RuntimeError("boom"), view.open_ticket)

        interaction.followup.send.assert_awaited_once_with(
            "❌ An error occurred while processing your request. Please try again.", ephemeral=True
        )


class TestTicketScenario:

    @pytest.mark.asyncio
    async def test_open_duplicate_then_staff_close(self, ticket_service, registry, guild):
        alice = make_member('alice')
        staff = make_member('staff', manage_guild=True)

        opened = await ticket_service.create_ticket(guild, alice)
        assert opened.ok
        assert registry.count() == 1

        duplicate = await ticket_service.create_ticket(guild, alice)
        assert duplicate.outcome == TicketOutcome.ALREADY_OPEN
        assert registry.count() == 1

        closed = await ticket_service.close_ticket(opened.channel, staff, "resolved")
        assert closed.ok
        assert registry.count() == 0
        assert ticket_service.pending_deletions() == {opened.channel.id}

        await ticket_service._pending_deletions[opened.channel.id]
        opened.channel.delete.assert_awaited_once()
