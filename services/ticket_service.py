"""
Ticket Service for Hearth
"""

import asyncio
import logging
from typing import Dict, Set, Optional
import discord

from core import (
    ServiceRegistry, StateManager, EventBus, TicketEvent, HearthConfiguration,
    TicketRegistry, TicketOutcome, TicketResult
)
from core.state_manager import TicketSettings
from hearth_errors import TicketAlreadyOpen, TicketLimitReached, TicketNotFound
from .ui_service import UIService
from ui.views.ticket_views import TicketControlView
from utils import has_staff_permissions

logger = logging.getLogger('services.ticket_service')

class TicketService:
    """
    Support ticket lifecycle: NONE -> OPEN -> CLOSING -> deleted.

    The registry record is dropped when a ticket enters CLOSING; the
    channel itself is deleted by a per-channel task after the grace delay.
    Every check-and-claim runs before the first await of an operation, so
    interleaved handlers cannot both pass the same check.
    """

    def __init__(self, service_registry: ServiceRegistry):
        self.service_registry = service_registry
        self.state_manager = service_registry.get(StateManager)
        self.event_bus = service_registry.get(EventBus)
        self.registry = service_registry.get(TicketRegistry)
        self.ui_service = service_registry.get(UIService)

        config = service_registry.get(HearthConfiguration)
        self.close_delay = config.ticket_close_delay
        self.channel_prefix = config.ticket_channel_prefix

        self._pending_deletions: Dict[int, asyncio.Task] = {}
        self._closing: Set[int] = set()

        logger.info("TicketService initialized")

    @property
    def settings(self) -> TicketSettings:
        return self.state_manager.settings.ticket

    def is_ticket_channel(self, channel) -> bool:
        """
        Tracked tickets and channels following the naming convention are
        both recognized, unless the channel is already being closed.
        """
        if channel is None or channel.id in self._closing:
            return False
        if self.registry.is_tracked(channel.id):
            return True
        return (getattr(channel, 'name', None) or '').startswith(self.channel_prefix)

    def is_closing(self, channel_id: int) -> bool:
        return channel_id in self._closing

    def build_overwrites(self, guild, requester) -> Dict[object, discord.PermissionOverwrite]:
        return {
            guild.default_role: discord.PermissionOverwrite(view_channel=False),
            requester: discord.PermissionOverwrite(
                view_channel=True,
                send_messages=True,
                read_message_history=True
            ),
            guild.me: discord.PermissionOverwrite(
                view_channel=True,
                send_messages=True,
                read_message_history=True,
                manage_channels=True
            )
        }

    async def create_ticket(self, guild, requester) -> TicketResult:
        """
        Open a ticket channel for `requester`.

        Duplicate and capacity checks happen before anything is provisioned
        and again, atomically, when the new channel is registered. A channel
        that loses that second check is deleted again.
        """
        existing = self.registry.find_open_ticket_for_user(requester.id)
        if existing is not None and guild.get_channel(existing.channel_id) is None:
            logger.warning(f"Ticket channel {existing.channel_id} of {requester} no longer exists, untracking it")
            self.registry.unregister(existing.channel_id)
            existing = None

        if existing is not None:
            return TicketResult(TicketOutcome.ALREADY_OPEN, ticket=existing)

        if self.registry.count() >= self.registry.limit:
            return TicketResult(TicketOutcome.LIMIT_REACHED)

        category = None
        if self.settings.category_id:
            category = guild.get_channel(self.settings.category_id)
            if not isinstance(category, discord.CategoryChannel):
                logger.warning(f"Ticket category {self.settings.category_id} not found, creating ticket without one")
                category = None

        try:
            channel = await guild.create_text_channel(
                name=f"{self.channel_prefix}{requester.name}",
                category=category,
                overwrites=self.build_overwrites(guild, requester),
                reason=f"Support ticket for {requester}"
            )
        except Exception as e:
            logger.error(f"Error creating ticket channel for {requester}: {e}")
            return TicketResult(TicketOutcome.ERROR, error=str(e))

        try:
            ticket = self.registry.register(
                channel.id,
                requester.id,
                guild_id=guild.id,
                channel_name=channel.name
            )
        except (TicketAlreadyOpen, TicketLimitReached) as e:
            logger.warning(f"Discarding ticket channel {channel.name}: {e}")
            await self._discard_channel(channel)
            if isinstance(e, TicketAlreadyOpen):
                return TicketResult(TicketOutcome.ALREADY_OPEN, ticket=e.ticket)
            return TicketResult(TicketOutcome.LIMIT_REACHED)

        # The ticket exists from here on; a failed notice does not undo it
        try:
            await channel.send(
                content=requester.mention,
                embed=self.ui_service.ticket_intro_embed(requester),
                view=TicketControlView(self)
            )
            await self._send_log(guild, self.ui_service.ticket_created_log_embed(requester, channel))
        except Exception as e:
            logger.error(f"Error sending ticket notices in {channel.name}: {e}")

        logger.info(f"Ticket created by {requester}: {channel.name}")
        await self.event_bus.publish_async(
            TicketEvent('ticket_created', channel.id, requester.id, channel_name=channel.name)
        )
        return TicketResult(TicketOutcome.SUCCESS, ticket=ticket, channel=channel)

    async def close_ticket(self, channel, actor, reason: str = "No reason provided") -> TicketResult:
        """
        Close a ticket: notify, log, untrack and schedule deletion.

        Never raises; collaborator failures come back as ERROR and leave
        the ticket open.
        """
        if not self.is_ticket_channel(channel):
            return TicketResult(TicketOutcome.NOT_A_TICKET, channel=channel)

        self._closing.add(channel.id)

        try:
            await channel.send(embed=self.ui_service.ticket_closed_embed(actor, reason))
            await self._send_log(channel.guild, self.ui_service.ticket_closed_log_embed(channel, actor, reason))
        except Exception as e:
            self._closing.discard(channel.id)
            logger.error(f"Error closing ticket {channel.name}: {e}")
            return TicketResult(TicketOutcome.ERROR, channel=channel, error=str(e))

        ticket = None
        try:
            ticket = self.registry.unregister(channel.id)
        except TicketNotFound:
            logger.debug(f"Closing untracked ticket channel {channel.name}")

        self.schedule_deletion(channel)

        logger.info(f"Ticket {channel.name} closed by {actor}: {reason}")
        await self.event_bus.publish_async(
            TicketEvent(
                'ticket_closed', channel.id, ticket.user_id if ticket else None,
                actor_id=actor.id, reason=reason
            )
        )
        return TicketResult(TicketOutcome.SUCCESS, ticket=ticket, channel=channel)

    async def add_member(self, channel, actor, user) -> TicketResult:
        return await self._set_member_access(channel, actor, user, allow=True)

    async def remove_member(self, channel, actor, user) -> TicketResult:
        return await self._set_member_access(channel, actor, user, allow=False)

    async def _set_member_access(self, channel, actor, user, allow: bool) -> TicketResult:
        if not self.is_ticket_channel(channel):
            return TicketResult(TicketOutcome.NOT_A_TICKET, channel=channel)

        if not has_staff_permissions(actor, self.settings.staff_role_ids):
            return TicketResult(TicketOutcome.MISSING_PERMISSIONS, channel=channel)

        try:
            await channel.set_permissions(
                user,
                view_channel=allow,
                send_messages=allow,
                read_message_history=allow,
                reason=f"Ticket member {'added' if allow else 'removed'} by {actor}"
            )
        except Exception as e:
            logger.error(f"Error updating {user} in ticket {channel.name}: {e}")
            return TicketResult(TicketOutcome.ERROR, channel=channel, error=str(e))

        logger.info(f"{actor} {'added' if allow else 'removed'} {user} {'to' if allow else 'from'} {channel.name}")
        await self.event_bus.publish_async(
            TicketEvent(
                'ticket_member_added' if allow else 'ticket_member_removed',
                channel.id, user.id, actor_id=actor.id
            )
        )
        return TicketResult(TicketOutcome.SUCCESS, ticket=self.registry.get(channel.id), channel=channel)

    async def on_guild_channel_delete(self, channel):
        """Stop tracking a ticket whose channel was deleted outside the close flow"""
        self.cancel_deletion(channel.id)
        try:
            ticket = self.registry.unregister(channel.id)
        except TicketNotFound:
            return

        logger.info(f"Ticket channel {channel.name} was deleted, no longer tracking it")
        await self.event_bus.publish_async(TicketEvent('ticket_channel_deleted', channel.id, ticket.user_id))

    def schedule_deletion(self, channel) -> asyncio.Task:
        """Delete `channel` after the close delay; one task per channel"""
        task = self._pending_deletions.get(channel.id)
        if task is not None and not task.done():
            return task

        task = asyncio.create_task(self._delete_after_delay(channel))
        self._pending_deletions[channel.id] = task
        # Runs however the task ends, including cancellation before its first step
        task.add_done_callback(lambda done: self._deletion_finished(channel.id, done))
        return task

    async def _delete_after_delay(self, channel):
        try:
            await asyncio.sleep(self.close_delay)
            await channel.delete(reason="Ticket closed")
            logger.info(f"Deleted ticket channel {channel.name}")
        except asyncio.CancelledError:
            logger.debug(f"Deletion of {channel.name} cancelled")
            raise
        except Exception as e:
            logger.error(f"Error deleting ticket channel {channel.name}: {e}")

    def _deletion_finished(self, channel_id: int, task: asyncio.Task):
        if self._pending_deletions.get(channel_id) is task:
            del self._pending_deletions[channel_id]
        self._closing.discard(channel_id)

    def cancel_deletion(self, channel_id: int) -> bool:
        task = self._pending_deletions.get(channel_id)
        if task is None or task.done():
            return False
        task.cancel()
        return True

    def pending_deletions(self) -> Set[int]:
        return set(self._pending_deletions)

    async def shutdown(self):
        """Cancel every scheduled deletion"""
        tasks = list(self._pending_deletions.values())
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        logger.info(f"TicketService shut down, {len(tasks)} pending deletion(s) cancelled")

    async def _send_log(self, guild, embed: discord.Embed) -> Optional[discord.Message]:
        if not self.settings.log_channel_id:
            return None

        log_channel = guild.get_channel(self.settings.log_channel_id)
        if log_channel is None:
            logger.warning(f"Ticket log channel {self.settings.log_channel_id} not found")
            return None
        return await log_channel.send(embed=embed)

    async def _discard_channel(self, channel):
        try:
            await channel.delete(reason="Ticket could not be registered")
        except Exception as e:
            logger.error(f"Error deleting orphaned ticket channel {channel.name}: {e}")

    # User-facing wording for results

    def creation_message(self, result: TicketResult) -> str:
        if result.outcome == TicketOutcome.SUCCESS:
            return f"Your ticket has been created: {result.channel.mention}"
        if result.outcome == TicketOutcome.ALREADY_OPEN:
            return f"You already have an open ticket: <#{result.ticket.channel_id}>"
        if result.outcome == TicketOutcome.LIMIT_REACHED:
            return "Maximum number of tickets reached. Please wait for existing tickets to be closed."
        return "An error occurred while creating your ticket. Please try again later."

    def closure_message(self, result: TicketResult, source: str = 'command') -> str:
        if result.outcome == TicketOutcome.SUCCESS:
            return f"Ticket will be closed in {self.close_delay:g} seconds..."
        if result.outcome == TicketOutcome.NOT_A_TICKET:
            return f"This {source} can only be used in ticket channels!"
        return "Failed to close ticket."

    def membership_message(self, result: TicketResult, user, added: bool) -> str:
        if result.outcome == TicketOutcome.SUCCESS:
            return f"Added {user.mention} to the ticket!" if added else f"Removed {user.mention} from the ticket!"
        if result.outcome == TicketOutcome.NOT_A_TICKET:
            return "This command can only be used in ticket channels!"
        if result.outcome == TicketOutcome.MISSING_PERMISSIONS:
            action = 'add users to' if added else 'remove users from'
            return f"You need staff permissions to {action} tickets!"
        return "Failed to add user to ticket." if added else "Failed to remove user from ticket."
