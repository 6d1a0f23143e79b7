"""
Shared fixtures for the Hearth test suite

Discord objects are stood in for by Mock/AsyncMock instances carrying
just the attributes the services read.
"""

import asyncio
import itertools
import pytest
from unittest.mock import Mock, AsyncMock

from core import (
    ServiceRegistry, ServiceLifetime, StateManager, EventBus, HearthConfiguration,
    TicketRegistry, SuggestionTally
)
from services.bot_application import create_ticket_registry
from services.ui_service import UIService

TEST_TOKEN = 'x' * 60

_ids = itertools.count(10_000)

def make_permissions(**flags):
    permissions = Mock()
    for name in ('manage_guild', 'manage_roles', 'manage_channels', 'view_channel',
                 'send_messages', 'embed_links', 'read_message_history', 'add_reactions'):
        setattr(permissions, name, flags.get(name, False))
    return permissions

def make_member(name='alice', member_id=None, manage_guild=False, role_ids=(), bot=False):
    member = Mock()
    member.id = member_id or next(_ids)
    member.name = name
    member.mention = f"<@{member.id}>"
    member.bot = bot
    member.guild_permissions = make_permissions(manage_guild=manage_guild)
    member.roles = []
    for role_id in role_ids:
        role = Mock()
        role.id = role_id
        member.roles.append(role)
    member.display_avatar.url = f"https://cdn.example/{member.id}.png"
    member.display_avatar.with_size.return_value.url = f"https://cdn.example/{member.id}.png?size=256"
    member.add_roles = AsyncMock()
    return member

def make_channel(name, guild=None, channel_id=None):
    channel = Mock()
    channel.id = channel_id or next(_ids)
    channel.name = name
    channel.mention = f"<#{channel.id}>"
    channel.guild = guild
    channel.send = AsyncMock()
    channel.delete = AsyncMock()
    channel.set_permissions = AsyncMock()
    channel.permissions_for = Mock(return_value=make_permissions(
        view_channel=True, send_messages=True, embed_links=True,
        read_message_history=True, add_reactions=True
    ))
    return channel

def make_guild(name='Test Guild'):
    guild = Mock()
    guild.id = next(_ids)
    guild.name = name
    guild.member_count = 42
    guild.default_role = Mock()
    guild.default_role.id = guild.id
    guild.me = make_member('Hearth', bot=True)
    guild.created_channels = []
    guild.channels_by_id = {}

    async def create_text_channel(name, **kwargs):
        # Yield once so concurrent creations interleave like real API calls
        await asyncio.sleep(0)
        channel = make_channel(name, guild)
        channel.delete = AsyncMock(side_effect=lambda **kwargs: guild.channels_by_id.pop(channel.id, None))
        guild.created_channels.append(channel)
        guild.channels_by_id[channel.id] = channel
        return channel

    guild.create_text_channel = AsyncMock(side_effect=create_text_channel)
    guild.get_channel = Mock(side_effect=lambda channel_id: guild.channels_by_id.get(channel_id))
    guild.get_role = Mock(return_value=None)
    return guild

def make_interaction(user=None, guild=None, channel=None):
    interaction = Mock()
    interaction.user = user or make_member()
    interaction.guild = guild
    interaction.guild_id = guild.id if guild else None
    interaction.channel = channel
    interaction.client.user = make_member('Hearth', member_id=1, bot=True)
    interaction.response.send_message = AsyncMock()
    interaction.response.defer = AsyncMock()
    interaction.response.is_done = Mock(return_value=False)
    interaction.followup.send = AsyncMock()
    interaction.edit_original_response = AsyncMock()
    return interaction

@pytest.fixture
def config():
    return HearthConfiguration(bot_token=TEST_TOKEN, ticket_close_delay=0.01)

@pytest.fixture
def service_registry(config):
    """Registry with the core services the business services depend on"""
    registry = ServiceRegistry()
    registry.register_instance(ServiceRegistry, registry)
    registry.register_instance(HearthConfiguration, config)
    registry.register(StateManager, lifetime=ServiceLifetime.SINGLETON)
    registry.register(EventBus, lifetime=ServiceLifetime.SINGLETON)
    registry.register(TicketRegistry, factory=create_ticket_registry, lifetime=ServiceLifetime.SINGLETON)
    registry.register(SuggestionTally, lifetime=ServiceLifetime.SINGLETON)
    registry.register(UIService, lifetime=ServiceLifetime.SINGLETON)
    return registry

@pytest.fixture
def state_manager(service_registry):
    return service_registry.get(StateManager)

@pytest.fixture
def guild():
    return make_guild()
