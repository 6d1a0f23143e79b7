"""
Autorole and welcome tests
"""

import pytest
from unittest.mock import Mock, AsyncMock

from conftest import make_member, make_channel, make_permissions
from services.member_service import MemberService


@pytest.fixture
def member_service(service_registry):
    return MemberService(service_registry)


@pytest.fixture
def newcomer(guild):
    member = make_member('newbie')
    member.guild = guild
    return member


def make_role(role_id=321, position=1, name='Members'):
    role = Mock()
    role.id = role_id
    role.position = position
    role.name = name
    return role


def allow_role_management(guild, top_position=10):
    guild.me.guild_permissions = make_permissions(manage_roles=True)
    guild.me.top_role.position = top_position


class TestAutorole:
    """Test role assignment on join"""

    @pytest.mark.asyncio
    async def test_assigns_role(self, member_service, state_manager, guild, newcomer):
        role = make_role()
        guild.get_role = Mock(return_value=role)
        allow_role_management(guild)
        state_manager.update_feature('autorole', {'enabled': True, 'role_id': role.id})

        assert await member_service.assign_autorole(newcomer)

        newcomer.add_roles.assert_awaited_once_with(role, reason="Autorole")

    @pytest.mark.asyncio
    async def test_disabled_does_nothing(self, member_service, guild, newcomer):
        assert not await member_service.assign_autorole(newcomer)
        newcomer.add_roles.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_deleted_role_disables_autorole(self, member_service, state_manager, guild, newcomer):
        state_manager.update_feature('autorole', {'enabled': True, 'role_id': 999})

        assert not await member_service.assign_autorole(newcomer)

        assert state_manager.settings.autorole.enabled is False
        assert state_manager.settings.autorole.role_id is None

    @pytest.mark.asyncio
    async def test_missing_manage_roles(self, member_service, state_manager, guild, newcomer):
        guild.get_role = Mock(return_value=make_role())
        state_manager.update_feature('autorole', {'enabled': True, 'role_id': 321})

        assert not await member_service.assign_autorole(newcomer)

        newcomer.add_roles.assert_not_awaited()
        assert state_manager.settings.autorole.enabled is True

    @pytest.mark.asyncio
    async def test_role_above_bot(self, member_service, state_manager, guild, newcomer):
        guild.get_role = Mock(return_value=make_role(position=10))
        allow_role_management(guild, top_position=10)
        state_manager.update_feature('autorole', {'enabled': True, 'role_id': 321})

        assert not await member_service.assign_autorole(newcomer)
        newcomer.add_roles.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_add_roles_failure_is_contained(self, member_service, state_manager, guild, newcomer):
        guild.get_role = Mock(return_value=make_role())
        allow_role_management(guild)
        state_manager.update_feature('autorole', {'enabled': True, 'role_id': 321})
        newcomer.add_roles = AsyncMock(side_effect=RuntimeError("Forbidden"))

        assert not await member_service.assign_autorole(newcomer)


class TestWelcome:
    """Test the welcome embed"""

    @pytest.fixture
    def welcome_channel(self, guild, state_manager):
        channel = make_channel('welcome', guild, channel_id=700)
        guild.channels_by_id[700] = channel
        state_manager.update_feature('welcome', {'enabled': True, 'channel_id': 700})
        return channel

    @pytest.mark.asyncio
    async def test_sends_welcome_embed(self, member_service, welcome_channel, guild, newcomer):
        assert await member_service.send_welcome(newcomer)

        embed = welcome_channel.send.call_args.kwargs['embed']
        assert embed.title == f"Welcome to {guild.name}!"
        assert embed.description == f"Welcome to {guild.name}! We're glad to have you here, {newcomer.mention}!"
        assert embed.color.value == 0x0099ff
        assert embed.thumbnail.url.endswith("?size=256")
        assert embed.footer.text == "Welcome to our community!"

    @pytest.mark.asyncio
    async def test_placeholders(self, member_service, state_manager, guild, newcomer):
        state_manager.settings.welcome.embed.description = "{username} is member #{membercount} of {server}, hi {user}"

        text = member_service.render_description(newcomer)

        assert text == f"newbie is member #42 of {guild.name}, hi {newcomer.mention}"

    @pytest.mark.asyncio
    async def test_customised_embed(self, member_service, state_manager, welcome_channel, newcomer):
        embed_settings = state_manager.settings.welcome.embed
        embed_settings.color = '#f0a'
        embed_settings.thumbnail = False
        embed_settings.footer = None
        embed_settings.image = 'https://example.com/banner.png'

        await member_service.send_welcome(newcomer)

        embed = welcome_channel.send.call_args.kwargs['embed']
        assert embed.color.value == 0xff00aa
        assert embed.thumbnail.url is None
        assert embed.footer.text is None
        assert embed.image.url == 'https://example.com/banner.png'

    def test_invalid_color_falls_back(self, member_service, state_manager, guild, newcomer):
        state_manager.settings.welcome.embed.color = 'blue'

        embed = member_service.build_welcome_embed(newcomer)

        assert embed.color.value == 0x0099ff

    @pytest.mark.asyncio
    async def test_deleted_channel_disables_welcome(self, member_service, state_manager, newcomer):
        state_manager.update_feature('welcome', {'enabled': True, 'channel_id': 404})

        assert not await member_service.send_welcome(newcomer)

        assert state_manager.settings.welcome.enabled is False
        assert state_manager.settings.welcome.channel_id is None

    @pytest.mark.asyncio
    async def test_missing_channel_permissions(self, member_service, welcome_channel, newcomer):
        welcome_channel.permissions_for = Mock(return_value=make_permissions(view_channel=True, send_messages=True))

        assert not await member_service.send_welcome(newcomer)
        welcome_channel.send.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_join_runs_autorole_then_welcome(self, member_service, state_manager, welcome_channel,
                                                   guild, newcomer):
        role = make_role()
        guild.get_role = Mock(return_value=role)
        allow_role_management(guild)
        state_manager.update_feature('autorole', {'enabled': True, 'role_id': role.id})

        await member_service.on_member_join(newcomer)

        newcomer.add_roles.assert_awaited_once()
        welcome_channel.send.assert_awaited_once()

    def test_hex_validation(self):
        assert MemberService.is_valid_hex('#0099ff')
        assert MemberService.is_valid_hex('#abc')
        assert not MemberService.is_valid_hex('0099ff')
        assert not MemberService.is_valid_hex('#12345')
        assert not MemberService.is_valid_hex('')
