"""
Chatbot Service for Hearth
"""

import asyncio
import json
import logging
import re
from typing import Any, Dict, List, Optional
import aiohttp
import discord

from core import ServiceRegistry, StateManager, HearthConfiguration
from hearth_errors import UpstreamError
from utils import truncate

logger = logging.getLogger('services.chatbot_service')

ROLE_PREFIXES = {
    'system': 'System',
    'user': 'User',
    'assistant': 'Assistant'
}

def sanitize_name(name: str) -> str:
    return re.sub(r'[^\w]', '', re.sub(r'\s+', '_', name))

def is_command_like(content: str) -> bool:
    return content.startswith('!') or content.startswith('/')

class ChatbotService:
    """
    Conversational replies in the configured chatbot channel.

    Each reply is built from the channel's recent history: the bot's own
    messages and those of the author being answered. The conversation is
    flattened into one prompt for the completion endpoint.
    """

    def __init__(self, service_registry: ServiceRegistry):
        self.service_registry = service_registry
        self.state_manager = service_registry.get(StateManager)

        config = service_registry.get(HearthConfiguration)
        self.api_url = config.chatbot_api_url
        self.model = config.chatbot_model
        self.history_limit = config.chatbot_history_limit
        self.system_prompt = config.chatbot_system_prompt
        self.timeout = aiohttp.ClientTimeout(total=config.http_timeout)

        self.session: Optional[aiohttp.ClientSession] = None

        logger.info("ChatbotService initialized")

    def should_respond(self, message: discord.Message) -> bool:
        settings = self.state_manager.settings.chatbot
        if message.author.bot:
            return False
        if not settings.enabled or not settings.channel_id:
            return False
        if message.channel.id != settings.channel_id:
            return False
        return not is_command_like(message.content)

    async def on_message(self, message: discord.Message):
        if not self.should_respond(message):
            return

        try:
            async with message.channel.typing():
                history = [m async for m in message.channel.history(limit=self.history_limit)]
                history.reverse()

                conversation = self.build_conversation(history, message.author, message.guild.me)
                result = await self.request_completion(self.flatten_prompt(conversation))
                reply = truncate(self.extract_reply(result))

            await message.reply(reply)
            logger.info(f"Chatbot responded to {message.author} in {message.channel.name}")
        except Exception as e:
            logger.error(f"Chatbot error: {e}")
            await message.reply("Sorry, I encountered an error while processing your message.")

    def build_conversation(self, history: List[discord.Message], author, bot_user) -> List[Dict[str, str]]:
        """Oldest-first history to role-tagged entries, after the system prompt"""
        conversation = [{'role': 'system', 'content': self.system_prompt}]

        for msg in history:
            if is_command_like(msg.content):
                continue
            if msg.author.id == bot_user.id:
                conversation.append({
                    'role': 'assistant',
                    'content': msg.content,
                    'name': sanitize_name(msg.author.name)
                })
            elif msg.author.id == author.id:
                conversation.append({
                    'role': 'user',
                    'content': msg.content,
                    'name': sanitize_name(author.name)
                })
        return conversation

    @staticmethod
    def flatten_prompt(conversation: List[Dict[str, str]]) -> str:
        lines = []
        for entry in conversation:
            prefix = ROLE_PREFIXES.get(entry['role'])
            lines.append(f"{prefix}: {entry['content']}" if prefix else entry['content'])
        return '\n'.join(lines)

    @staticmethod
    def extract_reply(result: Any) -> str:
        """Accept a plain string, an OpenAI-style choices list or a 'message' field"""
        if isinstance(result, str):
            return result
        if isinstance(result, dict):
            choices = result.get('choices')
            if choices and isinstance(choices[0], dict) and choices[0].get('message'):
                return choices[0]['message'].get('content', '')
            if result.get('message'):
                return result['message']
        return "Sorry, I received an unexpected response format."

    async def request_completion(self, prompt: str) -> Any:
        """
        POST the flattened prompt to the completion endpoint.

        Raises:
            UpstreamError: On transport errors or a non-2xx status
        """
        payload = {
            'messages': [{'role': 'user', 'content': prompt}],
            'model': self.model
        }

        try:
            if self.session is None or self.session.closed:
                self.session = aiohttp.ClientSession(timeout=self.timeout)

            async with self.session.post(self.api_url, json=payload) as response:
                body = await response.text()
                if not 200 <= response.status < 300:
                    raise UpstreamError(f"Completion endpoint returned HTTP {response.status}")
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise UpstreamError(f"Completion request failed: {e}") from e

        try:
            return json.loads(body)
        except ValueError:
            return body

    async def close(self):
        if self.session and not self.session.closed:
            await self.session.close()
