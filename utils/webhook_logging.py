"""
Discord webhook log handler

Mirrors log records into a Discord channel through an incoming webhook.
Delivery is fire-and-forget on the running event loop; a failed delivery
is reported on stderr and never raised into the code that logged.
"""

import asyncio
import logging
import sys
from typing import Optional, Set

import aiohttp

from .formatting import truncate, DISCORD_MESSAGE_LIMIT

# Records from these namespaces are never mirrored, so delivery cannot feed itself
IGNORED_LOGGERS = ('aiohttp', 'discord.http', 'discord.gateway', 'asyncio')

class WebhookLogHandler(logging.Handler):

    def __init__(self, webhook_url: str, username: str = "Bot Logger",
                 level: int = logging.INFO, timeout: float = 10):
        super().__init__(level)
        self.webhook_url = webhook_url
        self.username = username
        self.timeout = aiohttp.ClientTimeout(total=timeout)
        self._session: Optional[aiohttp.ClientSession] = None
        self._tasks: Set[asyncio.Task] = set()
        self.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(message)s",
                                            datefmt="%Y-%m-%d %H:%M:%S"))

    def filter(self, record: logging.LogRecord) -> bool:
        if record.name.startswith(IGNORED_LOGGERS):
            return False
        return super().filter(record)

    def build_payload(self, record: logging.LogRecord) -> dict:
        # 8 characters are taken by the code fence
        content = truncate(self.format(record), DISCORD_MESSAGE_LIMIT - 8)
        return {
            'content': f"```\n{content}\n```",
            'username': self.username
        }

    def emit(self, record: logging.LogRecord) -> None:
        if not self.webhook_url:
            return

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # Outside the event loop the console and file handlers still have the record
            return

        payload = self.build_payload(record)
        task = loop.create_task(self._post(payload))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _post(self, payload: dict) -> None:
        try:
            if self._session is None or self._session.closed:
                self._session = aiohttp.ClientSession(timeout=self.timeout)

            async with self._session.post(self.webhook_url, json=payload) as response:
                if response.status >= 400:
                    sys.stderr.write(f"Webhook logging error: HTTP {response.status}\n")
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            sys.stderr.write(f"Webhook logging error: {e}\n")

    async def aclose(self) -> None:
        """Wait for in-flight deliveries and release the HTTP session"""
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
        if self._session and not self._session.closed:
            await self._session.close()
