"""
Stock Service for Hearth
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional
import aiohttp
import discord

from core import ServiceRegistry, HearthConfiguration
from hearth_errors import UpstreamError

logger = logging.getLogger('services.stock_service')

# (response key, field title, items shown)
STOCK_SECTIONS = (
    ('gear_stock', '**GEAR STOCK**', 11),
    ('seed_stock', '**SEEDS STOCK**', 11),
    ('egg_stock', '**EGG STOCK**', 4),
    ('cosmetic_stock', '**COSMETICS STOCK**', 11),
    ('eventshop_stock', '**EVENT STOCK**', 4),
)

class StockService:
    """Fetches the shop stock feed and renders it as an embed"""

    def __init__(self, service_registry: ServiceRegistry):
        self.service_registry = service_registry

        config = service_registry.get(HearthConfiguration)
        self.api_url = config.stock_api_url
        self.timeout = aiohttp.ClientTimeout(total=config.http_timeout)

        self.session: Optional[aiohttp.ClientSession] = None

        logger.info("StockService initialized")

    async def fetch_stock(self) -> Dict[str, Any]:
        """
        GET the stock feed.

        Raises:
            UpstreamError: On transport errors, a non-2xx status or a non-JSON body
        """
        try:
            if self.session is None or self.session.closed:
                self.session = aiohttp.ClientSession(timeout=self.timeout)

            async with self.session.get(self.api_url) as response:
                if not 200 <= response.status < 300:
                    raise UpstreamError(f"Stock endpoint returned HTTP {response.status}")
                data = await response.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            raise UpstreamError(f"Stock request failed: {e}") from e

        if not isinstance(data, dict):
            raise UpstreamError("Stock endpoint returned an unexpected payload")

        logger.info("Stock data fetched successfully")
        return data

    def build_stock_embed(self, stock: Dict[str, Any], bot_user=None) -> discord.Embed:
        embed = discord.Embed(color=0x0099ff, timestamp=datetime.now(timezone.utc))
        if bot_user is not None:
            embed.set_author(name=bot_user.name, icon_url=bot_user.display_avatar.url)
            embed.set_thumbnail(url=bot_user.display_avatar.url)

        for key, title, shown in STOCK_SECTIONS:
            items = stock.get(key) or []
            if not items:
                continue
            lines = [f"{item.get('item_id')} x{item.get('quantity')}" for item in items[:shown]]
            embed.add_field(name=title, value='\n'.join(lines) or 'No items', inline=False)
        return embed

    async def close(self):
        if self.session and not self.session.closed:
            await self.session.close()
