"""
Hearth Application
"""

import logging
import logging.handlers
import asyncio
from pathlib import Path
from typing import Dict, Any, Optional
import discord
from discord.ext import commands

from core import (
    ServiceRegistry, ServiceLifetime, StateManager, EventBus, ConfigurationManager,
    HearthConfiguration, TicketRegistry, SuggestionTally
)
from utils import WebhookLogHandler
from ui.views import TicketPanelView, TicketControlView, SuggestionVoteButton
from .error_service import ErrorService
from .ui_service import UIService
from .ticket_service import TicketService
from .suggestion_service import SuggestionService
from .member_service import MemberService
from .chatbot_service import ChatbotService
from .stock_service import StockService
from .activity_service import ActivityService
from .command_service import CommandService

logger = logging.getLogger('services.hearth_application')

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

def create_ticket_registry(state_manager: StateManager) -> TicketRegistry:
    """The open-ticket limit follows the live ticket settings"""
    return TicketRegistry(limit=lambda: state_manager.settings.ticket.limit)

class HearthApplication:
    """
    Main Hearth application that orchestrates all services.

    Keeps discord.py bot management separate from the ticket, suggestion
    and member logic living in the services.
    """

    def __init__(self, service_registry: Optional[ServiceRegistry] = None,
                 config_manager: Optional[ConfigurationManager] = None):
        self.service_registry = service_registry or ServiceRegistry()
        self.config_manager = config_manager or ConfigurationManager()
        self.config: Optional[HearthConfiguration] = None
        self.bot: Optional[commands.Bot] = None
        self.webhook_handler: Optional[WebhookLogHandler] = None
        self._startup_complete = False

        logger.info("HearthApplication initialized")

    async def initialize(self) -> None:
        """Initialize all services and register them with the service registry"""
        try:
            logger.info("Initializing HearthApplication services...")

            self.config = self.config_manager.load_configuration()

            self._setup_logging()
            self._register_core_services()
            self._register_business_services()
            self._initialize_discord_bot()

            logger.info("HearthApplication services initialized successfully")

        except Exception as e:
            logger.error(f"Failed to initialize HearthApplication: {e}")
            raise

    async def run(self) -> None:
        """Run the bot application"""
        try:
            await self.initialize()

            asyncio.get_running_loop().set_exception_handler(self._handle_loop_exception)

            logger.info("Starting Discord bot...")
            async with self.bot:
                await self.bot.start(self.config.bot_token)

        except Exception as e:
            logger.error(f"Failed to run HearthApplication: {e}")
            raise
        finally:
            await self.shutdown()

    def run_sync(self) -> None:
        """Run the bot application synchronously (for main entry point)"""
        try:
            asyncio.run(self.run())
        except KeyboardInterrupt:
            logger.info("Bot shutdown requested")

    async def shutdown(self) -> None:
        """Gracefully shutdown the application"""
        logger.info("Shutting down HearthApplication...")

        ticket_service = self.service_registry.get_optional(TicketService)
        if ticket_service:
            await ticket_service.shutdown()

        for service_type in (ChatbotService, StockService):
            service = self.service_registry.get_optional(service_type)
            if service:
                await service.close()

        if self.bot and not self.bot.is_closed():
            await self.bot.close()

        if self.webhook_handler:
            logging.getLogger().removeHandler(self.webhook_handler)
            await self.webhook_handler.aclose()
            self.webhook_handler = None

        logger.info("HearthApplication shutdown complete")

    def _register_core_services(self) -> None:
        """Register core infrastructure services"""
        # Register ServiceRegistry itself so it can be retrieved by other services
        self.service_registry.register_instance(ServiceRegistry, self.service_registry)
        self.service_registry.register_instance(ConfigurationManager, self.config_manager)
        self.service_registry.register_instance(HearthConfiguration, self.config)

        self.service_registry.register(StateManager, lifetime=ServiceLifetime.SINGLETON)
        self.service_registry.register(EventBus, lifetime=ServiceLifetime.SINGLETON)
        self.service_registry.register(TicketRegistry, factory=create_ticket_registry,
                                       lifetime=ServiceLifetime.SINGLETON)
        self.service_registry.register(SuggestionTally, lifetime=ServiceLifetime.SINGLETON)

        # Seed the ticket settings from configuration
        state_manager = self.service_registry.get(StateManager)
        state_manager.update_feature('ticket', {'limit': self.config.ticket_limit})

        logger.debug("Core services registered")

    def _register_business_services(self) -> None:
        """Register business logic services"""
        for service_type in (ActivityService, ErrorService, UIService, TicketService, SuggestionService,
                             MemberService, ChatbotService, StockService, CommandService):
            self.service_registry.register(service_type, lifetime=ServiceLifetime.SINGLETON)

        # Subscribes to the event bus on construction, so build it before anything publishes
        self.service_registry.get(ActivityService)

        logger.debug("Business services registered")

    def _initialize_discord_bot(self) -> None:
        """Initialize Discord bot with proper configuration"""
        intents = discord.Intents.default()
        intents.members = True
        intents.message_content = True

        self.bot = commands.Bot(
            command_prefix=self.config.command_prefix,
            case_insensitive=True,
            intents=intents
        )

        self.service_registry.register_instance(commands.Bot, self.bot)
        self._setup_bot_events()

        logger.info("Discord bot initialized")

    def _setup_bot_events(self) -> None:
        """Set up Discord bot event handlers"""
        if not self.bot:
            raise ValueError("Bot instance not initialized")

        @self.bot.event
        async def on_ready():
            """Handle bot ready event"""
            logger.info(f"Logged in as {self.bot.user}!")

            # on_ready fires again after every reconnect
            if self._startup_complete:
                return

            try:
                command_service = self.service_registry.get(CommandService)
                await command_service.register_commands(self.bot)

                self._register_persistent_components()

                logger.info("Syncing slash commands with Discord...")
                try:
                    synced = await self.bot.tree.sync()
                    logger.info(f"Successfully synced {len(synced)} slash commands")
                except discord.HTTPException as sync_error:
                    logger.error(f"Failed to sync commands: {sync_error}")

                self._startup_complete = True
                logger.info(f"Bot ready: {self.bot.user} in {len(self.bot.guilds)} guild(s)")

            except Exception as e:
                logger.error(f"Error in on_ready: {e}")

        @self.bot.tree.error
        async def on_command_error(interaction: discord.Interaction, error: Exception):
            """Handle command errors through ErrorService"""
            error_service = self.service_registry.get(ErrorService)
            await error_service.handle_command_error(interaction, error)

    def _register_persistent_components(self) -> None:
        """Route clicks on buttons posted before a restart"""
        ticket_service = self.service_registry.get(TicketService)
        self.bot.add_view(TicketPanelView(ticket_service))
        self.bot.add_view(TicketControlView(ticket_service))

        # Vote buttons are matched by custom id and resolve the service from the client
        self.bot.suggestion_service = self.service_registry.get(SuggestionService)
        self.bot.add_dynamic_items(SuggestionVoteButton)

    def _setup_logging(self) -> None:
        """Console, rotating file and optional webhook handlers on the root logger"""
        root_logger = logging.getLogger()
        root_logger.setLevel(self.config.log_level)

        # Keep discord.py's transport chatter at INFO
        logging.getLogger('discord.http').setLevel(logging.INFO)
        logging.getLogger('discord.gateway').setLevel(logging.INFO)

        formatter = logging.Formatter(LOG_FORMAT)

        if not any(isinstance(h, logging.StreamHandler) and not isinstance(h, logging.FileHandler)
                   for h in root_logger.handlers):
            console_handler = logging.StreamHandler()
            console_handler.setFormatter(formatter)
            root_logger.addHandler(console_handler)

        if self.config.log_file_path:
            log_path = Path(self.config.log_file_path)
            log_path.parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.handlers.RotatingFileHandler(
                filename=log_path,
                encoding='utf-8',
                maxBytes=self.config.log_max_bytes,
                backupCount=self.config.log_backup_count
            )
            file_handler.setFormatter(formatter)
            root_logger.addHandler(file_handler)

        if self.config.log_webhook_url:
            self.webhook_handler = WebhookLogHandler(
                self.config.log_webhook_url,
                timeout=self.config.http_timeout
            )
            root_logger.addHandler(self.webhook_handler)

        logger.debug("Logging configured")

    def _handle_loop_exception(self, loop: asyncio.AbstractEventLoop, context: Dict[str, Any]) -> None:
        error = context.get('exception')
        message = context.get('message', 'Unhandled exception in event loop')
        if error is not None:
            logger.error(f"Unhandled exception: {message}", exc_info=error)
        else:
            logger.error(f"Unhandled event loop error: {message}")

    def get_service_stats(self) -> Dict[str, Any]:
        """Get statistics about all registered services"""
        registered_services = self.service_registry.get_registered_services()

        service_stats = {}
        for service_type, service_def in registered_services.items():
            service_stats[service_type.__name__] = {
                'lifetime': service_def.lifetime.value,
                'has_instance': service_def.instance is not None
            }

        return {
            'total_services': len(registered_services),
            'startup_complete': self._startup_complete,
            'bot_ready': self.bot is not None and self.bot.is_ready(),
            'services': service_stats
        }


# Factory function for creating the application
def create_application() -> HearthApplication:
    """Create and configure a new HearthApplication instance"""
    service_registry = ServiceRegistry()
    return HearthApplication(service_registry)
