"""
Hearth - Discord community bot

Usage:
    python bot.py

Environment Variables:
    BOT_TOKEN - Discord bot token (required)
    HEARTH_ENVIRONMENT - development, staging, production or testing (default: development)
    LOG_LEVEL - Logging level (default: INFO)
    LOG_FILE_PATH - Path of the rotating log file (default: ./log.txt)
    LOG_WEBHOOK_URL - Discord webhook that receives a copy of the log (optional)
"""

import logging
import sys

logger = logging.getLogger('hearth')

def main():
    """Run Hearth until interrupted; exit with status 1 if it cannot start"""
    # Console output until the application adds its file and webhook handlers
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )

    try:
        from services.bot_application import create_application
    except ImportError as e:
        logger.error(f"Failed to import required modules: {e}")
        logger.error("Install Hearth and its dependencies with: pip install -e .")
        sys.exit(1)

    logger.info("Starting Hearth...")
    try:
        create_application().run_sync()
    except Exception as e:
        logger.error(f"Application failed to start: {e}")
        sys.exit(1)

if __name__ == "__main__":
    main()
