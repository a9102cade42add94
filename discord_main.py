import logging

from application.events import default_dispatcher, register_audit_handlers
from application.instrumentation import set_slow_operation_threshold
from infrastructure.config import load_settings
from infrastructure.logging_config import setup_logging
from infrastructure.repositories import build_repositories
from interfaces.discord.handlers import create_discord_bot

logger = logging.getLogger(__name__)


def main() -> None:
    settings = load_settings()
    if not settings.discord_token:
        raise RuntimeError("DISCORD_TOKEN environment variable is not set.")

    setup_logging(settings.log_level, settings.log_file)
    set_slow_operation_threshold(settings.slow_operation_ms)
    register_audit_handlers(default_dispatcher)

    repos = build_repositories(settings)

    bot = create_discord_bot(repos)
    logger.info("Starting Discord bot")
    bot.run(settings.discord_token, log_handler=None)


if __name__ == "__main__":
    main()
