import logging

from application.events import default_dispatcher, register_audit_handlers
from application.instrumentation import set_slow_operation_threshold
from infrastructure.config import load_settings
from infrastructure.logging_config import setup_logging
from infrastructure.repositories import build_repositories
from interfaces.telegram.handlers import create_telegram_bot

logger = logging.getLogger(__name__)


def main() -> None:
    settings = load_settings()
    if not settings.telegram_token:
        raise RuntimeError("TELEGRAM_TOKEN environment variable is not set.")

    setup_logging(settings.log_level, settings.log_file)
    set_slow_operation_threshold(settings.slow_operation_ms)
    register_audit_handlers(default_dispatcher)

    repos = build_repositories(settings)

    bot = create_telegram_bot(settings.telegram_token, repos)
    logger.info("Starting Telegram bot")
    bot.infinity_polling()


if __name__ == "__main__":
    main()
