import sys

from .bot_handler import BotHandler
from .config import ConfigError, load_settings
from .log import Logger, configure_logging


def main() -> None:
    configure_logging()
    logger = Logger()
    try:
        settings = load_settings()
    except ConfigError as exc:
        logger.error("%s", exc)
        sys.exit(1)
    bot = BotHandler(settings, logger)
    bot.run()


if __name__ == "__main__":
    main()
