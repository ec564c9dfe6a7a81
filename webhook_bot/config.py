"""Environment-driven configuration for the webhook bot."""
import logging
import os
from dataclasses import dataclass

logger = logging.getLogger(__name__)

_REQUIRED_ENV = ("TELEGRAM_BOT_TOKEN", "HOST_ADDRESS")


@dataclass(frozen=True)
class BotConfiguration:
    """Settings needed to build the webhook URL.

    Attributes:
        bot_token: Telegram bot token (from @BotFather).
        host_address: Public base address Telegram should post updates to,
            e.g. ``https://bot.example.com``.
    """

    bot_token: str
    host_address: str

    @classmethod
    def from_env(cls) -> "BotConfiguration":
        """Read settings from the environment.

        Raises:
            RuntimeError: If a required variable is missing or empty.
        """
        missing = [key for key in _REQUIRED_ENV if not os.environ.get(key)]
        if missing:
            logger.error(f"Missing required environment variables: {missing}")
            raise RuntimeError("Missing required environment variables")

        bot_token = os.environ["TELEGRAM_BOT_TOKEN"].strip()
        logger.info(f"TELEGRAM_BOT_TOKEN found, length: {len(bot_token)}")
        return cls(
            bot_token=bot_token,
            host_address=os.environ["HOST_ADDRESS"].strip(),
        )
