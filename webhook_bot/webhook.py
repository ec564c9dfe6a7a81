"""Webhook registration with Telegram, tied to the process lifetime."""
import logging

from telegram import Bot

from webhook_bot.config import BotConfiguration

logger = logging.getLogger(__name__)


class ConfigureWebhook:
    """Registers the webhook on start and removes it on stop.

    The registration is a single Telegram-side resource per bot; this class
    is its only owner, and the bot is injected so tests can pass a fake.
    """

    def __init__(self, bot: Bot, config: BotConfiguration):
        self.bot = bot
        self.config = config
        self.registered = False

    @property
    def webhook_url(self) -> str:
        # Telegram recommends a secret path, e.g. https://www.example.com/<token>.
        # Since nobody else knows the bot token, requests on it come from Telegram.
        # https://core.telegram.org/bots/api#setwebhook
        return f"{self.config.host_address.rstrip('/')}/bot/{self.config.bot_token}"

    async def start(self) -> None:
        """Register the webhook for all update types.

        Errors propagate: the service is useless without a registration.
        """
        webhook_url = self.webhook_url
        logger.info(f"Setting webhook: {webhook_url}")
        await self.bot.set_webhook(url=webhook_url, allowed_updates=[])
        self.registered = True

    async def stop(self) -> None:
        """Remove the webhook; failures are logged and do not block shutdown."""
        logger.info("Removing webhook")
        try:
            await self.bot.delete_webhook()
        except Exception as e:
            logger.error(f"Failed to remove webhook: {e}")
        finally:
            self.registered = False

    async def status(self) -> dict:
        """Return Telegram's view of the webhook plus the local state."""
        info = await self.bot.get_webhook_info()
        return {
            "registered": self.registered,
            "url_matches": info.url == self.webhook_url,
            "pending_update_count": info.pending_update_count,
            "last_error_message": info.last_error_message,
        }
