"""FastAPI entry point: webhook endpoint and webhook lifecycle."""
import hmac
import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from telegram import Bot, Update

from webhook_bot.config import BotConfiguration
from webhook_bot.logging_config import setup_logging
from webhook_bot.update_handler import HandleUpdateService
from webhook_bot.webhook import ConfigureWebhook

setup_logging()
logger = logging.getLogger(__name__)


def create_app(config: BotConfiguration | None = None, bot: Bot | None = None) -> FastAPI:
    """Build the FastAPI app.

    Args:
        config: Bot settings; read from the environment at startup if omitted.
        bot: Telegram bot client; built from the config token if omitted.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Startup: a failed registration aborts startup.
        bot_config = config or BotConfiguration.from_env()
        telegram_bot = bot or Bot(token=bot_config.bot_token)
        await telegram_bot.initialize()

        webhook = ConfigureWebhook(telegram_bot, bot_config)
        try:
            await webhook.start()
        except Exception:
            await telegram_bot.shutdown()
            raise

        app.state.config = bot_config
        app.state.bot = telegram_bot
        app.state.webhook = webhook
        app.state.update_service = HandleUpdateService(telegram_bot)
        logger.info("Telegram webhook bot started")
        try:
            yield
        finally:
            # Shutdown: unregistering is best effort.
            try:
                await webhook.stop()
            finally:
                await telegram_bot.shutdown()

    app = FastAPI(lifespan=lifespan)

    @app.post("/bot/{token}")
    async def telegram_webhook(token: str, request: Request):
        """Webhook endpoint for Telegram bot updates.

        Endpoint: POST /bot/<bot token>
        """
        expected = request.app.state.config.bot_token
        if not hmac.compare_digest(token.encode(), expected.encode()):
            raise HTTPException(status_code=404, detail="Not Found")

        try:
            update_data = await request.json()
        except ValueError:
            raise HTTPException(status_code=400, detail="Invalid JSON body")
        if not isinstance(update_data, dict):
            raise HTTPException(status_code=400, detail="Update must be a JSON object")

        try:
            update = Update.de_json(update_data, request.app.state.bot)
        except (TypeError, KeyError, ValueError) as e:
            logger.error(f"Error decoding Telegram update: {e}")
            raise HTTPException(status_code=400, detail="Failed to decode update")

        await request.app.state.update_service.dispatch(update)
        return {"ok": True}

    @app.get("/webhook-status")
    async def telegram_webhook_status(request: Request):
        """Get Telegram webhook status."""
        try:
            bot_info = await request.app.state.bot.get_me()
            webhook_status = await request.app.state.webhook.status()
        except Exception as e:
            logger.error(f"Error getting webhook status: {e}")
            return {"status": "error", "message": str(e)}
        return {
            "status": "active",
            "bot_username": bot_info.username,
            "bot_name": bot_info.first_name,
            "webhook": webhook_status,
        }

    @app.get("/metrics")
    async def metrics():
        """Prometheus metrics endpoint."""
        return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)

    @app.get("/healthz")
    async def healthz():
        """Basic health check."""
        return {"status": "ok"}

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=int(os.environ.get("PORT", 8080)))
