"""Telegram update dispatcher.

Every update that reaches the webhook goes through
``HandleUpdateService.dispatch()``:

  Telegram Cloud  ──webhook POST──►  FastAPI (main.py)
                                        │
                                        ▼
                              HandleUpdateService.dispatch()
                                        │
          ┌──────────────┬──────────────┼───────────────┬──────────────┐
          ▼              ▼              ▼               ▼              ▼
   message /       callback_query  inline_query  chosen_inline   anything else
   edited_message                                _result         (log only)
          │
          ▼
   commands.resolve_route()  (exact command → YouTube link → usage)

Key design decisions:
  - The handler is picked from a table keyed by the update type, so adding a
    type means adding a table entry; the error boundary is shared.
  - ``dispatch()`` never raises.  Any failure ends up in ``handle_error()``
    and the webhook still answers 200, so Telegram does not redeliver an
    update just because a handler crashed.
  - The service keeps no per-update state; concurrent dispatches only share
    the bot client.
"""
import logging
import re
import traceback

from telegram import (
    Bot,
    CallbackQuery,
    ChosenInlineResult,
    InlineQuery,
    InlineQueryResultArticle,
    InputTextMessageContent,
    Message,
    Update,
)
from telegram.constants import UpdateType
from telegram.error import (
    BadRequest,
    ChatMigrated,
    Conflict,
    Forbidden,
    InvalidToken,
    NetworkError,
    RetryAfter,
    TelegramError,
)
from telegram.helpers import effective_message_type

from webhook_bot import commands
from webhook_bot.metrics import COMMAND_TOTAL, UPDATE_ERRORS, UPDATE_TOTAL

logger = logging.getLogger(__name__)

UNKNOWN_UPDATE_TYPE = "unknown"

# Checked in order: BadRequest is a NetworkError subclass.
_API_ERROR_CODES = (
    (BadRequest, 400),
    (ChatMigrated, 400),
    (InvalidToken, 401),
    (Forbidden, 403),
    (Conflict, 409),
    (RetryAfter, 429),
)
# python-telegram-bot reports unmapped HTTP statuses as "<description> (<code>)".
_STATUS_SUFFIX_RE = re.compile(r"^(?P<message>.*) \((?P<code>\d{3})\)$", re.DOTALL)


def get_update_type(update: Update) -> str:
    """Return the type tag of an update: the name of its populated field."""
    for update_type in UpdateType:
        if getattr(update, update_type.value, None) is not None:
            return update_type.value
    return UNKNOWN_UPDATE_TYPE


def api_error_details(exc: BaseException) -> tuple[int, str] | None:
    """Return ``(code, message)`` for a Telegram API error, else None."""
    if not isinstance(exc, TelegramError):
        return None
    for error_cls, code in _API_ERROR_CODES:
        if isinstance(exc, error_cls):
            return code, exc.message
    if isinstance(exc, NetworkError):
        match = _STATUS_SUFFIX_RE.match(exc.message)
        if match:
            return int(match.group("code")), match.group("message")
    return None


def describe_error(exc: BaseException) -> str:
    details = api_error_details(exc)
    if details:
        code, message = details
        return f"Telegram API Error: [{code}] {message}"
    return "".join(traceback.format_exception_only(type(exc), exc)).strip()


class HandleUpdateService:
    """Routes Telegram updates to their handlers and contains failures."""

    def __init__(self, bot: Bot):
        """Initialize the dispatcher.

        Args:
            bot: Initialized Telegram bot used for every outbound call.
        """
        self.bot = bot
        self._routes = {
            UpdateType.MESSAGE.value: self.on_message_received,
            UpdateType.EDITED_MESSAGE.value: self.on_message_received,
            UpdateType.CALLBACK_QUERY.value: self.on_callback_query_received,
            UpdateType.INLINE_QUERY.value: self.on_inline_query_received,
            UpdateType.CHOSEN_INLINE_RESULT.value: self.on_chosen_inline_result_received,
        }

    async def dispatch(self, update: Update) -> None:
        """Run the handler for ``update``; failures go to handle_error()."""
        update_type = get_update_type(update)
        UPDATE_TOTAL.labels(type=update_type).inc()

        try:
            handler = self._routes.get(update_type)
            if handler is None:
                await self.on_unknown_update(update, update_type)
            else:
                await handler(getattr(update, update_type))
        except Exception as e:
            self.handle_error(e)

    # ------------------------------------------------------------------
    # Messages
    # ------------------------------------------------------------------

    async def on_message_received(self, message: Message) -> None:
        message_type = effective_message_type(message)
        logger.info(f"Receive message type: {message_type}")
        if message_type != "text":
            return

        route_name, action = commands.resolve_route(message.text)
        COMMAND_TOTAL.labels(command=route_name).inc()

        sent_message = await action(self.bot, message)
        logger.info(f"The message was sent with id: {sent_message.message_id}")

    # ------------------------------------------------------------------
    # Inline keyboard callbacks
    # ------------------------------------------------------------------

    async def on_callback_query_received(self, callback_query: CallbackQuery) -> None:
        """Acknowledge a button press and echo its payload to the chat.

        A failed acknowledgement is recorded right away and the echo is still
        sent; a failed echo propagates to the dispatch boundary.
        """
        text = f"Received {callback_query.data}"
        try:
            await self.bot.answer_callback_query(
                callback_query_id=callback_query.id, text=text
            )
        except Exception as e:
            self.handle_error(e)

        if callback_query.message is None:
            logger.warning(
                f"Callback query {callback_query.id} has no originating message, skipping echo"
            )
        else:
            await self.bot.send_message(chat_id=callback_query.message.chat.id, text=text)

    # ------------------------------------------------------------------
    # Inline mode
    # ------------------------------------------------------------------

    async def on_inline_query_received(self, inline_query: InlineQuery) -> None:
        logger.info(f"Received inline query from: {inline_query.from_user.id}")

        results = [
            InlineQueryResultArticle(
                id="3",
                title="TgBots",
                input_message_content=InputTextMessageContent("hello"),
            )
        ]
        await self.bot.answer_inline_query(
            inline_query_id=inline_query.id,
            results=results,
            is_personal=True,
            cache_time=0,
        )

    async def on_chosen_inline_result_received(
        self, chosen_inline_result: ChosenInlineResult
    ) -> None:
        logger.info(f"Received inline result: {chosen_inline_result.result_id}")

    async def on_unknown_update(self, update: Update, update_type: str) -> None:
        logger.info(f"Unknown update type: {update_type}")

    # ------------------------------------------------------------------
    # Errors
    # ------------------------------------------------------------------

    def handle_error(self, exc: Exception) -> None:
        """Log a handler failure. Terminal sink: never raises."""
        is_api_error = api_error_details(exc) is not None
        UPDATE_ERRORS.labels(kind="api" if is_api_error else "other").inc()

        error_message = describe_error(exc)
        logger.error(f"HandleError: {error_message}")
        if not is_api_error:
            logger.error(
                "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
            )
