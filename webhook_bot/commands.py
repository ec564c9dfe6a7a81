"""Command routing for text messages.

A text message is routed by its leading token:

  1. Exact match against ``COMMANDS`` (``/inline``, ``/keyboard``, ...).
  2. Otherwise, if the body mentions a YouTube link anywhere, the video
     download handler.
  3. Otherwise the usage message.

Every handler takes the bot and the incoming message, performs its outbound
calls in order, and returns the last message it sent.
"""
import asyncio
import logging
import os
import tempfile
from typing import Awaitable, Callable

from telegram import (
    Bot,
    InlineKeyboardButton,
    InlineKeyboardMarkup,
    InputFile,
    KeyboardButton,
    Message,
    ReplyKeyboardMarkup,
    ReplyKeyboardRemove,
)
from telegram.constants import ChatAction

from webhook_bot import media

logger = logging.getLogger(__name__)

CommandHandler = Callable[[Bot, Message], Awaitable[Message]]

# Simulated slow operation before the inline keyboard is sent.
INLINE_KEYBOARD_DELAY = 0.5
PHOTO_PATH = os.path.join(os.path.dirname(os.path.abspath(__file__)), "files", "tux.png")
VIDEO_LINK_MARKER = "youtu"

USAGE = (
    "Usage:\n"
    "/inline   - send inline keyboard\n"
    "/keyboard - send custom keyboard\n"
    "/remove   - remove custom keyboard\n"
    "/photo    - send a photo\n"
    "/request  - request location or contact"
)


def extract_command(text: str | None) -> str:
    """Return the leading whitespace-delimited token of ``text``."""
    parts = (text or "").split(maxsplit=1)
    return parts[0] if parts else ""


async def send_inline_keyboard(bot: Bot, message: Message) -> Message:
    """Send a 2x2 inline keyboard; presses come back as callback queries."""
    await bot.send_chat_action(chat_id=message.chat.id, action=ChatAction.TYPING)

    await asyncio.sleep(INLINE_KEYBOARD_DELAY)

    inline_keyboard = InlineKeyboardMarkup(
        [
            [
                InlineKeyboardButton("1.1", callback_data="11"),
                InlineKeyboardButton("1.2", callback_data="12"),
            ],
            [
                InlineKeyboardButton("2.1", callback_data="21"),
                InlineKeyboardButton("2.2", callback_data="22"),
            ],
        ]
    )
    return await bot.send_message(
        chat_id=message.chat.id, text="Choose", reply_markup=inline_keyboard
    )


async def send_reply_keyboard(bot: Bot, message: Message) -> Message:
    reply_keyboard = ReplyKeyboardMarkup(
        [["1.1", "1.2"], ["2.1", "2.2"]],
        resize_keyboard=True,
    )
    return await bot.send_message(
        chat_id=message.chat.id, text="Choose", reply_markup=reply_keyboard
    )


async def remove_keyboard(bot: Bot, message: Message) -> Message:
    return await bot.send_message(
        chat_id=message.chat.id,
        text="Removing keyboard",
        reply_markup=ReplyKeyboardRemove(),
    )


async def send_photo(bot: Bot, message: Message) -> Message:
    await bot.send_chat_action(chat_id=message.chat.id, action=ChatAction.UPLOAD_PHOTO)

    with open(PHOTO_PATH, "rb") as photo:
        return await bot.send_photo(
            chat_id=message.chat.id,
            photo=InputFile(photo, filename=os.path.basename(PHOTO_PATH)),
            caption="Nice Picture",
        )


async def request_contact_and_location(bot: Bot, message: Message) -> Message:
    request_keyboard = ReplyKeyboardMarkup(
        [
            [
                KeyboardButton("Location", request_location=True),
                KeyboardButton("Contact", request_contact=True),
            ]
        ]
    )
    return await bot.send_message(
        chat_id=message.chat.id,
        text="Who or Where are you?",
        reply_markup=request_keyboard,
    )


async def download_and_send_video(bot: Bot, message: Message) -> Message:
    """Download the linked YouTube video and send it back as a video.

    The first token of the message is what gets resolved, matching how a
    bare link is usually pasted. Each call downloads into its own temporary
    directory, which is removed together with the file on every exit path.
    """
    await bot.send_chat_action(chat_id=message.chat.id, action=ChatAction.UPLOAD_VIDEO)

    with tempfile.TemporaryDirectory(prefix="webhook_bot_video_") as workdir:
        file_path = await media.resolve_and_fetch(extract_command(message.text), workdir)
        with open(file_path, "rb") as video:
            return await bot.send_video(
                chat_id=message.chat.id,
                video=InputFile(video, filename=os.path.basename(file_path)),
                caption="Nice Video",
            )


async def usage(bot: Bot, message: Message) -> Message:
    return await bot.send_message(
        chat_id=message.chat.id, text=USAGE, reply_markup=ReplyKeyboardRemove()
    )


COMMANDS: dict[str, CommandHandler] = {
    "/inline": send_inline_keyboard,
    "/keyboard": send_reply_keyboard,
    "/remove": remove_keyboard,
    "/photo": send_photo,
    "/request": request_contact_and_location,
}


def resolve_route(text: str | None) -> tuple[str, CommandHandler]:
    """Pick the handler for a text body.

    Returns:
        ``(route_name, handler)`` where route_name is the matched command,
        ``"video"`` or ``"usage"``.
    """
    command = extract_command(text)
    if command in COMMANDS:
        return command, COMMANDS[command]
    # Scans the whole body, not just the command token.
    if VIDEO_LINK_MARKER in (text or ""):
        return "video", download_and_send_video
    return "usage", usage
