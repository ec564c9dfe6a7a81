from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest
from telegram import Chat, Message, PhotoSize, User

CHAT_ID = 42


@pytest.fixture
def bot():
    """Stand-in for telegram.Bot that records every outbound call."""
    fake = AsyncMock()
    fake.defaults = None
    fake.send_message.return_value = MagicMock(message_id=101)
    fake.send_photo.return_value = MagicMock(message_id=102)
    fake.send_video.return_value = MagicMock(message_id=103)
    return fake


@pytest.fixture
def user():
    return User(id=7, first_name="Tux", is_bot=False)


def make_message(text=None, **kwargs) -> Message:
    return Message(
        message_id=1,
        date=datetime(2024, 1, 1, tzinfo=timezone.utc),
        chat=Chat(id=CHAT_ID, type=Chat.PRIVATE),
        text=text,
        **kwargs,
    )


def make_photo_message() -> Message:
    photo = PhotoSize(file_id="photo-id", file_unique_id="photo-uid", width=1, height=1)
    return make_message(photo=(photo,))


def outbound_calls(bot) -> list[str]:
    """Names of the bot methods called, in order."""
    return [name for name, _args, _kwargs in bot.mock_calls if "." not in name]
