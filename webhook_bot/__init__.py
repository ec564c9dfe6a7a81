"""Telegram webhook bot: update dispatch and webhook lifecycle."""
