"""Duel Arena - turn-based card roster duels for Telegram chats."""

__version__ = "0.1.0"
