"""Telegram bot layer."""
