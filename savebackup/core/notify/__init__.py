"""Upload notifications."""
from .discord import Notifier, DiscordNotifier

__all__ = ['Notifier', 'DiscordNotifier']
