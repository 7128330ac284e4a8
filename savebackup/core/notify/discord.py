"""
Discord webhook notifications.

Notifications are best effort: failures are logged and never raised, so a
broken webhook cannot fail an otherwise successful backup.
"""
import asyncio
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Protocol

import aiohttp

from ..http import create_session, is_ok
from ..logging import get_logger

logger = get_logger('savebackup.notify.discord')

EMBED_COLOR = 0xE67E22


class Notifier(Protocol):
    """Protocol for upload notification sinks."""

    async def notify(
        self,
        target: Optional[str],
        file_name: str,
        url: str,
        source_label: str
    ) -> bool:
        """
        Announce a completed upload.

        Returns:
            True if the notification was delivered
        """
        ...


class DiscordNotifier:
    """Posts an embed to a Discord webhook after each upload."""

    def __init__(self, session: Optional[aiohttp.ClientSession] = None):
        self._session = session
        self._owns_session = False

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None:
            self._session = create_session()
            self._owns_session = True
        return self._session

    async def close(self) -> None:
        if self._owns_session and self._session:
            await self._session.close()
            self._session = None

    @staticmethod
    def build_embed(
        file_name: str,
        url: str,
        source_label: str,
        now: Optional[datetime] = None
    ) -> Dict[str, Any]:
        """Build the webhook embed for an upload."""
        now = now or datetime.now(timezone.utc)
        return {
            'title': '🚀 Save Backup Successful',
            'description': f"A new backup has been uploaded to **{source_label}**.",
            'color': EMBED_COLOR,
            'fields': [
                {'name': '📁 Filename', 'value': f"`{file_name}`", 'inline': True},
                {'name': '🌐 Service', 'value': source_label, 'inline': True},
                {'name': '🔗 Download Link', 'value': url},
            ],
            'timestamp': now.isoformat(),
            'footer': {'text': 'Save Backup Manager'},
        }

    async def notify(
        self,
        target: Optional[str],
        file_name: str,
        url: str,
        source_label: str
    ) -> bool:
        if not target:
            return False

        payload = {'embeds': [self.build_embed(file_name, url, source_label)]}
        try:
            session = await self._get_session()
            async with session.request('POST', target, json=payload) as response:
                if not is_ok(response.status):
                    body = await response.text()
                    logger.error(f"Discord notification failed: HTTP {response.status} {body[:200]}")
                    return False
        except (aiohttp.ClientError, asyncio.TimeoutError, OSError) as e:
            logger.error(f"Error sending Discord notification: {e}")
            return False

        logger.info("Discord notification sent")
        return True
