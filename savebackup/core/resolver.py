"""
Share link resolution.

Turns the public share links returned by backends into direct download
links. Unknown hosts and every failure fall back to the original URL.
"""
import asyncio
import re
from typing import Awaitable, Callable, Dict, Optional
from urllib.parse import urlsplit

import aiohttp

from .exceptions import ProtocolError, SaveBackupError, TransportError
from .http import create_session, is_ok, send_json
from .logging import get_logger

logger = get_logger('savebackup.resolver')

_HX_DOWNLOAD = re.compile(r'hx-get="([^"]*/download[^"]*)"')


class LinkResolver:
    """
    Resolves share links to direct download links.

    Example:
        >>> async with LinkResolver() as resolver:
        ...     direct = await resolver.resolve("https://www.rootz.so/d/abc123")
    """

    def __init__(self, session: Optional[aiohttp.ClientSession] = None):
        self._session = session
        self._owns_session = False
        self._resolvers: Dict[str, Callable[[str], Awaitable[str]]] = {
            'buzzheavier.com': self._resolve_buzzheavier,
            'rootz.so': self._resolve_rootz,
        }

    async def __aenter__(self) -> 'LinkResolver':
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None:
            self._session = create_session()
            self._owns_session = True
        return self._session

    async def close(self) -> None:
        if self._owns_session and self._session:
            await self._session.close()
            self._session = None

    def _find_resolver(self, url: str) -> Optional[Callable[[str], Awaitable[str]]]:
        host = (urlsplit(url).hostname or '').lower()
        for domain, resolver in self._resolvers.items():
            if host == domain or host.endswith('.' + domain):
                return resolver
        return None

    async def resolve(self, url: str) -> str:
        """
        Resolve a share link.

        Returns:
            Direct download URL, or the original URL if it cannot be resolved
        """
        resolver = self._find_resolver(url)
        if resolver is None:
            return url

        logger.info(f"Resolving direct link for: {url}")
        try:
            return await resolver(url)
        except (SaveBackupError, aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.warning(f"Could not resolve {url}: {e}")
            return url

    async def _resolve_rootz(self, url: str) -> str:
        """``/d/<shortId>`` -> CDN URL via the download-by-short API."""
        parts = urlsplit(url)
        segments = [s for s in parts.path.split('/') if s]
        if not segments:
            raise ProtocolError("Could not extract short ID from Rootz URL")

        api_url = f"{parts.scheme}://{parts.netloc}/api/files/download-by-short/{segments[-1]}"
        session = await self._get_session()
        _, data = await send_json(session, 'GET', api_url, 'Rootz download lookup')

        if isinstance(data, dict) and data.get('success') and isinstance(data.get('data'), dict):
            direct = data['data'].get('url')
            if direct:
                logger.info(f"Resolved direct CDN link: {direct}")
                return direct
        logger.warning("Rootz API did not return a direct URL; returning original link")
        return url

    async def _resolve_buzzheavier(self, url: str) -> str:
        """Follow the page's htmx download trigger to its HX-Redirect target."""
        parts = urlsplit(url)
        session = await self._get_session()

        async with session.request('GET', url) as response:
            status = response.status
            html = await response.text()
        if not is_ok(status):
            raise TransportError("Buzzheavier page request failed", status=status)

        match = _HX_DOWNLOAD.search(html)
        if not match:
            logger.warning("Could not find Buzzheavier download trigger; returning original link")
            return url

        download_url = f"{parts.scheme}://{parts.netloc}{match.group(1)}"
        async with session.request(
            'GET',
            download_url,
            headers={'HX-Request': 'true'},
            allow_redirects=False
        ) as response:
            direct = response.headers.get('HX-Redirect')

        if direct:
            logger.info(f"Resolved Buzzheavier direct link: {direct}")
            return direct
        return url
