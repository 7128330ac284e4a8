"""
HTTP helpers shared by backends and the multipart coordinator.

Maps HTTP outcomes onto the error taxonomy:
network failures and non-2xx responses become TransportError, ``success: false`` bodies
and malformed JSON become ProtocolError.
"""
import asyncio
import json
from typing import Any, Dict, Optional, Tuple

import aiohttp

from .exceptions import TransportError, ProtocolError
from .logging import get_logger

logger = get_logger('savebackup.http')


def is_ok(status: int) -> bool:
    """True for 2xx status codes."""
    return 200 <= status < 300


def describe_error(error: BaseException) -> str:
    """Error text, falling back to the type name for bare timeouts."""
    return str(error) or type(error).__name__


def create_session(
    timeout: Optional[aiohttp.ClientTimeout] = None,
    limit: int = 10
) -> aiohttp.ClientSession:
    """Create an aiohttp session with a bounded connection pool."""
    connector = aiohttp.TCPConnector(limit=limit, keepalive_timeout=30)
    return aiohttp.ClientSession(connector=connector, timeout=timeout)


async def send_json(
    session: aiohttp.ClientSession,
    method: str,
    url: str,
    action: str,
    require_ok: bool = True,
    **kwargs
) -> Tuple[int, Any]:
    """
    Send a request and decode its JSON body.

    Args:
        session: HTTP session
        method: HTTP method
        url: Request URL
        action: Short description used in error messages
        require_ok: Raise TransportError on non-2xx before looking at the body
        **kwargs: Passed through to ``session.request``

    Returns:
        Tuple of (status, decoded JSON)

    Raises:
        TransportError: On network failure, timeout or non-2xx status
        ProtocolError: On a 2xx response whose body is not JSON
    """
    logger.debug(f"{method} {url} ({action})")
    try:
        async with session.request(method, url, **kwargs) as response:
            status = response.status
            text = await response.text()
    except (aiohttp.ClientError, asyncio.TimeoutError) as e:
        raise TransportError(f"{action} failed: {describe_error(e)}") from e

    if require_ok and not is_ok(status):
        raise TransportError(f"{action} failed", status=status, body=text)

    try:
        data = json.loads(text) if text else None
    except ValueError:
        if not is_ok(status):
            raise TransportError(f"{action} failed", status=status, body=text) from None
        raise ProtocolError(f"{action} returned invalid JSON: {text[:200]}") from None

    return status, data


def check_success(data: Any, action: str, status: Optional[int] = None) -> Dict[str, Any]:
    """
    Ensure a provider JSON body reports success.

    Returns:
        The body as a dict

    Raises:
        ProtocolError: If the body is not an object or ``success`` is falsy
    """
    if not isinstance(data, dict):
        raise ProtocolError(f"{action} returned unexpected response: {data!r}", status=status)
    if not data.get('success'):
        error = data.get('error') or data.get('message') or f"{action} failed"
        raise ProtocolError(str(error), status=status, body=json.dumps(data))
    return data
