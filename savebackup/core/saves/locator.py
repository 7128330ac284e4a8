"""Default save directory detection."""
import os
import sys
from pathlib import Path
from typing import Mapping, Optional

from ..logging import get_logger

logger = get_logger('savebackup.saves.locator')


def default_save_directory(
    platform: Optional[str] = None,
    home: Optional[Path] = None,
    env: Optional[Mapping[str, str]] = None
) -> Path:
    """
    Return the platform's default Factorio save directory.

    On Linux a GOG installation is preferred when present.

    Args:
        platform: ``sys.platform`` value (current platform by default)
        home: Home directory (current user's by default)
        env: Environment mapping (``os.environ`` by default)
    """
    platform = platform or sys.platform
    home = Path(home) if home else Path.home()
    env = os.environ if env is None else env

    if platform.startswith('win'):
        appdata = env.get('APPDATA')
        base = Path(appdata) if appdata else home / 'AppData' / 'Roaming'
        return base / 'Factorio' / 'saves'

    if platform.startswith('linux'):
        gog_path = home / 'GOG Games' / 'Factorio' / 'game' / 'saves'
        if gog_path.exists():
            logger.info("Detected GOG Factorio installation")
            return gog_path
        logger.info("Using standard Factorio path")
        return home / '.factorio' / 'saves'

    if platform == 'darwin':
        return home / 'Library' / 'Application Support' / 'factorio' / 'saves'

    return home / '.factorio' / 'saves'
