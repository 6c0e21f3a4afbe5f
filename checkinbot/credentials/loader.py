"""Credential file loader and display masking.

The wallet file holds one credential per line.  Blank lines and lines
beginning with ``#`` are ignored; surrounding whitespace is stripped.  The
resulting order is the credential's identity for the whole process: index
``0`` is the first usable line, and indices are never reused or reordered.

:func:`load_credentials` never raises.  Every failure (missing file,
unreadable file, no usable lines) returns an empty list and publishes a
``log`` event describing what went wrong.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import TYPE_CHECKING

from checkinbot.core.events import LogLevel

if TYPE_CHECKING:
    from checkinbot.orchestrator.bus import EventBus

__all__ = ["load_credentials", "mask_credential"]

logger = logging.getLogger(__name__)

_LINE_SPLIT = re.compile(r"\r?\n")


def mask_credential(credential: str | None) -> str:
    """Return a display-safe form of *credential*.

    Shows the first 3 and last 4 characters; anything shorter than 8
    characters collapses to ``"***"``.
    """
    if not credential or len(credential) < 8:
        return "***"
    return f"{credential[:3]}...{credential[-4:]}"


def load_credentials(path: str | Path, bus: EventBus) -> list[str]:
    """Read credentials from *path* in file order.

    Args:
        path: Location of the wallet file.
        bus: Event bus receiving the load report.

    Returns:
        The credentials, in load order.  Empty on any failure.
    """
    wallet = Path(path)
    logger.debug("Loading credentials from %s", wallet)

    try:
        wallet = wallet.resolve()
        if not wallet.is_file():
            bus.log(
                LogLevel.ERROR,
                f"Wallet file not found at {wallet}. Create it and add one token per line.",
            )
            return []
        raw = wallet.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        logger.warning("Failed to read wallet file %s", wallet, exc_info=True)
        bus.log(LogLevel.ERROR, f"Failed to load tokens from {wallet}: {exc}")
        return []

    credentials = [
        line.strip()
        for line in _LINE_SPLIT.split(raw)
        if line.strip() and not line.strip().startswith("#")
    ]

    if not credentials:
        bus.log(
            LogLevel.WARN,
            f"No tokens found in {wallet}. Add tokens, one per line.",
        )
    else:
        bus.log(LogLevel.INFO, f"Loaded {len(credentials)} token(s) from {wallet.name}.")

    return credentials
