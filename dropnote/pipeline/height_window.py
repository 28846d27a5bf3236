"""Scan-range resolution.

Computes the inclusive ``[from, to]`` block-height window for a scan from
explicit overrides, a stored checkpoint, or the default lookback window.
Client failures propagate; nothing here retries.
"""

from __future__ import annotations

from dataclasses import dataclass

from dropnote.interfaces.ledger_client import ILedgerClient
from dropnote.models.ledger import NetworkConfig

# ~30 days at an assumed 3 second block interval.
DEFAULT_LOOKBACK_BLOCKS = 864_000


@dataclass(frozen=True)
class HeightWindow:
    from_height: int
    to_height: int


async def resolve_window(
    client: ILedgerClient,
    network: NetworkConfig,
    from_height: int | None = None,
    to_height: int | None = None,
    checkpoint: int | None = None,
    lookback: int = DEFAULT_LOOKBACK_BLOCKS,
) -> HeightWindow:
    """Resolve the scan window for *network*.

    ``to`` defaults to the current chain tip (one client round-trip).
    ``from`` defaults to *checkpoint*, else ``to - lookback``.  An inverted
    window is clamped so that ``from == to``; heights never drop below 1.
    """
    if to_height is None:
        tip = await client.current_block(network)
        to_height = tip.height

    if from_height is None:
        from_height = checkpoint if checkpoint is not None else to_height - lookback

    from_height = max(1, from_height)
    if from_height > to_height:
        from_height = to_height

    return HeightWindow(from_height=from_height, to_height=to_height)
