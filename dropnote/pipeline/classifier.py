"""Source classification.

Decides whether a transaction carries a dropnote in its memo, in its
emitted events, or not at all.  The memo convention is checked first; when
it matches the events are not looked at, so a transaction is dispatched
through at most one source.
"""

from __future__ import annotations

import re
from collections.abc import Sequence

from dropnote.models.dispatch import Classification, Source
from dropnote.models.ledger import LedgerEvent

DROPNOTE_EVENT_TYPE = "dropnote"
DEFAULT_SUBTYPE = "message"

# "dropnote" ["." subtype] ":"
MEMO_PREFIX_RE = re.compile(r"^dropnote(?:\.(?P<subtype>[^:]+))?:", re.IGNORECASE)


def match_memo(memo: str | None) -> re.Match[str] | None:
    """Return the prefix match for *memo*, or ``None``."""
    if not memo:
        return None
    return MEMO_PREFIX_RE.match(memo)


def memo_subtype(match: re.Match[str]) -> str:
    subtype = match.group("subtype")
    if subtype is None:
        return DEFAULT_SUBTYPE
    return subtype.lower()


def dropnote_events(events: Sequence[LedgerEvent]) -> list[tuple[int, LedgerEvent]]:
    """Return ``(index, event)`` for every event of type ``dropnote``."""
    return [(i, e) for i, e in enumerate(events) if e.type == DROPNOTE_EVENT_TYPE]


def classify(memo: str | None, events: Sequence[LedgerEvent]) -> Classification | None:
    """Classify a transaction by its memo text and emitted events.

    Returns ``None`` for the (overwhelmingly common) case of an ordinary
    transaction.
    """
    match = match_memo(memo)
    if match is not None:
        return Classification(source=Source.MEMO, subtype=memo_subtype(match))

    for _, event in dropnote_events(events):
        subtype = event.attr("type")
        if subtype:
            return Classification(source=Source.EVENTS, subtype=subtype)

    return None
