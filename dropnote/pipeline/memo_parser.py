"""Memo convention parser.

Grammar::

    memo     = "dropnote" ["." subtype] ":" body
    body     = "[" inner "]"            ; plaintext
             | <anything else>          ; encrypted, unsupported
    message  : inner = recipient ":" text   (text may contain ":")
    announce : inner = text

Subtypes other than ``message`` and ``announce`` receive the bracketed
inner text verbatim as ``fields["body"]`` so host-registered handlers can
interpret it themselves.

The sender is never encoded in the memo.  It is the ``sender`` attribute of
the first ``message`` event in the execution result.
"""

from __future__ import annotations

from collections.abc import Sequence

from dropnote.models.dispatch import DecodedPayload, Source
from dropnote.models.ledger import LedgerEvent
from dropnote.pipeline.classifier import match_memo, memo_subtype
from dropnote.utils.errors import EncryptionUnsupportedError, PayloadFormatError

SENDER_EVENT_TYPE = "message"


def find_sender(events: Sequence[LedgerEvent]) -> str | None:
    """Return the ``sender`` of the first ``message`` event, if any."""
    for event in events:
        if event.type == SENDER_EVENT_TYPE:
            return event.attr("sender") or None
    return None


def split_body(body: str) -> str:
    """Strip the brackets from a plaintext body and return the inner text."""
    if not body.startswith("["):
        raise EncryptionUnsupportedError()
    if not body.endswith("]"):
        raise PayloadFormatError(f"Unterminated dropnote body: {body!r}")
    return body[1:-1]


def parse_message_fields(inner: str) -> dict[str, str]:
    recipient, sep, message = inner.partition(":")
    if not sep:
        raise PayloadFormatError("Dropnote message is missing the recipient separator")
    if not recipient:
        raise PayloadFormatError("Dropnote message has an empty recipient")
    if not message:
        raise PayloadFormatError("Dropnote message is empty")
    return {"recipient": recipient, "message": message}


def parse_announce_fields(inner: str) -> dict[str, str]:
    if not inner:
        raise PayloadFormatError("Dropnote announcement is empty")
    return {"message": inner}


def parse_memo(memo: str, events: Sequence[LedgerEvent]) -> DecodedPayload:
    """Decode a dropnote memo into a :class:`DecodedPayload`.

    Raises
    ------
    EncryptionUnsupportedError
        When the body does not start with ``[``.
    PayloadFormatError
        On any other grammar violation or when the sender cannot be resolved.
    """
    match = match_memo(memo)
    if match is None:
        raise PayloadFormatError("Memo does not carry a dropnote prefix")

    subtype = memo_subtype(match)
    inner = split_body(memo[match.end():])

    if subtype == "message":
        fields = parse_message_fields(inner)
    elif subtype == "announce":
        fields = parse_announce_fields(inner)
    else:
        fields = {"body": inner}

    sender = find_sender(events)
    if not sender:
        raise PayloadFormatError("Could not resolve the sender of the dropnote memo")

    return DecodedPayload(
        subtype=subtype,
        source=Source.MEMO,
        index="memo",
        sender=sender,
        fields=fields,
    )
