"""Event convention extractor.

Each emitted event of type ``dropnote`` is decoded on its own and keyed by
its index in the transaction's event list.  The subtype comes from the
event's ``type`` attribute.

Required attributes::

    message  : message, _contract_address, recipient
    announce : message, _contract_address

``sender`` is optional everywhere and falls back to ``_contract_address``.
An ``encrypted`` attribute equal to ``"true"`` is rejected as unsupported.
Unknown subtypes carry every attribute through as ``fields``.
"""

from __future__ import annotations

from dropnote.models.dispatch import DecodedPayload, Source
from dropnote.models.ledger import LedgerEvent
from dropnote.utils.errors import EncryptionUnsupportedError, PayloadFormatError

REQUIRED_ATTRIBUTES: dict[str, tuple[str, ...]] = {
    "message": ("message", "_contract_address", "recipient"),
    "announce": ("message", "_contract_address"),
}


def event_subtype(event: LedgerEvent) -> str | None:
    return event.attr("type") or None


def expect_attr(event: LedgerEvent, key: str) -> str:
    """Return attribute *key* of *event* or raise :class:`PayloadFormatError`."""
    value = event.attr(key)
    if not value:
        raise PayloadFormatError(
            f"Expected attribute {key!r} in event {event.type!r}, but not found"
        )
    return value


def parse_event(event: LedgerEvent, index: int) -> DecodedPayload:
    """Decode one ``dropnote`` event.

    Raises
    ------
    EncryptionUnsupportedError
        When the event carries ``encrypted="true"``.
    PayloadFormatError
        When the subtype or a required attribute is missing.
    """
    subtype = expect_attr(event, "type")

    if event.attr("encrypted") == "true":
        raise EncryptionUnsupportedError()

    required = REQUIRED_ATTRIBUTES.get(subtype)
    if required is None:
        fields = {a.key: a.value for a in event.attrs() if a.key != "type"}
    else:
        fields = {key: expect_attr(event, key) for key in required}

    sender = event.attr("sender") or event.attr("_contract_address")
    if not sender:
        raise PayloadFormatError("Could not resolve the sender of the dropnote event")

    return DecodedPayload(
        subtype=subtype,
        source=Source.EVENTS,
        index=index,
        sender=sender,
        fields=fields,
    )
