"""
Prefixed public identifiers for household calendar rows.

Every persisted entity carries a UUIDv7 in its ``uuid`` column and is
addressed from the outside by ``{prefix}_{26 lowercase Crockford base32}``,
for example ``evt_01hgw2bbg00000000000000002``. Event GUIDs also appear in
feed UIDs and exported documents, so a row's uuid is never regenerated.

The codec lives here rather than in the service layer so models can render
their own GUIDs without importing services.
"""

import uuid as uuid_module
from typing import ClassVar, Optional, Union

import base32_crockford
from sqlalchemy import Column
from uuid_extensions import uuid7

from backend.src.models.types import UUIDType

ENCODED_LENGTH = 26


def encode_guid(prefix: str, value: Union[uuid_module.UUID, bytes]) -> str:
    """Render a UUID (or its 16 raw bytes) as ``{prefix}_{base32}``."""
    raw = value if isinstance(value, bytes) else value.bytes
    body = base32_crockford.encode(int.from_bytes(raw, "big"))
    return f"{prefix}_{body.zfill(ENCODED_LENGTH).lower()}"


def decode_guid(prefix: str, guid: str) -> uuid_module.UUID:
    """
    Recover the UUID behind a GUID of the given prefix.

    Case-insensitive. Raises ValueError naming what was wrong.
    """
    if not guid:
        raise ValueError("GUID cannot be empty")

    head, sep, body = guid.partition("_")
    if not sep or head.lower() != prefix.lower():
        raise ValueError(f"GUID prefix mismatch. Expected '{prefix}', got '{head}'")
    if len(body) != ENCODED_LENGTH:
        raise ValueError(
            f"GUID body must be {ENCODED_LENGTH} characters, got {len(body)}"
        )

    try:
        number = base32_crockford.decode(body.upper())
        return uuid_module.UUID(bytes=number.to_bytes(16, "big"))
    except (ValueError, OverflowError) as e:
        raise ValueError(f"Invalid GUID encoding: {e}")


class GuidMixin:
    """
    Adds the ``uuid`` column and the ``guid`` property to a model.

    Subclasses set ``GUID_PREFIX`` to their three-letter prefix::

        class CalendarFeed(Base, GuidMixin):
            GUID_PREFIX = "fed"
    """

    GUID_PREFIX: ClassVar[str]

    uuid = Column(UUIDType(), nullable=False, unique=True, index=True, default=uuid7)

    @property
    def guid(self) -> Optional[str]:
        # None until the row is flushed and the default has fired
        if self.uuid is None:
            return None
        return encode_guid(self.GUID_PREFIX, self.uuid)

    @classmethod
    def parse_guid(cls, guid: str) -> uuid_module.UUID:
        return decode_guid(cls.GUID_PREFIX, guid)
