"""
GUID helpers for the service and API layers.

Wraps the codec in ``models.mixins.guid`` with prefix validation and a
lookup-friendly parse that services use to turn path parameters into
primary-key queries.
"""

import re
import uuid
from typing import Optional

from uuid_extensions import uuid7

from backend.src.models.mixins.guid import decode_guid, encode_guid

ENTITY_PREFIXES = {
    "hsh": "Household",
    "mem": "FamilyMember",
    "evt": "FamilyEvent",
    "ovr": "EventInstance",
    "fed": "CalendarFeed",
}

# Crockford base32 omits I, L, O and U
GUID_PATTERN = re.compile(
    r"^(%s)_[0-9a-hjkmnp-tv-z]{26}$" % "|".join(ENTITY_PREFIXES),
    re.IGNORECASE,
)


class GuidService:
    """Static helpers for generating, checking and decoding GUIDs."""

    @staticmethod
    def encode_uuid(uuid_value: uuid.UUID, prefix: str) -> str:
        """
        Encode a UUID (or its raw bytes) under a known entity prefix.

        Raises:
            ValueError: If prefix is not one of ENTITY_PREFIXES
        """
        if prefix not in ENTITY_PREFIXES:
            raise ValueError(
                f"Invalid prefix '{prefix}'; expected one of {', '.join(ENTITY_PREFIXES)}"
            )
        return encode_guid(prefix, uuid_value)

    @staticmethod
    def generate_guid(prefix: str) -> str:
        return GuidService.encode_uuid(uuid7(), prefix)

    @staticmethod
    def validate_guid(guid: Optional[str], expected_prefix: Optional[str] = None) -> bool:
        """True when guid is well formed and, if given, carries expected_prefix."""
        if not guid or not GUID_PATTERN.match(guid):
            return False
        return expected_prefix is None or guid[:3].lower() == expected_prefix.lower()

    @staticmethod
    def get_entity_type(guid: str) -> Optional[str]:
        return ENTITY_PREFIXES.get((guid or "")[:3].lower())

    @staticmethod
    def parse_guid(guid: str, expected_prefix: str) -> uuid.UUID:
        """
        Decode a GUID, insisting on the expected prefix.

        Raises:
            ValueError: If the GUID is malformed or has another prefix
        """
        if guid and not GUID_PATTERN.match(guid):
            raise ValueError(f"Invalid GUID format: {guid}")
        return decode_guid(expected_prefix, guid)

    @staticmethod
    def uuid_or_none(guid: Optional[str], expected_prefix: str) -> Optional[uuid.UUID]:
        """
        Decode a GUID taken from a request, or return None if it cannot match
        any row of the expected type.
        """
        if not GuidService.validate_guid(guid, expected_prefix):
            return None
        try:
            return decode_guid(expected_prefix, guid)
        except ValueError:
            return None
