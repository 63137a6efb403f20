"""
Column types shared by the household calendar models.

Production runs on PostgreSQL; the test suite runs on in-memory SQLite.
Both types below pick the native PostgreSQL representation when it is
available and a portable one otherwise, so model code never branches on
the dialect.
"""

import uuid

from sqlalchemy import JSON, LargeBinary, TypeDecorator
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.dialects.postgresql import UUID as PG_UUID


class JSONBType(TypeDecorator):
    """
    Document column for participants, recurrence slots and transportation.

    JSONB on PostgreSQL, plain JSON elsewhere.
    """

    impl = JSON
    cache_ok = True

    def load_dialect_impl(self, dialect):
        native = JSONB() if dialect.name == "postgresql" else JSON()
        return dialect.type_descriptor(native)


class UUIDType(TypeDecorator):
    """
    UUID column stored natively on PostgreSQL and as 16 raw bytes elsewhere.

    Values always come back as ``uuid.UUID``. Binds accept a UUID, its raw
    bytes or its string form.
    """

    impl = LargeBinary
    cache_ok = True

    def load_dialect_impl(self, dialect):
        if dialect.name == "postgresql":
            return dialect.type_descriptor(PG_UUID(as_uuid=True))
        return dialect.type_descriptor(LargeBinary(16))

    @staticmethod
    def _coerce(value) -> uuid.UUID:
        if isinstance(value, uuid.UUID):
            return value
        if isinstance(value, (bytes, bytearray)):
            return uuid.UUID(bytes=bytes(value))
        return uuid.UUID(str(value))

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        coerced = self._coerce(value)
        return coerced if dialect.name == "postgresql" else coerced.bytes

    def process_result_value(self, value, dialect):
        return None if value is None else self._coerce(value)
