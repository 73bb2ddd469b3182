from decimal import Decimal

from sqlalchemy import Numeric, String
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.types import TypeDecorator


class Base(DeclarativeBase):
    pass


# Decimal digits of 2**256 - 1
UINT256_DIGITS = 78


class Uint256(TypeDecorator):
    """
    On-chain uint256 quantity, read back as a plain Python int.

    Stored as NUMERIC(78, 0) so every 256-bit value fits exactly. SQLite
    has no exact decimal of that width, so there the value is kept as a
    zero-padded decimal string: lossless, and comparisons between two
    padded values still order numerically.
    """

    impl = Numeric(UINT256_DIGITS, 0)
    cache_ok = True

    def load_dialect_impl(self, dialect):
        if dialect.name == "sqlite":
            return dialect.type_descriptor(String(UINT256_DIGITS))
        return dialect.type_descriptor(Numeric(UINT256_DIGITS, 0))

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        value = int(value)
        if dialect.name == "sqlite":
            return str(value).zfill(UINT256_DIGITS)
        return Decimal(value)

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return int(value)


# Column widths for hex-encoded chain identifiers
ADDRESS_LENGTH = 42
HASH_LENGTH = 66
