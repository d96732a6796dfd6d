"""A number that serialises either as a JSON number or as a hex string."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

_U32_MAX = (1 << 32) - 1
_U64_MAX = (1 << 64) - 1
_U128_MAX = (1 << 128) - 1
_U256_MAX = (1 << 256) - 1


class TryFromIntError(ValueError):
    """Raised when a number does not fit the requested integer width."""


@dataclass(frozen=True)
class NumberOrHex:
    """Either a plain u64 number or a u256 value carried as a hex string.

    The hex form keeps big integers intact for JSON consumers that would
    otherwise lose precision.
    """

    value: int = 0
    is_hex: bool = False

    def __post_init__(self) -> None:
        if isinstance(self.value, bool) or not isinstance(self.value, int):
            raise TypeError(f"expected an int, got {type(self.value).__name__}")
        limit = _U256_MAX if self.is_hex else _U64_MAX
        if not 0 <= self.value <= limit:
            kind = "U256" if self.is_hex else "u64"
            raise ValueError(f"{self.value} is out of range for {kind}")

    def __int__(self) -> int:
        return self.value

    def into_u256(self) -> int:
        """The value as an unsigned 256-bit integer."""
        return self.value

    def _bounded(self, limit: int) -> int:
        if self.value > limit:
            raise TryFromIntError(f"{self.value} does not fit into the target integer")
        return self.value

    def to_u32(self) -> int:
        return self._bounded(_U32_MAX)

    def to_u64(self) -> int:
        return self._bounded(_U64_MAX)

    def to_u128(self) -> int:
        return self._bounded(_U128_MAX)

    def to_json(self) -> int | str:
        """The JSON form: a number, or a minimal ``0x`` hex string."""
        if self.is_hex:
            return f"0x{self.value:x}"
        return self.value

    @classmethod
    def from_json(cls, value: Any) -> NumberOrHex:
        """Parse a JSON number (u64) or a ``0x`` prefixed hex string (U256)."""
        if isinstance(value, int) and not isinstance(value, bool):
            if not 0 <= value <= _U64_MAX:
                raise ValueError(f"number {value} is not a valid u64")
            return cls(value)
        if isinstance(value, str):
            if not value.startswith("0x"):
                raise ValueError("hex string must start with 0x")
            digits = value[2:]
            if not digits:
                raise ValueError("hex string has no digits")
            if len(digits) > 64:
                raise ValueError("hex string is too long for U256")
            try:
                parsed = int(digits, 16)
            except ValueError:
                raise ValueError(f"invalid hex string: {value!r}") from None
            if not all(c in "0123456789abcdefABCDEF" for c in digits):
                raise ValueError(f"invalid hex string: {value!r}")
            return cls(parsed, is_hex=True)
        raise ValueError(f"data did not match any variant of NumberOrHex: {value!r}")