"""
Core types and constants for debt order assembly.

This module provides the foundational pieces shared by the codec and the assembler:
1. Constants: fixed-point scaling, packed word geometry, null sentinels
2. Enums: AmortizationUnit (ordered, code = ordinal)
3. Exceptions: DebtOrderError and the typed failure taxonomy
4. Immutable data structures: ECDSASignature and NULL_SIGNATURE
5. Protocols: TokenIndexResolver for the external token registry

Nothing in this module performs I/O.
"""

from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Protocol, runtime_checkable


# ============================================================================
# CONSTANTS
# ============================================================================

# Interest rates are stored on-chain as integers scaled up by 10^4,
# i.e. at most 4 decimal digits of precision. The codec shifts the exponent
# by MAX_INTEREST_RATE_PRECISION; FIXED_POINT_SCALING_FACTOR is the same
# scale as an integer, exported for callers doing on-chain integer math.
MAX_INTEREST_RATE_PRECISION = 4
FIXED_POINT_SCALING_FACTOR = 10 ** MAX_INTEREST_RATE_PRECISION

# The packed terms contract parameters: 33 bytes as hex, no "0x" prefix.
PACKED_TERMS_LENGTH = 66

NULL_BYTES32 = "0x" + "0" * 64
NULL_ADDRESS = "0x" + "0" * 40


# ============================================================================
# ENUMS
# ============================================================================

class AmortizationUnit(Enum):
    """
    Time granularity of a loan's repayment schedule.

    Declaration order is significant: the on-chain code of a unit is its
    ordinal (HOURS=0 ... YEARS=4).
    """
    HOURS = "hours"
    DAYS = "days"
    WEEKS = "weeks"
    MONTHS = "months"
    YEARS = "years"

    @property
    def code(self) -> int:
        """Return the numeric code stored in the packed terms word."""
        return _AMORTIZATION_UNITS.index(self)

    @classmethod
    def from_code(cls, code: int) -> 'AmortizationUnit':
        """
        Map a numeric code to its unit.

        Raises:
            UnknownAmortizationUnit: If code is outside [0, 4].
        """
        if isinstance(code, bool) or not isinstance(code, int) or not 0 <= code < len(_AMORTIZATION_UNITS):
            raise UnknownAmortizationUnit(code)
        return _AMORTIZATION_UNITS[code]


_AMORTIZATION_UNITS = tuple(AmortizationUnit)


# ============================================================================
# EXCEPTIONS
# ============================================================================

class DebtOrderError(Exception):
    """Base exception for all debt order errors."""
    pass


class MalformedPackedWord(DebtOrderError):
    """Raised when packed terms parameters are not exactly 66 hexadecimal characters."""
    pass


class UnknownAmortizationUnit(DebtOrderError):
    """Raised when the amortization unit code lies outside [0, 4]."""

    def __init__(self, code):
        super().__init__(f"Unknown amortization unit code: {code!r}")
        self.code = code


class EncodeOverflow(DebtOrderError):
    """Raised when a field cannot be represented in its fixed-width slot."""

    def __init__(self, field_name: str, message: str):
        super().__init__(f"{field_name}: {message}")
        self.field_name = field_name


class SignatureParseError(DebtOrderError):
    """Raised when a present signature field is not a well-formed {r, s, v} payload."""

    def __init__(self, field_name: str, message: str):
        super().__init__(f"{field_name}: {message}")
        self.field_name = field_name


class MalformedOrderField(DebtOrderError):
    """Raised when a numeric or timestamp field of a relayer order cannot be parsed."""

    def __init__(self, field_name: str, message: str):
        super().__init__(f"{field_name}: {message}")
        self.field_name = field_name


class ResolutionError(DebtOrderError):
    """
    Raised when a token index cannot be resolved.

    Covers unknown indices, registry failures and lookup timeouts. The
    underlying exception, if any, is chained as __cause__.
    """

    def __init__(self, index: Optional[int], message: str):
        super().__init__(message)
        self.index = index


# ============================================================================
# SIGNATURES
# ============================================================================

@dataclass(frozen=True, slots=True)
class ECDSASignature:
    """
    An ECDSA signature over a debt order.

    Attributes:
        r: 32-byte hex string
        s: 32-byte hex string
        v: Recovery id (27/28, or 0 for the null signature)
    """
    r: str
    s: str
    v: int

    def __post_init__(self):
        if not isinstance(self.r, str) or not isinstance(self.s, str):
            raise TypeError("Signature r and s must be strings")
        if isinstance(self.v, bool) or not isinstance(self.v, int):
            raise TypeError(f"Signature v must be int, got {type(self.v)}")

    @property
    def is_null(self) -> bool:
        return self == NULL_SIGNATURE

    def to_dict(self) -> dict:
        return {"r": self.r, "s": self.s, "v": self.v}


# Stands in for a signature the relayer did not supply.
NULL_SIGNATURE = ECDSASignature(r=NULL_BYTES32, s=NULL_BYTES32, v=0)


# ============================================================================
# PROTOCOLS
# ============================================================================

@runtime_checkable
class TokenIndexResolver(Protocol):
    """
    Read-only interface to the on-chain token registry.

    Maps a small integer token index to the token's symbol and contract
    address. Implementations are typically network-backed, so both lookups
    are coroutines and either may fail; failures should be raised as
    ResolutionError, but the assembler wraps anything else it receives.
    """

    async def get_symbol(self, index: int) -> str:
        """Return the token symbol registered at index."""
        ...

    async def get_address(self, index: int) -> str:
        """Return the token contract address registered at index."""
        ...
