"""
terms.py - Codec for collateralized simple-interest terms contract parameters

A loan's terms are packed into a single 33-byte word (66 hex characters) that
the terms contract reads on-chain. Fields are concatenated big-endian with no
padding between them:

    nibble  0       4                        28     34 35   39 41                      64 66
            |tokIdx |principalAmount         |rate  |u|term|ci|collateralAmount       |gp|

ARCHITECTURE:
=============

1. LAYOUT (TERMS_LAYOUT):
   - One TermsField per sub-field: name, nibble offset, nibble width
   - Fields are read from the word as one arbitrary-precision integer by
     shift-and-mask, never by slicing the text

2. FROZEN DATACLASS (DecodedTermsParameters):
   - Every field typed; interest_rate is an exact Decimal
   - amortization_unit is the named enum, its raw code is a property

3. PURE FUNCTIONS:
   - decode_terms(word) -> DecodedTermsParameters
   - encode_terms(params) -> word
   - decode_terms(encode_terms(p)) == p for every in-range p
   - encode_terms(decode_terms(w)) == w for every lowercase w

Interest rate scaling:
    rate = raw / 10^4         (decode)
    raw  = rate * 10^4        (encode; must be an integer)
"""

from __future__ import annotations
from dataclasses import dataclass
from decimal import Context, Decimal, Inexact, InvalidOperation, Overflow, ROUND_HALF_EVEN
import string
from typing import Any, Dict, Tuple

from .core import (
    AmortizationUnit,
    EncodeOverflow,
    MalformedPackedWord,
    MAX_INTEREST_RATE_PRECISION,
    PACKED_TERMS_LENGTH,
)


_HEX_DIGITS = frozenset(string.hexdigits)

_NIBBLE_BITS = 4

# Rate scaling runs in this context, never the caller's. Inexact is trapped so
# a rate is rejected rather than rounded when its digits do not fit.
_TERMS_DECIMAL_CONTEXT = Context(
    prec=50,
    rounding=ROUND_HALF_EVEN,
    traps=[InvalidOperation, Overflow, Inexact],
)


# ============================================================================
# LAYOUT
# ============================================================================

@dataclass(frozen=True, slots=True)
class TermsField:
    """
    Position of one sub-field inside the packed word.

    Attributes:
        name: Attribute name on DecodedTermsParameters
        offset: Index of the field's first nibble, counted from the left
        width: Number of nibbles the field occupies
    """
    name: str
    offset: int
    width: int

    @property
    def max_value(self) -> int:
        return (1 << (self.width * _NIBBLE_BITS)) - 1

    @property
    def _shift(self) -> int:
        return (PACKED_TERMS_LENGTH - self.offset - self.width) * _NIBBLE_BITS

    def extract(self, word_value: int) -> int:
        """Read this field out of the packed word's integer value."""
        return (word_value >> self._shift) & self.max_value

    def render(self, value: int) -> str:
        """
        Format value as exactly `width` lowercase hex digits.

        Raises:
            EncodeOverflow: If value is negative or wider than the slot.
        """
        if value < 0:
            raise EncodeOverflow(self.name, f"negative value {value} cannot be encoded")
        if value > self.max_value:
            raise EncodeOverflow(
                self.name,
                f"value {value} exceeds {self.width}-nibble maximum {self.max_value}"
            )
        return format(value, f"0{self.width}x")


TERMS_LAYOUT: Tuple[TermsField, ...] = (
    TermsField("principal_token_index", 0, 4),
    TermsField("principal_amount", 4, 24),
    TermsField("interest_rate", 28, 6),
    TermsField("amortization_unit", 34, 1),
    TermsField("term_length", 35, 4),
    TermsField("collateral_token_index", 39, 2),
    TermsField("collateral_amount", 41, 23),
    TermsField("grace_period_in_days", 64, 2),
)


# ============================================================================
# DECODED PARAMETERS
# ============================================================================

@dataclass(frozen=True, slots=True)
class DecodedTermsParameters:
    """
    Immutable, fully decoded terms contract parameters.

    Attributes:
        principal_token_index: Registry index of the principal token (0-65535)
        principal_amount: Principal in the token's smallest unit
        interest_rate: Exact rate, e.g. Decimal("0.0500")
        amortization_unit: Repayment schedule granularity
        term_length: Number of amortization units in the loan term
        collateral_token_index: Registry index of the collateral token (0-255)
        collateral_amount: Collateral in the token's smallest unit
        grace_period_in_days: Days after a missed payment before seizure (0-255)
    """
    principal_token_index: int
    principal_amount: int
    interest_rate: Decimal
    amortization_unit: AmortizationUnit
    term_length: int
    collateral_token_index: int
    collateral_amount: int
    grace_period_in_days: int

    def __post_init__(self):
        for name in (
            "principal_token_index", "principal_amount", "term_length",
            "collateral_token_index", "collateral_amount", "grace_period_in_days",
        ):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int):
                raise TypeError(f"{name} must be int, got {type(value)}")

        if not isinstance(self.interest_rate, Decimal):
            if isinstance(self.interest_rate, bool):
                raise TypeError("interest_rate must be Decimal")
            object.__setattr__(self, 'interest_rate', Decimal(str(self.interest_rate)))
        if not self.interest_rate.is_finite():
            raise ValueError(f"interest_rate must be finite, got {self.interest_rate}")

        if isinstance(self.amortization_unit, str):
            object.__setattr__(self, 'amortization_unit', AmortizationUnit(self.amortization_unit))
        elif isinstance(self.amortization_unit, int):
            object.__setattr__(self, 'amortization_unit', AmortizationUnit.from_code(self.amortization_unit))
        elif not isinstance(self.amortization_unit, AmortizationUnit):
            raise TypeError(f"amortization_unit must be AmortizationUnit, got {type(self.amortization_unit)}")

    @property
    def amortization_unit_code(self) -> int:
        """Raw numeric code of the amortization unit as stored on-chain."""
        return self.amortization_unit.code

    @property
    def interest_rate_fixed_point(self) -> int:
        """Interest rate scaled by 10^4, as stored on-chain."""
        return _scale_rate_up(self.interest_rate)

    def to_dict(self) -> Dict[str, Any]:
        """JSON-ready view: big integers and the rate as strings."""
        return {
            "principalTokenIndex": self.principal_token_index,
            "principalAmount": str(self.principal_amount),
            "interestRate": str(self.interest_rate),
            "amortizationUnit": self.amortization_unit.value,
            "amortizationUnitCode": self.amortization_unit_code,
            "termLength": self.term_length,
            "collateralTokenIndex": self.collateral_token_index,
            "collateralAmount": str(self.collateral_amount),
            "gracePeriodInDays": self.grace_period_in_days,
        }


# ============================================================================
# RATE SCALING
# ============================================================================

def _scale_rate_down(fixed_point: int) -> Decimal:
    # The rate slot holds at most 8 digits, well inside the context precision
    return Decimal(fixed_point).scaleb(-MAX_INTEREST_RATE_PRECISION, context=_TERMS_DECIMAL_CONTEXT)


def _scale_rate_up(rate: Decimal) -> int:
    """
    Convert a decimal rate back to its fixed-point integer.

    Raises:
        EncodeOverflow: If the rate has more than 4 decimal places, or more
                        significant digits than the codec context can hold.
    """
    try:
        scaled = rate.scaleb(MAX_INTEREST_RATE_PRECISION, context=_TERMS_DECIMAL_CONTEXT)
        integral = scaled.to_integral_value(context=_TERMS_DECIMAL_CONTEXT)
    except Inexact as exc:
        raise EncodeOverflow("interest_rate", f"{rate} cannot be scaled without rounding") from exc
    except InvalidOperation as exc:
        raise EncodeOverflow("interest_rate", f"cannot scale {rate}") from exc
    if scaled != integral:
        raise EncodeOverflow(
            "interest_rate",
            f"{rate} has more than {MAX_INTEREST_RATE_PRECISION} decimal places"
        )
    return int(integral)


# ============================================================================
# DECODE / ENCODE
# ============================================================================

def _parse_word(word: str) -> int:
    if not isinstance(word, str):
        raise MalformedPackedWord(f"Packed terms must be a string, got {type(word).__name__}")
    if len(word) != PACKED_TERMS_LENGTH:
        raise MalformedPackedWord(
            f"Packed terms must be {PACKED_TERMS_LENGTH} hex characters, got {len(word)}"
        )
    # int(..., 16) alone would also accept "0x", "_" and surrounding whitespace
    if not _HEX_DIGITS.issuperset(word):
        raise MalformedPackedWord(f"Packed terms contain non-hex characters: {word!r}")
    return int(word, 16)


def decode_terms(word: str) -> DecodedTermsParameters:
    """
    Decode a packed terms word into its typed parameters.

    Args:
        word: Exactly 66 hex characters, no "0x" prefix, either case

    Returns:
        DecodedTermsParameters with the interest rate scaled down by 10^4

    Raises:
        MalformedPackedWord: If word has the wrong length or non-hex characters.
        UnknownAmortizationUnit: If the unit nibble is outside [0, 4].
    """
    value = _parse_word(word)
    raw = {f.name: f.extract(value) for f in TERMS_LAYOUT}

    return DecodedTermsParameters(
        principal_token_index=raw["principal_token_index"],
        principal_amount=raw["principal_amount"],
        interest_rate=_scale_rate_down(raw["interest_rate"]),
        amortization_unit=AmortizationUnit.from_code(raw["amortization_unit"]),
        term_length=raw["term_length"],
        collateral_token_index=raw["collateral_token_index"],
        collateral_amount=raw["collateral_amount"],
        grace_period_in_days=raw["grace_period_in_days"],
    )


def encode_terms(params: DecodedTermsParameters) -> str:
    """
    Pack parameters into the 66-character terms word (lowercase hex).

    Raises:
        EncodeOverflow: If any field is negative, too wide for its slot,
                        or the interest rate has more than 4 decimal places.
    """
    raw = {
        "principal_token_index": params.principal_token_index,
        "principal_amount": params.principal_amount,
        "interest_rate": _scale_rate_up(params.interest_rate),
        "amortization_unit": params.amortization_unit.code,
        "term_length": params.term_length,
        "collateral_token_index": params.collateral_token_index,
        "collateral_amount": params.collateral_amount,
        "grace_period_in_days": params.grace_period_in_days,
    }
    return "".join(f.render(raw[f.name]) for f in TERMS_LAYOUT)
