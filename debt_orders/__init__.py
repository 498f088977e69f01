"""
debt_orders - Debt order assembly for collateralized simple-interest loans

Decodes the packed terms contract parameters of a relayer debt order,
resolves its token indices through a token registry and assembles an
immutable DebtOrder.

Usage:
    from debt_orders import (
        DebtOrderAssembler, StaticTokenRegistry, decode_terms, encode_terms,
    )

    params = decode_terms(order_json["termsContractParameters"])
    params.interest_rate          # Decimal("0.0500")
    params.amortization_unit      # AmortizationUnit.MONTHS
    encode_terms(params)          # the original word

    registry = StaticTokenRegistry({1: ("DAI", dai_address), 2: ("WETH", weth_address)})
    assembler = DebtOrderAssembler(registry)
    order = await assembler.from_raw_order(order_json)
"""

# Core types
from .core import (
    AmortizationUnit,
    ECDSASignature,
    NULL_SIGNATURE,
    NULL_BYTES32,
    NULL_ADDRESS,
    TokenIndexResolver,
    FIXED_POINT_SCALING_FACTOR,
    MAX_INTEREST_RATE_PRECISION,
    PACKED_TERMS_LENGTH,
    DebtOrderError,
    MalformedPackedWord,
    UnknownAmortizationUnit,
    EncodeOverflow,
    SignatureParseError,
    MalformedOrderField,
    ResolutionError,
)

# Terms contract parameter codec
from .terms import (
    TermsField,
    TERMS_LAYOUT,
    DecodedTermsParameters,
    decode_terms,
    encode_terms,
)

# Durations
from .time_interval import (
    TimeInterval,
    maturity_timestamp,
)

# Token registry
from .registry import StaticTokenRegistry

# Configuration
from .config import (
    AssemblerConfig,
    DEFAULT_RESOLVER_TIMEOUT,
    configure_logging,
)

# Assembly
from .assembler import (
    RawOrder,
    LoanTerms,
    DebtOrder,
    DebtOrderAssembler,
    parse_amount,
    parse_expiration,
    parse_signature,
)

__all__ = [
    # Core
    'AmortizationUnit', 'ECDSASignature', 'NULL_SIGNATURE', 'NULL_BYTES32', 'NULL_ADDRESS',
    'TokenIndexResolver',
    'FIXED_POINT_SCALING_FACTOR', 'MAX_INTEREST_RATE_PRECISION', 'PACKED_TERMS_LENGTH',
    # Exceptions
    'DebtOrderError', 'MalformedPackedWord', 'UnknownAmortizationUnit', 'EncodeOverflow',
    'SignatureParseError', 'MalformedOrderField', 'ResolutionError',
    # Codec
    'TermsField', 'TERMS_LAYOUT', 'DecodedTermsParameters', 'decode_terms', 'encode_terms',
    # Durations
    'TimeInterval', 'maturity_timestamp',
    # Registry
    'StaticTokenRegistry',
    # Config
    'AssemblerConfig', 'DEFAULT_RESOLVER_TIMEOUT', 'configure_logging',
    # Assembly
    'RawOrder', 'LoanTerms', 'DebtOrder', 'DebtOrderAssembler',
    'parse_amount', 'parse_expiration', 'parse_signature',
]

__version__ = '1.0.0'
