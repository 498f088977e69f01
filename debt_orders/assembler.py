"""
assembler.py - Build structured debt orders from relayer payloads

ARCHITECTURE:
=============

1. FROZEN DATACLASSES:
   - RawOrder: the relayer payload, fields as received (strings / None)
   - LoanTerms: decoded terms parameters plus resolved token symbols/addresses
   - DebtOrder: the assembled, immutable order

2. PURE NORMALIZATION FUNCTIONS:
   - parse_amount(value, field_name) -> int (absent -> 0)
   - parse_expiration(value) -> epoch seconds
   - parse_signature(value, field_name) -> ECDSASignature (absent -> NULL_SIGNATURE)

3. DebtOrderAssembler:
   - The only place that talks to the TokenIndexResolver
   - Four lookups run concurrently; the first failure cancels the rest
   - Any error aborts assembly; a DebtOrder is never partially built
"""

from __future__ import annotations
import asyncio
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from decimal import Decimal
import json
import logging
import re
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Mapping, Optional, Tuple, Union

from .config import AssemblerConfig
from .core import (
    ECDSASignature,
    MalformedOrderField,
    NULL_ADDRESS,
    NULL_SIGNATURE,
    ResolutionError,
    SignatureParseError,
    TokenIndexResolver,
)
from .terms import DecodedTermsParameters, decode_terms


logger = logging.getLogger(__name__)

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

# ASCII digits only; int() alone would also take "_" separators and other scripts' digits
_DECIMAL_AMOUNT = re.compile(r"[0-9]+")
_HEX_AMOUNT = re.compile(r"0[xX][0-9a-fA-F]+")


# ============================================================================
# RAW RELAYER PAYLOAD
# ============================================================================

# Relayer JSON key -> RawOrder attribute
RAW_ORDER_KEYS: Dict[str, str] = {
    "kernelAddress": "kernel_address",
    "repaymentRouterAddress": "repayment_router_address",
    "principalAmount": "principal_amount",
    "principalTokenAddress": "principal_token_address",
    "debtorAddress": "debtor_address",
    "debtorFee": "debtor_fee",
    "creditorAddress": "creditor_address",
    "creditorFee": "creditor_fee",
    "relayerAddress": "relayer_address",
    "relayerFee": "relayer_fee",
    "underwriterAddress": "underwriter_address",
    "underwriterFee": "underwriter_fee",
    "underwriterRiskRating": "underwriter_risk_rating",
    "termsContractAddress": "terms_contract_address",
    "termsContractParameters": "terms_contract_parameters",
    "expirationTime": "expiration_time",
    "salt": "salt",
    "debtorSignature": "debtor_signature",
    "creditorSignature": "creditor_signature",
    "underwriterSignature": "underwriter_signature",
    "relayerSignature": "relayer_signature",
}


@dataclass(frozen=True, slots=True)
class RawOrder:
    """
    A debt order exactly as the relayer sent it.

    Nothing is validated here; DebtOrderAssembler normalizes every field.
    Numeric fields are decimal (or 0x-hex) strings, signatures are JSON
    strings, expiration_time is ISO-8601 text.
    """
    terms_contract_parameters: Optional[str] = None
    expiration_time: Optional[Any] = None
    kernel_address: Optional[str] = None
    repayment_router_address: Optional[str] = None
    principal_amount: Optional[Any] = None
    principal_token_address: Optional[str] = None
    debtor_address: Optional[str] = None
    debtor_fee: Optional[Any] = None
    creditor_address: Optional[str] = None
    creditor_fee: Optional[Any] = None
    relayer_address: Optional[str] = None
    relayer_fee: Optional[Any] = None
    underwriter_address: Optional[str] = None
    underwriter_fee: Optional[Any] = None
    underwriter_risk_rating: Optional[Any] = None
    terms_contract_address: Optional[str] = None
    salt: Optional[Any] = None
    debtor_signature: Optional[Any] = None
    creditor_signature: Optional[Any] = None
    underwriter_signature: Optional[Any] = None
    relayer_signature: Optional[Any] = None

    @classmethod
    def from_mapping(cls, payload: Mapping[str, Any]) -> 'RawOrder':
        """Build from the relayer's camelCase JSON object. Unknown keys are ignored."""
        if not isinstance(payload, Mapping):
            raise TypeError(f"Relayer order must be a mapping, got {type(payload).__name__}")
        return cls(**{
            attr: payload[key]
            for key, attr in RAW_ORDER_KEYS.items()
            if key in payload
        })


# ============================================================================
# NORMALIZATION
# ============================================================================

def parse_amount(value: Any, field_name: str) -> int:
    """
    Normalize a relayer numeric field to a non-negative int.

    Absent values (None or blank) become 0. Strings may be decimal or
    0x-prefixed hex.

    Raises:
        MalformedOrderField: If the value is not a non-negative integer.
    """
    if value is None:
        return 0
    if isinstance(value, bool):
        raise MalformedOrderField(field_name, f"expected an integer, got {value!r}")

    if isinstance(value, int):
        amount = value
    elif isinstance(value, Decimal):
        if not value.is_finite() or value != value.to_integral_value():
            raise MalformedOrderField(field_name, f"expected an integer, got {value}")
        amount = int(value)
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return 0
        if _HEX_AMOUNT.fullmatch(text):
            amount = int(text, 16)
        elif _DECIMAL_AMOUNT.fullmatch(text):
            amount = int(text, 10)
        else:
            raise MalformedOrderField(field_name, f"not an integer: {value!r}")
    else:
        raise MalformedOrderField(field_name, f"unsupported type {type(value).__name__}")

    if amount < 0:
        raise MalformedOrderField(field_name, f"must be non-negative, got {amount}")
    return amount


def parse_expiration(value: Any, field_name: str = "expirationTime") -> int:
    """
    Convert a human-readable expiration time to UNIX seconds.

    Accepts ISO-8601 text ("2025-01-01T00:00:00Z"), a datetime, or an epoch
    integer (int or digit string). Naive times are taken as UTC. Fractional
    seconds are floored.

    Raises:
        MalformedOrderField: If the value is missing or unparseable.
    """
    if value is None or (isinstance(value, str) and not value.strip()):
        raise MalformedOrderField(field_name, "expiration time is required")
    if isinstance(value, bool):
        raise MalformedOrderField(field_name, f"unsupported value {value!r}")
    if isinstance(value, int):
        return value

    if isinstance(value, datetime):
        moment = value
    elif isinstance(value, str):
        text = value.strip()
        if _DECIMAL_AMOUNT.fullmatch(text):
            return int(text)
        if text[-1] in "Zz":
            text = text[:-1] + "+00:00"
        try:
            moment = datetime.fromisoformat(text)
        except ValueError as exc:
            raise MalformedOrderField(field_name, f"not an ISO-8601 time: {value!r}") from exc
    else:
        raise MalformedOrderField(field_name, f"unsupported type {type(value).__name__}")

    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return (moment - _EPOCH) // timedelta(seconds=1)


def parse_signature(serialized: Any, field_name: str) -> ECDSASignature:
    """
    Parse a relayer signature field.

    Args:
        serialized: JSON text (or an already-decoded mapping) of the form
                    {"r": "0x..", "s": "0x..", "v": 27}, or None
        field_name: Used in error messages

    Returns:
        The signature, or NULL_SIGNATURE when the field is absent (None,
        blank, or JSON null).

    Raises:
        SignatureParseError: If a present value is not valid JSON or lacks
                             string r/s and integer v.
    """
    if serialized is None:
        return NULL_SIGNATURE
    if isinstance(serialized, ECDSASignature):
        return serialized

    if isinstance(serialized, str):
        if not serialized.strip():
            return NULL_SIGNATURE
        try:
            payload = json.loads(serialized)
        except json.JSONDecodeError as exc:
            raise SignatureParseError(field_name, f"not valid JSON: {exc.msg}") from exc
        if payload is None:
            return NULL_SIGNATURE
    else:
        payload = serialized

    if not isinstance(payload, Mapping):
        raise SignatureParseError(field_name, f"expected an object, got {type(payload).__name__}")

    r = payload.get("r")
    s = payload.get("s")
    v = payload.get("v")
    if not isinstance(r, str) or not r:
        raise SignatureParseError(field_name, "missing or non-string 'r'")
    if not isinstance(s, str) or not s:
        raise SignatureParseError(field_name, "missing or non-string 's'")
    if isinstance(v, str) and v.strip().isdigit():
        v = int(v)
    if isinstance(v, bool) or not isinstance(v, int):
        raise SignatureParseError(field_name, "missing or non-integer 'v'")

    return ECDSASignature(r=r, s=s, v=v)


# ============================================================================
# ASSEMBLED ORDER
# ============================================================================

@dataclass(frozen=True, slots=True)
class LoanTerms:
    """
    Decoded terms parameters with both token indices resolved.

    Attributes:
        parameters: The decoded packed word
        principal_token_symbol: e.g. "DAI"
        principal_token_address: Principal token contract address
        collateral_token_symbol: e.g. "WETH"
        collateral_token_address: Collateral token contract address
    """
    parameters: DecodedTermsParameters
    principal_token_symbol: str
    principal_token_address: str
    collateral_token_symbol: str
    collateral_token_address: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            **self.parameters.to_dict(),
            "principalTokenSymbol": self.principal_token_symbol,
            "principalTokenAddress": self.principal_token_address,
            "collateralTokenSymbol": self.collateral_token_symbol,
            "collateralTokenAddress": self.collateral_token_address,
        }


@dataclass(frozen=True, slots=True)
class DebtOrder:
    """
    A fully assembled collateralized simple-interest debt order.

    Fees, salt and risk rating are 0 when the relayer omitted them;
    signatures are NULL_SIGNATURE when omitted. Addresses are passed through
    as received.
    """
    kernel_version: Optional[str]
    issuance_version: Optional[str]
    principal_amount: int
    principal_token: Optional[str]
    debtor: Optional[str]
    debtor_fee: int
    creditor: Optional[str]
    creditor_fee: int
    relayer: Optional[str]
    relayer_fee: int
    underwriter: Optional[str]
    underwriter_fee: int
    underwriter_risk_rating: int
    terms_contract: Optional[str]
    terms_contract_parameters: str
    expiration_timestamp_in_sec: int
    salt: int
    debtor_signature: ECDSASignature
    creditor_signature: ECDSASignature
    underwriter_signature: ECDSASignature
    relayer_signature: ECDSASignature
    terms: LoanTerms

    @property
    def total_fees(self) -> int:
        return self.debtor_fee + self.creditor_fee + self.relayer_fee + self.underwriter_fee

    def to_dict(self) -> Dict[str, Any]:
        """JSON-ready camelCase view; integers that may exceed 2^53 become strings."""
        return {
            "kernelVersion": self.kernel_version,
            "issuanceVersion": self.issuance_version,
            "principalAmount": str(self.principal_amount),
            "principalToken": self.principal_token,
            "debtor": self.debtor,
            "debtorFee": str(self.debtor_fee),
            "creditor": self.creditor,
            "creditorFee": str(self.creditor_fee),
            "relayer": self.relayer,
            "relayerFee": str(self.relayer_fee),
            "underwriter": self.underwriter,
            "underwriterFee": str(self.underwriter_fee),
            "underwriterRiskRating": str(self.underwriter_risk_rating),
            "termsContract": self.terms_contract,
            "termsContractParameters": self.terms_contract_parameters,
            "expirationTimestampInSec": str(self.expiration_timestamp_in_sec),
            "salt": str(self.salt),
            "debtorSignature": self.debtor_signature.to_dict(),
            "creditorSignature": self.creditor_signature.to_dict(),
            "underwriterSignature": self.underwriter_signature.to_dict(),
            "relayerSignature": self.relayer_signature.to_dict(),
            **self.terms.to_dict(),
        }


# ============================================================================
# ASSEMBLER
# ============================================================================

Lookup = Callable[[int], Awaitable[str]]


async def _cancel_all(tasks: Iterable[asyncio.Future]) -> None:
    tasks = list(tasks)
    for task in tasks:
        task.cancel()
    await asyncio.gather(*tasks, return_exceptions=True)


class DebtOrderAssembler:
    """
    Assembles DebtOrders from relayer payloads.

    The resolver is the only collaborator; it is injected so that the
    composition root decides whether lookups hit a contract, a cache or a
    StaticTokenRegistry.

    Example:
        registry = StaticTokenRegistry({1: ("DAI", dai_address), 2: ("WETH", weth_address)})
        assembler = DebtOrderAssembler(registry, AssemblerConfig(resolver_timeout=5))
        order = await assembler.from_raw_order(relayer_json)
    """

    def __init__(self, resolver: TokenIndexResolver, config: Optional[AssemblerConfig] = None):
        self._resolver = resolver
        self._config = config or AssemblerConfig()

    @property
    def config(self) -> AssemblerConfig:
        return self._config

    async def from_raw_order(self, raw: Union[RawOrder, Mapping[str, Any]]) -> DebtOrder:
        """
        Assemble a DebtOrder.

        Steps, each aborting on its first error: normalize scalar fields,
        parse signatures, decode the packed terms word, resolve both token
        indices.

        Raises:
            MalformedOrderField: Unparseable amount, fee, salt or expiration.
            SignatureParseError: A present signature is malformed.
            MalformedPackedWord / UnknownAmortizationUnit: Bad terms word.
            ResolutionError: A token lookup failed or timed out.
        """
        order = raw if isinstance(raw, RawOrder) else RawOrder.from_mapping(raw)

        scalars = dict(
            kernel_version=order.kernel_address,
            issuance_version=order.repayment_router_address,
            principal_amount=parse_amount(order.principal_amount, "principalAmount"),
            principal_token=order.principal_token_address,
            debtor=order.debtor_address,
            debtor_fee=parse_amount(order.debtor_fee, "debtorFee"),
            creditor=order.creditor_address,
            creditor_fee=parse_amount(order.creditor_fee, "creditorFee"),
            relayer=order.relayer_address,
            relayer_fee=parse_amount(order.relayer_fee, "relayerFee"),
            underwriter=order.underwriter_address,
            underwriter_fee=parse_amount(order.underwriter_fee, "underwriterFee"),
            underwriter_risk_rating=parse_amount(order.underwriter_risk_rating, "underwriterRiskRating"),
            terms_contract=order.terms_contract_address,
            expiration_timestamp_in_sec=parse_expiration(order.expiration_time),
            salt=parse_amount(order.salt, "salt"),
            debtor_signature=parse_signature(order.debtor_signature, "debtorSignature"),
            creditor_signature=parse_signature(order.creditor_signature, "creditorSignature"),
            underwriter_signature=parse_signature(order.underwriter_signature, "underwriterSignature"),
            relayer_signature=parse_signature(order.relayer_signature, "relayerSignature"),
        )

        params = decode_terms(order.terms_contract_parameters)
        logger.debug(
            "decoded terms: principal index %s, collateral index %s, rate %s, %s x %s",
            params.principal_token_index, params.collateral_token_index,
            params.interest_rate, params.term_length, params.amortization_unit.value,
        )

        terms = await self.resolve_terms(params)

        principal_token = scalars["principal_token"]
        if principal_token and principal_token.lower() != terms.principal_token_address.lower():
            logger.warning(
                "principalTokenAddress %s differs from registry address %s for index %s",
                principal_token, terms.principal_token_address, params.principal_token_index,
            )

        debt_order = DebtOrder(
            terms_contract_parameters=order.terms_contract_parameters,
            terms=terms,
            **scalars,
        )
        logger.info(
            "assembled debt order: %s %s against %s %s",
            debt_order.principal_amount, terms.principal_token_symbol,
            params.collateral_amount, terms.collateral_token_symbol,
        )
        return debt_order

    async def resolve_terms(self, params: DecodedTermsParameters) -> LoanTerms:
        """
        Resolve both token indices of decoded terms.

        Issues the four lookups concurrently. On the first failure the
        remaining lookups are cancelled; if the configured timeout elapses
        first, all are cancelled.

        Raises:
            ResolutionError: On any lookup failure or timeout.
        """
        principal = params.principal_token_index
        collateral = params.collateral_token_index
        lookups: List[Tuple[str, Lookup, int]] = [
            ("symbol", self._resolver.get_symbol, principal),
            ("address", self._resolver.get_address, principal),
            ("symbol", self._resolver.get_symbol, collateral),
            ("address", self._resolver.get_address, collateral),
        ]
        tasks = [
            asyncio.ensure_future(self._lookup(kind, lookup, index))
            for kind, lookup, index in lookups
        ]

        timeout = self._config.resolver_timeout
        try:
            done, pending = await asyncio.wait(
                tasks, timeout=timeout, return_when=asyncio.FIRST_EXCEPTION
            )
        except asyncio.CancelledError:
            await _cancel_all(tasks)
            raise

        if pending:
            await _cancel_all(pending)

        # Read every finished task's exception so none goes unretrieved
        errors = [task.exception() for task in tasks if task in done]
        errors = [exc for exc in errors if exc is not None]
        if errors:
            logger.warning("token resolution failed: %s", errors[0])
            raise errors[0]
        if pending:
            logger.warning(
                "token resolution for indices %s/%s timed out after %ss",
                principal, collateral, timeout,
            )
            raise ResolutionError(
                None,
                f"Token resolution for indices {principal}/{collateral} timed out after {timeout}s"
            )

        principal_symbol, principal_address, collateral_symbol, collateral_address = (
            task.result() for task in tasks
        )
        return LoanTerms(
            parameters=params,
            principal_token_symbol=principal_symbol,
            principal_token_address=principal_address,
            collateral_token_symbol=collateral_symbol,
            collateral_token_address=collateral_address,
        )

    async def _lookup(self, kind: str, lookup: Lookup, index: int) -> str:
        try:
            value = await lookup(index)
        except ResolutionError:
            raise
        except Exception as exc:
            raise ResolutionError(
                index, f"Token {kind} lookup for index {index} failed: {exc}"
            ) from exc

        # The registry answers unknown indices with empty values
        if not isinstance(value, str) or not value or value == NULL_ADDRESS:
            raise ResolutionError(index, f"Token index {index} has no registered {kind}")
        logger.debug("token index %s %s -> %s", index, kind, value)
        return value
