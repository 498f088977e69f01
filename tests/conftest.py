"""
conftest.py - Shared pytest fixtures for debt order tests

Provides common fixtures used across unit and functional tests:
- Packed terms words (hand-written and built from fields)
- Token registries and fake resolvers
- Relayer order payloads
- Assemblers
"""

import pytest
from decimal import Decimal
from typing import Any, Dict

from debt_orders import (
    AmortizationUnit,
    AssemblerConfig,
    DebtOrderAssembler,
    DecodedTermsParameters,
    StaticTokenRegistry,
    TERMS_LAYOUT,
)

from tests.fake_resolver import FakeResolver


DAI_ADDRESS = "0x" + "a" * 40
WETH_ADDRESS = "0x" + "b" * 40
KERNEL_ADDRESS = "0x" + "1" * 40
REPAYMENT_ROUTER_ADDRESS = "0x" + "2" * 40
TERMS_CONTRACT_ADDRESS = "0x" + "3" * 40
DEBTOR_ADDRESS = "0x" + "4" * 40

# principal index 1, 10^18 principal, 5.00%, months, 12 terms,
# collateral index 2, 2 * 10^18 collateral, 7 day grace period
SCENARIO_WORD = (
    "0001"
    "000000000de0b6b3a7640000"
    "0001f4"
    "3"
    "000c"
    "02"
    "00000001bc16d674ec80000"
    "07"
)

ZERO_WORD = "0" * 66

DEBTOR_SIGNATURE_JSON = (
    '{"r": "0x' + "c" * 64 + '", "s": "0x' + "d" * 64 + '", "v": 27}'
)


# =============================================================================
# HELPER FUNCTIONS
# =============================================================================

def build_word(**raw: int) -> str:
    """
    Build a packed word from raw (unscaled) field values.

    Missing fields are zero. Values are not range-checked, so this can
    produce words the codec must reject (e.g. amortization_unit=5).
    """
    return "".join(
        format(raw.get(f.name, 0), f"0{f.width}x")
        for f in TERMS_LAYOUT
    )


def scenario_params() -> DecodedTermsParameters:
    return DecodedTermsParameters(
        principal_token_index=1,
        principal_amount=10 ** 18,
        interest_rate=Decimal("0.0500"),
        amortization_unit=AmortizationUnit.MONTHS,
        term_length=12,
        collateral_token_index=2,
        collateral_amount=2 * 10 ** 18,
        grace_period_in_days=7,
    )


def relayer_order(**overrides: Any) -> Dict[str, Any]:
    """A relayer payload for the standard scenario; overrides replace or add keys."""
    payload = {
        "kernelAddress": KERNEL_ADDRESS,
        "repaymentRouterAddress": REPAYMENT_ROUTER_ADDRESS,
        "principalAmount": "1000000000000000000",
        "principalTokenAddress": DAI_ADDRESS,
        "debtorAddress": DEBTOR_ADDRESS,
        "termsContractAddress": TERMS_CONTRACT_ADDRESS,
        "termsContractParameters": SCENARIO_WORD,
        "expirationTime": "2025-01-01T00:00:00Z",
        "salt": "42",
    }
    payload.update(overrides)
    return payload


# =============================================================================
# FIXTURES
# =============================================================================

@pytest.fixture
def tokens():
    return {1: ("DAI", DAI_ADDRESS), 2: ("WETH", WETH_ADDRESS)}


@pytest.fixture
def registry(tokens):
    """Registry with DAI at index 1 and WETH at index 2."""
    return StaticTokenRegistry(tokens)


@pytest.fixture
def assembler(registry):
    return DebtOrderAssembler(registry, AssemblerConfig(resolver_timeout=1.0))


@pytest.fixture
def fake_resolver(tokens):
    return FakeResolver(tokens)


@pytest.fixture
def raw_order():
    return relayer_order()
