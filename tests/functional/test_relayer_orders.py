"""
test_relayer_orders.py - End-to-end assembly of relayer debt orders

Tests complete scenarios from relayer JSON to DebtOrder:
- The reference DAI/WETH loan
- A fully signed order with every fee populated
- Re-encoding the assembled terms reproduces the relayer's word
- Loan maturity from the assembled terms
"""

import json

import pytest
from decimal import Decimal

from debt_orders import (
    AmortizationUnit,
    AssemblerConfig,
    DebtOrderAssembler,
    NULL_SIGNATURE,
    StaticTokenRegistry,
    encode_terms,
    maturity_timestamp,
)

from tests.conftest import (
    DAI_ADDRESS,
    DEBTOR_ADDRESS,
    KERNEL_ADDRESS,
    REPAYMENT_ROUTER_ADDRESS,
    SCENARIO_WORD,
    TERMS_CONTRACT_ADDRESS,
    WETH_ADDRESS,
    relayer_order,
)


def signature_json(fill: str, v: int) -> str:
    return json.dumps({"r": "0x" + fill * 64, "s": "0x" + fill * 64, "v": v})


class TestReferenceLoan:
    """1 DAI principal against 2 WETH, 5% monthly over 12 months, 7 day grace."""

    @pytest.mark.asyncio
    async def test_assembled_order(self, assembler):
        payload = {
            "principalAmount": "1000000000000000000",
            "expirationTime": "2025-01-01T00:00:00Z",
            "termsContractParameters": SCENARIO_WORD,
        }
        order = await assembler.from_raw_order(payload)

        assert order.principal_amount == 10 ** 18
        assert order.expiration_timestamp_in_sec == 1735689600

        terms = order.terms
        assert terms.principal_token_symbol == "DAI"
        assert terms.principal_token_address == DAI_ADDRESS
        assert terms.collateral_token_symbol == "WETH"
        assert terms.collateral_token_address == WETH_ADDRESS

        params = terms.parameters
        assert params.principal_token_index == 1
        assert params.collateral_token_index == 2
        assert params.interest_rate == Decimal("0.0500")
        assert params.amortization_unit is AmortizationUnit.MONTHS
        assert params.term_length == 12
        assert params.grace_period_in_days == 7

        assert order.debtor_fee == order.creditor_fee == 0
        assert order.relayer_fee == order.underwriter_fee == 0
        assert order.debtor_signature is NULL_SIGNATURE

    @pytest.mark.asyncio
    async def test_terms_reencode_to_relayer_word(self, assembler, raw_order):
        order = await assembler.from_raw_order(raw_order)
        assert encode_terms(order.terms.parameters) == order.terms_contract_parameters

    @pytest.mark.asyncio
    async def test_maturity(self, assembler, raw_order):
        order = await assembler.from_raw_order(raw_order)
        # Loan starting at expiration matures 12 months later
        assert maturity_timestamp(order.terms.parameters, order.expiration_timestamp_in_sec) == 1767225600


class TestFullySignedOrder:

    @pytest.mark.asyncio
    async def test_every_field(self):
        registry = StaticTokenRegistry({1: ("DAI", DAI_ADDRESS), 2: ("WETH", WETH_ADDRESS)})
        assembler = DebtOrderAssembler(registry, AssemblerConfig.from_env({}))
        payload = relayer_order(
            creditorAddress="0xcreditor",
            creditorFee="2500000000000000",
            relayerAddress="0xrelayer",
            relayerFee="1000000000000000",
            underwriterAddress="0xunderwriter",
            underwriterFee="500000000000000",
            underwriterRiskRating="1350",
            debtorFee="0",
            debtorSignature=signature_json("1", 27),
            creditorSignature=signature_json("2", 28),
            underwriterSignature=signature_json("3", 27),
            relayerSignature=signature_json("4", 28),
        )

        order = await assembler.from_raw_order(payload)

        assert order.kernel_version == KERNEL_ADDRESS
        assert order.issuance_version == REPAYMENT_ROUTER_ADDRESS
        assert order.terms_contract == TERMS_CONTRACT_ADDRESS
        assert order.debtor == DEBTOR_ADDRESS
        assert order.creditor_fee == 2_500_000_000_000_000
        assert order.total_fees == 4_000_000_000_000_000
        assert order.underwriter_risk_rating == 1350
        assert order.debtor_signature.v == 27
        assert order.creditor_signature.r == "0x" + "2" * 64
        assert order.underwriter_signature.s == "0x" + "3" * 64
        assert order.relayer_signature.v == 28
        assert not any(
            sig.is_null for sig in (
                order.debtor_signature, order.creditor_signature,
                order.underwriter_signature, order.relayer_signature,
            )
        )

    @pytest.mark.asyncio
    async def test_json_round_trip_of_output(self, assembler, raw_order):
        order = await assembler.from_raw_order(raw_order)
        data = json.loads(json.dumps(order.to_dict()))
        assert int(data["principalAmount"]) == order.principal_amount
        assert Decimal(data["interestRate"]) == order.terms.parameters.interest_rate
