#!/usr/bin/env python3
"""
demo.py - Walkthrough: from relayer JSON to a structured debt order

Each step builds on the previous one. Press Enter to advance.

WHAT YOU'LL SEE:
  1-3: The codec     - Decode a packed terms word, inspect it, re-encode it
  4:   Rejections    - Malformed words and unknown amortization units
  5-6: Assembly      - Resolve tokens and assemble a DebtOrder
  7:   Maturity      - When the loan reaches term

Run:
    python demo.py           # Interactive mode (press Enter for each step)
    python demo.py --quick   # Run all steps without pausing
"""

import asyncio
from dataclasses import dataclass
from decimal import Decimal
import json
import sys

from debt_orders import (
    AmortizationUnit,
    AssemblerConfig,
    DebtOrderAssembler,
    DebtOrderError,
    DecodedTermsParameters,
    StaticTokenRegistry,
    TERMS_LAYOUT,
    configure_logging,
    decode_terms,
    encode_terms,
    maturity_timestamp,
)


# ============================================================================
# CONFIGURATION
# ============================================================================

@dataclass
class DemoConfig:
    """Configuration for the walkthrough. Modify these to experiment."""
    dai_address: str = "0x89d24a6b4ccb1b6faa2625fe562bdd9a23260359"
    weth_address: str = "0xc02aaa39b223fe8d0a0e5c4f27ead9083c756cc2"
    principal_amount: int = 10 ** 18
    collateral_amount: int = 2 * 10 ** 18
    interest_rate: Decimal = Decimal("0.05")
    term_length: int = 12
    grace_period_in_days: int = 7
    expiration_time: str = "2025-01-01T00:00:00Z"


QUICK = "--quick" in sys.argv


def step(number: int, title: str) -> None:
    if not QUICK and number > 1:
        input("\n[Enter] ")
    print(f"\n{'=' * 70}\n STEP {number}: {title}\n{'=' * 70}")


async def main(config: DemoConfig) -> None:
    step(1, "Pack loan terms into a 66-character word")
    params = DecodedTermsParameters(
        principal_token_index=1,
        principal_amount=config.principal_amount,
        interest_rate=config.interest_rate,
        amortization_unit=AmortizationUnit.MONTHS,
        term_length=config.term_length,
        collateral_token_index=2,
        collateral_amount=config.collateral_amount,
        grace_period_in_days=config.grace_period_in_days,
    )
    word = encode_terms(params)
    print(f"  word: {word}")

    step(2, "Field layout")
    for f in TERMS_LAYOUT:
        print(f"  {f.name:<24} nibbles {f.offset:>2}-{f.offset + f.width - 1:<2}  {word[f.offset:f.offset + f.width]}")

    step(3, "Decode it back")
    decoded = decode_terms(word)
    print(f"  interest rate     : {decoded.interest_rate} (on-chain {decoded.interest_rate_fixed_point})")
    print(f"  amortization unit : {decoded.amortization_unit.value} (code {decoded.amortization_unit_code})")
    print(f"  round trip        : {decoded == params}")

    step(4, "Malformed input is rejected, never defaulted")
    for bad in (word[:-1], word[:34] + "7" + word[35:]):
        try:
            decode_terms(bad)
        except DebtOrderError as exc:
            print(f"  {type(exc).__name__}: {exc}")

    step(5, "Register tokens")
    registry = StaticTokenRegistry({
        1: ("DAI", config.dai_address),
        2: ("WETH", config.weth_address),
    })
    print(f"  {registry}")

    step(6, "Assemble a debt order from relayer JSON")
    relayer_json = {
        "principalAmount": str(config.principal_amount),
        "principalTokenAddress": config.dai_address,
        "termsContractParameters": word,
        "expirationTime": config.expiration_time,
        "salt": "1",
    }
    assembler = DebtOrderAssembler(registry, AssemblerConfig.from_env())
    order = await assembler.from_raw_order(relayer_json)
    print(json.dumps(order.to_dict(), indent=2))

    step(7, "Loan maturity if funded at expiration")
    print(f"  matures at {maturity_timestamp(order.terms.parameters, order.expiration_timestamp_in_sec)}")


if __name__ == "__main__":
    configure_logging()
    asyncio.run(main(DemoConfig()))
