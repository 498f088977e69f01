"""
Round-Trip Conformance Tests

INVARIANT: encode_terms and decode_terms are mutual inverses.

    ∀ p in range:        decode_terms(encode_terms(p)) == p
    ∀ w valid, lowercase: encode_terms(decode_terms(w)) == w

Fixed field widths leave no leading-zero ambiguity, so the second law holds
character for character.
"""

import pytest
from hypothesis import given, settings, assume
from hypothesis import strategies as st
from decimal import Decimal

from debt_orders import (
    AmortizationUnit,
    DecodedTermsParameters,
    EncodeOverflow,
    MalformedPackedWord,
    UnknownAmortizationUnit,
    decode_terms,
    encode_terms,
)


HEX = "0123456789abcdef"


# =============================================================================
# STRATEGIES
# =============================================================================

def uint(nibbles: int):
    return st.integers(min_value=0, max_value=16 ** nibbles - 1)


@st.composite
def terms_parameters(draw):
    """Generate DecodedTermsParameters with every field in range."""
    return DecodedTermsParameters(
        principal_token_index=draw(uint(4)),
        principal_amount=draw(uint(24)),
        interest_rate=Decimal(draw(uint(6))).scaleb(-4),
        amortization_unit=draw(st.sampled_from(list(AmortizationUnit))),
        term_length=draw(uint(4)),
        collateral_token_index=draw(uint(2)),
        collateral_amount=draw(uint(23)),
        grace_period_in_days=draw(uint(2)),
    )


@st.composite
def packed_words(draw):
    """Generate valid lowercase words: any hex except a unit nibble in 0-4."""
    head = draw(st.text(alphabet=HEX, min_size=34, max_size=34))
    unit = draw(st.sampled_from("01234"))
    tail = draw(st.text(alphabet=HEX, min_size=31, max_size=31))
    return head + unit + tail


# =============================================================================
# ROUND TRIPS
# =============================================================================

class TestRoundTrip:

    @given(terms_parameters())
    @settings(max_examples=300)
    def test_decode_encode_is_identity(self, params):
        assert decode_terms(encode_terms(params)) == params

    @given(packed_words())
    @settings(max_examples=300)
    def test_encode_decode_is_identity(self, word):
        assert encode_terms(decode_terms(word)) == word

    @given(packed_words())
    @settings(max_examples=100)
    def test_case_insensitive_decode(self, word):
        assert decode_terms(word.upper()) == decode_terms(word)

    @given(terms_parameters())
    @settings(max_examples=100)
    def test_encoded_word_is_66_lowercase_hex(self, params):
        word = encode_terms(params)
        assert len(word) == 66
        assert set(word) <= set(HEX)


# =============================================================================
# REJECTIONS
# =============================================================================

class TestRejections:

    @given(st.text(alphabet=HEX, min_size=0, max_size=80))
    @settings(max_examples=200)
    def test_wrong_length_always_rejected(self, word):
        assume(len(word) != 66)
        with pytest.raises(MalformedPackedWord):
            decode_terms(word)

    @given(
        st.text(alphabet=HEX, min_size=34, max_size=34),
        st.sampled_from("56789abcdef"),
        st.text(alphabet=HEX, min_size=31, max_size=31),
    )
    @settings(max_examples=100)
    def test_unit_nibble_above_four_rejected(self, head, unit, tail):
        with pytest.raises(UnknownAmortizationUnit):
            decode_terms(head + unit + tail)

    @given(st.integers(min_value=1, max_value=10 ** 6))
    @settings(max_examples=100)
    def test_sub_basis_point_rates_rejected(self, numerator):
        assume(numerator % 10 != 0)
        params = DecodedTermsParameters(
            1, 1, Decimal(numerator).scaleb(-5), AmortizationUnit.DAYS, 1, 1, 1, 1,
        )
        with pytest.raises(EncodeOverflow):
            encode_terms(params)

    @given(
        st.integers(min_value=0, max_value=16777215),
        st.integers(min_value=1, max_value=10 ** 40).filter(lambda n: n % 10 != 0),
        st.integers(min_value=1, max_value=45),
    )
    @settings(max_examples=100)
    def test_long_fractional_rates_rejected(self, fixed_point, tail, extra_places):
        # A valid rate followed by a nonzero tail well past the fourth place,
        # often longer than the default 28-digit context
        whole, places = divmod(fixed_point, 10000)
        rate = Decimal(f"{whole}.{places:04d}{'0' * extra_places}{tail}")
        params = DecodedTermsParameters(1, 1, rate, AmortizationUnit.DAYS, 1, 1, 1, 1)
        with pytest.raises(EncodeOverflow):
            encode_terms(params)
