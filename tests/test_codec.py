"""Tests for the uint256 fixed-point result codec."""

from decimal import Decimal, ROUND_HALF_UP

import pytest

from brokerage_oracle import codec
from brokerage_oracle.errors import EncodingError


class TestEncode:
    def test_market_value_to_cents(self):
        assert codec.encode(Decimal("4521.10")) == (452110).to_bytes(32, "big")

    def test_half_rounds_away_from_zero(self):
        """1234.565 is a float tie in decimal terms and must land on 123457."""
        assert codec.scale(1234.565) == 123457
        assert codec.encode(1234.565) == (123457).to_bytes(32, "big")

    def test_below_half_rounds_down(self):
        assert codec.scale(Decimal("0.004")) == 0
        assert codec.scale(Decimal("10.114999")) == 1011

    def test_width_is_fixed(self):
        assert len(codec.encode(0)) == 32
        assert len(codec.encode(Decimal("99999999.99"))) == 32

    def test_int_and_string_inputs(self):
        assert codec.scale(12) == 1200
        assert codec.scale("3.5") == 350

    def test_negative_rejected(self):
        with pytest.raises(EncodingError, match="negative"):
            codec.encode(Decimal("-0.01"))

    def test_max_value_fits(self):
        top = Decimal(f"{codec.MAX_UINT // 100}.{codec.MAX_UINT % 100:02d}")
        assert codec.encode(top) == b"\xff" * 32

    def test_overflow_rejected(self):
        with pytest.raises(EncodingError, match="overflows"):
            codec.encode(Decimal(codec.MAX_UINT))
        with pytest.raises(EncodingError, match="overflows"):
            codec.encode(Decimal("1E+500"))

    @pytest.mark.parametrize("value", [float("nan"), float("inf"), Decimal("NaN"), Decimal("-Infinity")])
    def test_non_finite_rejected(self, value):
        with pytest.raises(EncodingError):
            codec.encode(value)

    @pytest.mark.parametrize("value", [True, None, "abc", [1]])
    def test_non_numeric_rejected(self, value):
        with pytest.raises(EncodingError, match="not a number"):
            codec.encode(value)


class TestDecode:
    @pytest.mark.parametrize("value", ["0", "0.01", "4521.10", "1234.565", "0.005", "987654321.987"])
    def test_decode_inverts_encode_to_two_places(self, value):
        v = Decimal(value)
        expected = v.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
        assert codec.decode(codec.encode(v)) == expected

    def test_long_fraction_rounds_once(self):
        """Digits past the context precision must not carry into the cent."""
        v = Decimal("0.004" + "9" * 99 + "5")
        assert codec.scale(v) == 0
        assert codec.decode(codec.encode(v)) == v.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)

    def test_accepts_hexstring(self):
        hexstring = codec.to_hexstring(codec.encode(Decimal("4521.10")))
        assert hexstring.startswith("0x") and len(hexstring) == 66
        assert codec.decode(hexstring) == Decimal("4521.10")

    def test_wrong_width_rejected(self):
        with pytest.raises(EncodingError, match="expected 32 bytes"):
            codec.decode(b"\x01\x02")

    def test_bad_hex_rejected(self):
        with pytest.raises(EncodingError, match="invalid hex"):
            codec.decode("0xzz")
