from decimal import Decimal

import pytest

from allowance_gateway.errors import ConversionError, InvalidInputError
from allowance_gateway.units import to_base, to_display


class TestToDisplay:
    @pytest.mark.parametrize(
        "base_amount, decimals, expected",
        [
            pytest.param(0, 18, "0", id="zero"),
            pytest.param(1000 * 10**18, 18, "1000", id="whole_tokens"),
            pytest.param(15 * 10**17, 18, "1.5", id="fraction"),
            pytest.param(1, 18, "0.000000000000000001", id="one_wei"),
            pytest.param(123456789, 6, "123.456789", id="six_decimals"),
            pytest.param(42, 0, "42", id="no_decimals"),
            pytest.param(10**40 + 1, 18, "10000000000000000000000.000000000000000001", id="huge"),
        ],
    )
    def test_renders_exactly(self, base_amount, decimals, expected):
        assert to_display(base_amount, decimals) == expected

    @pytest.mark.parametrize("bad", [-1, 1.5, "100", True, None])
    def test_rejects_non_integers_and_negatives(self, bad):
        with pytest.raises(ConversionError):
            to_display(bad)


class TestToBase:
    @pytest.mark.parametrize(
        "amount, expected",
        [
            pytest.param("1", 10**18, id="whole_string"),
            pytest.param("1.5", 15 * 10**17, id="fraction_string"),
            pytest.param(".5", 5 * 10**17, id="leading_dot"),
            pytest.param("2.", 2 * 10**18, id="trailing_dot"),
            pytest.param("1.500000000000000000", 15 * 10**17, id="padded_zeros"),
            pytest.param(" 3 ", 3 * 10**18, id="whitespace"),
            pytest.param(1000, 1000 * 10**18, id="int"),
            pytest.param(0.1, 10**17, id="float_via_str"),
            pytest.param(Decimal("0.000000000000000001"), 1, id="decimal_one_wei"),
            pytest.param(Decimal("1E+3"), 1000 * 10**18, id="decimal_exponent"),
        ],
    )
    def test_parses_exactly(self, amount, expected):
        assert to_base(amount) == expected

    def test_respects_decimals(self):
        assert to_base("123.456789", 6) == 123456789

    @pytest.mark.parametrize(
        "bad",
        [
            pytest.param("", id="empty"),
            pytest.param(".", id="dot"),
            pytest.param("abc", id="letters"),
            pytest.param("-1", id="negative_string"),
            pytest.param("1e18", id="exponent_string"),
            pytest.param("1.2.3", id="two_dots"),
            pytest.param("\u0661\u0662", id="arabic_indic_digits"),
            pytest.param("\uff11.5", id="fullwidth_digit"),
            pytest.param("0.0000000000000000001", id="too_precise"),
            pytest.param(-5, id="negative_int"),
            pytest.param(float("nan"), id="nan"),
            pytest.param(float("inf"), id="inf"),
            pytest.param(True, id="bool"),
            pytest.param(None, id="none"),
        ],
    )
    def test_rejects_malformed(self, bad):
        with pytest.raises(ConversionError):
            to_base(bad)

    def test_conversion_error_is_invalid_input(self):
        with pytest.raises(InvalidInputError):
            to_base("nope")


@pytest.mark.parametrize(
    "display",
    ["1.5", "0", "1000", "0.000000000000000001", "123456789.123456789123456789", "7.25"],
)
def test_display_of_base_is_identity(display):
    assert to_display(to_base(display)) == display
