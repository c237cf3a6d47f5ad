"""Tests for conversion between decimal amounts and ledger units."""

from decimal import Decimal

import pytest

from sagadex.amounts import format_decimal, from_ledger_units, to_decimal, to_ledger_units
from sagadex.errors import InvalidAmount, InvalidRequest
from sagadex.models.types import UINT256_MAX


class TestToLedgerUnits:
    """Tests for to_ledger_units()."""

    def test_whole_amount(self):
        """Whole amounts scale by 10**18."""
        assert to_ledger_units("1") == 10**18

    def test_fractional_amount(self):
        """Fractional amounts scale exactly."""
        assert to_ledger_units("1.5") == 1_500_000_000_000_000_000

    def test_smallest_unit(self):
        """The smallest representable amount is one unit."""
        assert to_ledger_units("0.000000000000000001") == 1

    def test_excess_digits_truncated(self):
        """Digits beyond the token's precision are dropped, never rounded up."""
        assert to_ledger_units("0.0000000000000000019") == 1
        assert to_ledger_units("1.9999999999999999999") == 1_999_999_999_999_999_999

    def test_zero(self):
        """Zero is a valid amount."""
        assert to_ledger_units("0") == 0

    def test_custom_decimals(self):
        """Tokens with fewer decimals scale accordingly."""
        assert to_ledger_units("2.5", decimals=6) == 2_500_000

    def test_accepts_int_and_decimal(self):
        """Non-string numeric inputs are accepted."""
        assert to_ledger_units(3) == 3 * 10**18
        assert to_ledger_units(Decimal("0.1")) == 10**17

    def test_whitespace_stripped(self):
        """Surrounding whitespace from user input is ignored."""
        assert to_ledger_units("  2 ") == 2 * 10**18

    @pytest.mark.parametrize("value", ["", "   ", "abc", "1.2.3", "1e", "--1"])
    def test_malformed_rejected(self, value):
        """Malformed text raises InvalidAmount."""
        with pytest.raises(InvalidAmount):
            to_ledger_units(value)

    @pytest.mark.parametrize("value", ["-1", "-0.5"])
    def test_negative_rejected(self, value):
        """Negative amounts raise InvalidAmount."""
        with pytest.raises(InvalidAmount, match="negative"):
            to_ledger_units(value)

    @pytest.mark.parametrize("value", ["NaN", "Infinity", "-Infinity"])
    def test_non_finite_rejected(self, value):
        """NaN and infinities raise InvalidAmount."""
        with pytest.raises(InvalidAmount):
            to_ledger_units(value)

    def test_overflow_rejected(self):
        """Amounts that do not fit in uint256 after scaling are rejected."""
        with pytest.raises(InvalidAmount, match="overflow"):
            to_ledger_units(str(UINT256_MAX))

    def test_huge_exponent_rejected(self):
        """Exponent notation far beyond uint256 is rejected without expanding it."""
        with pytest.raises(InvalidAmount):
            to_ledger_units("1e999999")

    def test_bool_rejected(self):
        """Booleans are not amounts."""
        with pytest.raises(InvalidAmount):
            to_ledger_units(True)

    def test_invalid_amount_is_invalid_request(self):
        """InvalidAmount is a local precondition failure."""
        assert issubclass(InvalidAmount, InvalidRequest)


class TestFromLedgerUnits:
    """Tests for from_ledger_units() and format_decimal()."""

    def test_whole(self):
        assert from_ledger_units(10**18) == "1"

    def test_fraction_has_no_trailing_zeros(self):
        assert from_ledger_units(1_500_000_000_000_000_000) == "1.5"

    def test_zero(self):
        assert from_ledger_units(0) == "0"

    def test_smallest_unit(self):
        assert from_ledger_units(1) == "0.000000000000000001"

    def test_uint256_max(self):
        """The largest ledger value formats exactly."""
        text = from_ledger_units(UINT256_MAX)
        assert to_ledger_units(text) == UINT256_MAX

    def test_negative_rejected(self):
        with pytest.raises(InvalidAmount):
            from_ledger_units(-1)

    def test_non_int_rejected(self):
        with pytest.raises(InvalidAmount):
            to_decimal(1.5)  # type: ignore[arg-type]

    def test_format_decimal_no_exponent(self):
        """Small and large values never use exponent notation."""
        assert format_decimal(Decimal("1E-18")) == "0.000000000000000001"
        assert format_decimal(Decimal("1E+3")) == "1000"


class TestRoundTrip:
    """Canonical strings and ledger values survive a round trip."""

    @pytest.mark.parametrize(
        "text",
        ["0", "1", "0.1", "123.456", "98", "93.1", "0.000000000000000001", "1000000"],
    )
    def test_canonical_strings(self, text):
        assert from_ledger_units(to_ledger_units(text)) == text

    @pytest.mark.parametrize("units", [0, 1, 10**18, 93_100_000_000_000_000_000, UINT256_MAX])
    def test_ledger_values(self, units):
        assert to_ledger_units(from_ledger_units(units)) == units
