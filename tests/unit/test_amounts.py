"""Unit tests for amount conversion."""

from decimal import Decimal

import pytest

from custody.utils.amounts import (
    format_amount,
    from_base_units,
    from_wei,
    to_base_units,
    to_gwei,
    to_wei,
)


class TestAmountConversion:
    """Exact decimal <-> base unit conversion."""

    def test_half_ether(self):
        assert to_wei("0.5") == 500_000_000_000_000_000

    def test_one_wei(self):
        assert to_wei("0.000000000000000001") == 1

    def test_integer_amount(self):
        assert to_wei(2) == 2 * 10**18

    def test_excess_precision_rejected(self):
        """19 fractional digits cannot be represented in wei."""
        with pytest.raises(ValueError):
            to_wei("0.0000000000000000001")

    @pytest.mark.parametrize("amount", ["abc", "", "NaN", "Infinity"])
    def test_invalid_amounts_rejected(self, amount):
        with pytest.raises(ValueError):
            to_wei(amount)

    def test_from_wei_normalizes(self):
        assert from_wei(500_000_000_000_000_000) == Decimal("0.5")
        assert str(from_wei(10 * 10**18)) == "10"

    def test_token_decimals(self):
        """USDC-style 6 decimals."""
        assert to_base_units("1.25", 6) == 1_250_000
        assert from_base_units(1_250_000, 6) == Decimal("1.25")

    def test_format_amount_has_no_exponent(self):
        assert format_amount(1) == "0.000000000000000001"
        assert format_amount(0) == "0"

    def test_gwei(self):
        assert to_gwei(1_500_000_000) == Decimal("1.5")

    @pytest.mark.parametrize("value", ["0.5", "1", "0.123456789012345678", "1000.000001"])
    def test_value_survives_conversion(self, value):
        """No drift between the decimal input and wei."""
        assert from_wei(to_wei(value)) == Decimal(value)
