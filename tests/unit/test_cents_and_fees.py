"""Tests for tk_common.cents and the seller fee split."""

import pytest

from src.tk_common.cents import calculate_fee, validate_unit_price
from src.tk_offer.domain.models import hold_amount
from src.tk_settlement.domain.fee import split_sale


class TestValidateUnitPrice:
    def test_valid_prices(self) -> None:
        for p in [1, 100, 250_000]:
            validate_unit_price(p)  # Should not raise

    @pytest.mark.parametrize("price", [0, -1])
    def test_non_positive_raises(self, price: int) -> None:
        with pytest.raises(ValueError, match="greater than 0"):
            validate_unit_price(price)


class TestCalculateFee:
    def test_exact(self) -> None:
        assert calculate_fee(100, 1000) == 10

    def test_rounds_up(self) -> None:
        # 10% of 105 = 10.5 -> 11
        assert calculate_fee(105, 1000) == 11

    def test_zero_amount(self) -> None:
        assert calculate_fee(0, 1000) == 0

    def test_zero_rate(self) -> None:
        assert calculate_fee(9999, 0) == 0


class TestSplitSale:
    def test_ten_percent_of_hundred(self) -> None:
        assert split_sale(100, 1000) == (10, 90)

    @pytest.mark.parametrize("sale", [1, 7, 99, 101, 12345, 999_999])
    def test_fee_plus_payout_is_sale(self, sale: int) -> None:
        fee, payout = split_sale(sale, 1000)
        assert fee + payout == sale
        assert fee >= sale * 1000 / 10000

    def test_one_cent_sale(self) -> None:
        assert split_sale(1, 1000) == (1, 0)


class TestHoldAmount:
    def test_price_times_quantity(self) -> None:
        assert hold_amount(100, 2) == 200

    def test_single_ticket(self) -> None:
        assert hold_amount(12500, 1) == 12500
