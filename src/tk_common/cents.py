"""Integer arithmetic utilities for cents-based ticket pricing.

All prices, holds, fees and payouts use int (cents). No float, no Decimal.
"""


def validate_unit_price(price: int) -> None:
    """Validate that a unit price ceiling is strictly positive."""
    if price <= 0:
        raise ValueError(f"Price must be greater than 0 cents, got {price}")


def calculate_fee(amount: int, fee_rate_bps: int) -> int:
    """Calculate fee with ceiling division (platform never loses).

    fee = ceil(amount * fee_rate_bps / 10000)
    Using integer ceiling: (a + b - 1) // b
    """
    if amount == 0 or fee_rate_bps == 0:
        return 0
    return (amount * fee_rate_bps + 9999) // 10000
