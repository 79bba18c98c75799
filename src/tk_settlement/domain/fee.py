"""Seller fee split. Fee rate is configuration, never per transaction."""

from src.tk_common.cents import calculate_fee


def split_sale(sale_price_cents: int, fee_bps: int) -> tuple[int, int]:
    """Return (seller_fee, seller_payout) for a sale.

    Fee uses ceiling division; payout is the remainder, so
    fee + payout == sale_price holds exactly.
    """
    fee = calculate_fee(sale_price_cents, fee_bps)
    return fee, sale_price_cents - fee
