"""Fee arithmetic shared by the marketplace and its callers.

All amounts are integers in currency subunits; fee is a whole percent of the item price.
"""

PERCENT_BASE = 100


def get_total_price(price: int, fee_percent: int) -> int:
    """Price with the market fee on top, rounded down to a subunit"""
    return price * (PERCENT_BASE + fee_percent) // PERCENT_BASE


def get_fee(price: int, fee_percent: int) -> int:
    """Nominal market fee for the given price"""
    return get_total_price(price, fee_percent) - price


def split_payment(price: int, payment: int) -> tuple[int, int]:
    """Split payment into seller and fee account shares.

    Overpayment is not refunded; everything above the price goes to the fee account.
    """
    if payment < price:
        raise ValueError(f'Payment {payment} is less than price {price}')
    return price, payment - price
