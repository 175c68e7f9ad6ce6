# discount.py
import math
from dataclasses import replace

from models import DISCOUNT_MODES


def compute_discount(subtotal: float, mode: str, value: float) -> float:
    """Discount for a subtotal; always within [0, subtotal]."""
    subtotal = max(subtotal, 0)
    if not math.isfinite(value):
        value = 0
    if mode == 'amount':
        discount = min(value, subtotal)
    elif mode == 'percent':
        discount = min(subtotal * value / 100, subtotal)
    elif mode == 'finalPrice':
        final_price = max(0, min(value, subtotal))
        discount = subtotal - final_price
    else:
        raise ValueError(f"Unknown discount mode: {mode}")
    return round(max(discount, 0), 2)


def compute_totals(subtotal: float, mode: str, value: float, is_manual: bool = False):
    """
    Return subtotal, discount and total.
    In finalPrice mode without a manual value the price follows the subtotal,
    so the default is no discount.
    """
    if mode == 'finalPrice' and not is_manual:
        value = subtotal
    discount = compute_discount(subtotal, mode, value)
    return {
        'subtotal': round(subtotal, 2),
        'discount': discount,
        'total': round(max(subtotal - discount, 0), 2),
    }


def profile_totals(profile):
    return compute_totals(profile.subtotal, profile.discount_mode,
                          profile.discount_value, profile.is_manual_discount)


def estimate_profit(lines, total: float, exchange_rate: float) -> float:
    """Profit after discount; purchase costs are converted with exchange_rate."""
    cost = sum(line.variant.purchase_cost * exchange_rate * line.quantity
               for line in lines if line.variant is not None)
    return round(max(total - cost, 0), 2)


def track_subtotal(profile):
    """Keep an auto final price in step with the cart."""
    if profile.discount_mode == 'finalPrice' and not profile.is_manual_discount:
        if profile.discount_value != profile.subtotal:
            return replace(profile, discount_value=profile.subtotal)
    return profile


def switch_mode(profile, mode: str):
    if mode not in DISCOUNT_MODES:
        raise ValueError(f"Unknown discount mode: {mode}")
    value = profile.subtotal if mode == 'finalPrice' else 0.0
    return replace(profile, discount_mode=mode, discount_value=value,
                   is_manual_discount=False)


def set_manual_value(profile, value):
    try:
        value = float(value)
    except (TypeError, ValueError):
        raise ValueError(f"Invalid discount value: {value}")
    if not math.isfinite(value) or value < 0:
        raise ValueError("Discount value must be a non-negative number.")
    return replace(profile, discount_value=value, is_manual_discount=True)
