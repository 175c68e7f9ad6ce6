# stock_guard.py
from dataclasses import dataclass, replace

from errors import CheckoutBlocked, InsufficientStock, OutOfStock
from models import CartLine, Resolved


@dataclass(frozen=True)
class StockIssue:
    variant_id: int
    name: str
    requested: int
    available: int


def add_unit(cart, variant):
    """
    Return a new cart with one more unit of variant.
    Raises OutOfStock or InsufficientStock; the cart is never modified.
    """
    if variant.stock_on_hand <= 0:
        raise OutOfStock(variant.name)
    lines = list(cart)
    for i, line in enumerate(lines):
        if line.variant_id == variant.id:
            new_qty = line.quantity + 1
            if new_qty > variant.stock_on_hand:
                raise InsufficientStock(variant.name, new_qty, variant.stock_on_hand)
            lines[i] = CartLine(Resolved(variant), new_qty)
            return tuple(lines)
    lines.append(CartLine(Resolved(variant), 1))
    return tuple(lines)


def change_quantity(cart, variant_id: int, delta: int):
    """
    Apply delta to one line. A result of 0 or below drops the line.
    Unknown ids leave the cart as is.
    """
    lines = list(cart)
    for i, line in enumerate(lines):
        if line.variant_id != variant_id:
            continue
        new_qty = line.quantity + delta
        if delta > 0:
            variant = line.variant
            available = variant.stock_on_hand if variant else 0
            name = line.name
            if available <= 0:
                raise OutOfStock(name)
            if new_qty > available:
                raise InsufficientStock(name, new_qty, available)
        if new_qty <= 0:
            del lines[i]
        else:
            lines[i] = replace(line, quantity=new_qty)
        return tuple(lines)
    return tuple(lines)


def check_checkout(cart, snapshot):
    """
    Re-resolve every line against the freshest snapshot.

    Returns the cart with each line pointing at the snapshot's variant.
    Raises CheckoutBlocked listing every removed/out-of-stock line and every
    line asking for more than is available; nothing is committed partially.
    """
    removed = []
    insufficient = []
    fresh = []
    for line in cart:
        current = snapshot.get(line.variant_id)
        if current is None or current.stock_on_hand <= 0:
            available = current.stock_on_hand if current else 0
            removed.append(StockIssue(line.variant_id, line.name, line.quantity, max(available, 0)))
            continue
        if line.quantity > current.stock_on_hand:
            insufficient.append(StockIssue(line.variant_id, current.name, line.quantity,
                                           current.stock_on_hand))
            continue
        fresh.append(CartLine(Resolved(current), line.quantity))
    if removed or insufficient:
        raise CheckoutBlocked(removed, insufficient)
    return tuple(fresh)
