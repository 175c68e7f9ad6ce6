# errors.py


class PosError(Exception):
    """Base class for errors the terminal recovers from and shows to the cashier."""


class ScanNoMatch(PosError):
    def __init__(self, token: str):
        self.token = token
        super().__init__(f"No match for {token}")


class OutOfStock(PosError):
    def __init__(self, name: str):
        self.name = name
        super().__init__(f'"{name}" is out of stock.')


class InsufficientStock(PosError):
    def __init__(self, name: str, requested: int, available: int):
        self.name = name
        self.requested = requested
        self.available = available
        unit = "item" if available == 1 else "items"
        super().__init__(f'Only {available} {unit} of "{name}" available.')


class EmptyCart(PosError):
    def __init__(self):
        super().__init__("Add at least one item to complete the sale.")


class CheckoutBlocked(PosError):
    """
    Checkout-time stock failure. removed and insufficient are lists of
    StockIssue; either one being non-empty blocks the whole sale.
    """
    def __init__(self, removed, insufficient):
        self.removed = list(removed)
        self.insufficient = list(insufficient)
        parts = []
        if self.removed:
            names = ", ".join(issue.name for issue in self.removed)
            parts.append(f"Cannot complete sale, out of stock: {names}")
        if self.insufficient:
            details = ", ".join(
                f'"{i.name}" (only {i.available} available, {i.requested} requested)'
                for i in self.insufficient
            )
            parts.append(f"Cannot complete sale, not enough stock: {details}")
        super().__init__(". ".join(parts))


class PersistenceFailure(PosError):
    """An external collaborator rejected a write."""


class CorruptPersistedState(PosError):
    """Stored profile payload could not be decoded."""
