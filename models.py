# models.py
from dataclasses import dataclass, field, replace
from typing import Optional, Tuple, Union

DISCOUNT_MODES = ('amount', 'percent', 'finalPrice')
PAYMENT_METHODS = ('cash', 'card', 'mixed')
DEFAULT_DISCOUNT_MODE = 'finalPrice'
DEFAULT_PAYMENT_METHOD = 'cash'


@dataclass(frozen=True)
class CatalogVariant:
    """One sellable variant as supplied by the catalog provider."""
    id: int
    sku: str
    barcode: Optional[str]
    name: str
    sale_price: float
    purchase_cost: float
    stock_on_hand: int
    color: Optional[str] = None
    size: Optional[str] = None

    @classmethod
    def from_row(cls, row):
        """Build from a DB row or a plain dict with the same keys."""
        return cls(
            id=int(row['id']),
            sku=str(row['sku']),
            barcode=row['barcode'] if row['barcode'] is None else str(row['barcode']),
            name=row['name'],
            sale_price=float(row['sale_price']),
            purchase_cost=float(row['purchase_cost']),
            stock_on_hand=max(int(row['stock_on_hand']), 0),
            color=row['color'],
            size=row['size'],
        )

    def to_dict(self):
        return {
            'id': self.id,
            'sku': self.sku,
            'barcode': self.barcode,
            'name': self.name,
            'color': self.color,
            'size': self.size,
            'sale_price': self.sale_price,
            'purchase_cost': self.purchase_cost,
            'stock_on_hand': self.stock_on_hand,
        }


@dataclass(frozen=True)
class Resolved:
    variant: CatalogVariant

    @property
    def variant_id(self):
        return self.variant.id


@dataclass(frozen=True)
class Unresolved:
    """A line restored from storage without its variant details."""
    raw_id: int

    @property
    def variant_id(self):
        return self.raw_id


LineRef = Union[Resolved, Unresolved]


@dataclass(frozen=True)
class CartLine:
    """One line in a cart; quantity is always >= 1."""
    ref: LineRef
    quantity: int

    @property
    def variant_id(self):
        return self.ref.variant_id

    @property
    def variant(self):
        return self.ref.variant if isinstance(self.ref, Resolved) else None

    @property
    def name(self):
        variant = self.variant
        return variant.name if variant else f"#{self.ref.raw_id}"

    @property
    def unit_price(self):
        variant = self.variant
        return variant.sale_price if variant else 0.0

    @property
    def line_total(self):
        return round(self.unit_price * self.quantity, 2)


@dataclass(frozen=True)
class CartProfile:
    """
    One independently held cart session.
    success, error and is_submitting are transient and never persisted.
    """
    cart: Tuple[CartLine, ...] = ()
    selected_customer_id: Optional[int] = None
    discount_mode: str = DEFAULT_DISCOUNT_MODE
    discount_value: float = 0.0
    is_manual_discount: bool = False
    payment_method: str = DEFAULT_PAYMENT_METHOD
    success: Optional[str] = None
    error: Optional[str] = None
    is_submitting: bool = False

    @property
    def subtotal(self):
        return round(sum(line.line_total for line in self.cart), 2)

    def find_line(self, variant_id: int):
        for line in self.cart:
            if line.variant_id == variant_id:
                return line
        return None

    def without_transient(self):
        return replace(self, success=None, error=None, is_submitting=False)


@dataclass(frozen=True)
class TerminalIdentity:
    branch_id: int
    cashier_id: int
    role: str = 'cashier'

    @property
    def can_see_profit(self):
        return self.role in ('admin', 'manager')


@dataclass(frozen=True)
class SaleLine:
    variant_id: int
    quantity: int
    unit_price: float
    unit_cost: float
    line_total: float


@dataclass(frozen=True)
class SaleDraft:
    """Payload handed to sales persistence at commit time."""
    branch_id: int
    cashier_id: int
    customer_id: Optional[int]
    sale_date: str
    subtotal: float
    discount: float
    total: float
    payment_method: str
    lines: Tuple[SaleLine, ...] = field(default_factory=tuple)
