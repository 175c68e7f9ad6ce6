"""Shared fakes for the external collaborators."""

from dataclasses import replace

import pytest

from models import CatalogVariant, TerminalIdentity


def make_variant(id=1, stock=5, price=10000.0, cost=5.0, sku=None, barcode=None,
                 name=None):
    return CatalogVariant(
        id=id,
        sku=sku or f"SKU-{id}",
        barcode=barcode,
        name=name or f"Item {id}",
        sale_price=price,
        purchase_cost=cost,
        stock_on_hand=stock,
    )


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now

    def advance(self, ms):
        self.now += ms / 1000.0


class MemoryKV:
    def __init__(self, data=None):
        self.data = dict(data or {})
        self.writes = 0

    def get(self, key):
        return self.data.get(key)

    def set(self, key, value):
        self.writes += 1
        self.data[key] = value


class FakeCatalog:
    def __init__(self, variants=()):
        self.variants = list(variants)
        self.fail = False
        self.loads = 0

    def load_variants(self):
        self.loads += 1
        if self.fail:
            raise ConnectionError("catalog offline")
        return list(self.variants)

    def set_stock(self, variant_id, stock):
        self.variants = [
            replace(v, stock_on_hand=stock) if v.id == variant_id else v
            for v in self.variants
        ]


class FakeSales:
    def __init__(self):
        self.drafts = []
        self.error = None
        self.hook = None

    def create_sale(self, draft):
        if self.hook:
            self.hook(draft)
        if self.error:
            raise self.error
        self.drafts.append(draft)
        return {'id': len(self.drafts), 'total': draft.total}


class FakeRates:
    def __init__(self, rate=1500.0):
        self.rate = rate

    def current_rate(self):
        return self.rate


class FakeCustomers:
    def __init__(self, customers=()):
        self.customers = list(customers)

    def search_customers(self, term):
        term = term.lower()
        return [c for c in self.customers
                if term in c['name'].lower() or term in (c['phone'] or '')]


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def kv():
    return MemoryKV()


@pytest.fixture
def identity():
    return TerminalIdentity(branch_id=2, cashier_id=7)
