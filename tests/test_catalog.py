"""Tests for scan resolution and catalog refresh."""

from catalog import CatalogService, CatalogSnapshot, resolve_scan
from conftest import FakeCatalog, make_variant


def test_exact_barcode_or_sku_match() -> None:
    a = make_variant(1, sku="TSHIRT-RED-M", barcode="6291041500213")
    b = make_variant(2, sku="CAP-01", barcode=None)

    assert resolve_scan("6291041500213", [a, b]) is a
    assert resolve_scan("CAP-01", [a, b]) is b


def test_exact_match_wins_over_case_insensitive() -> None:
    lower = make_variant(1, sku="abc-1")
    upper = make_variant(2, sku="ABC-1")

    assert resolve_scan("ABC-1", [lower, upper]) is upper


def test_case_insensitive_fallback() -> None:
    v = make_variant(1, sku="Jeans-32", barcode="AB12cd")

    assert resolve_scan("jeans-32", [v]) is v
    assert resolve_scan("ab12CD", [v]) is v


def test_leading_zero_fallback() -> None:
    v = make_variant(1, barcode="012345678905")

    assert resolve_scan("12345678905", [v]) is v


def test_leading_zero_on_token_matches_stripped_stored_code() -> None:
    v = make_variant(1, barcode="12345678905")

    assert resolve_scan("012345678905", [v]) is v


def test_only_one_zero_is_stripped() -> None:
    v = make_variant(1, barcode="12345")

    assert resolve_scan("0012345", [v]) is None


def test_token_with_zero_matches_stored_code_with_zero() -> None:
    v = make_variant(1, barcode="12345678905")
    padded = make_variant(2, barcode="012345678905")

    assert resolve_scan("012345678905", [v, padded]) is padded


def test_no_match_and_blank_tokens() -> None:
    v = make_variant(1, barcode="111")

    assert resolve_scan("999", [v]) is None
    assert resolve_scan("   ", [v]) is None


def test_snapshot_lookup_by_id() -> None:
    snapshot = CatalogSnapshot([make_variant(3), make_variant(4)])

    assert snapshot.get(4).id == 4
    assert snapshot.get(5) is None
    assert len(snapshot) == 2


def test_refresh_replaces_snapshot_and_notifies() -> None:
    provider = FakeCatalog([make_variant(1, stock=3)])
    seen = []
    service = CatalogService(provider, on_refresh=seen.append)

    assert service.refresh() is True
    assert service.snapshot.get(1).stock_on_hand == 3
    assert seen == [service.snapshot]


def test_refresh_accepts_plain_rows() -> None:
    row = {'id': 9, 'sku': 'S9', 'barcode': '099', 'name': 'Socks', 'color': 'black',
           'size': None, 'sale_price': 2500, 'purchase_cost': 1.2, 'stock_on_hand': 4}
    service = CatalogService(FakeCatalog([row]))
    service.refresh()

    assert service.resolve("99").name == "Socks"


def test_failed_refresh_keeps_previous_snapshot() -> None:
    provider = FakeCatalog([make_variant(1)])
    service = CatalogService(provider)
    service.refresh()
    before = service.snapshot

    provider.fail = True
    assert service.refresh() is False
    assert service.snapshot is before
