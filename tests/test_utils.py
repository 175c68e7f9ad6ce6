"""Tests for catalog import/export through pandas."""

from pathlib import Path

import pandas as pd
import pytest

from database import Database
from utils import export_catalog, import_catalog


@pytest.fixture
def db():
    database = Database(":memory:")
    yield database
    database.close()


def _write_csv(path: Path, content: str) -> Path:
    path.write_text(content.lstrip())
    return path


def test_import_keeps_leading_zeros(db, tmp_path: Path) -> None:
    csv = _write_csv(tmp_path / "catalog.csv", """
sku,barcode,name,color,size,sale_price,purchase_cost,stock_on_hand
0001,012345678905,Shirt,red,M,30000,8,5
0002,,Belt,,,20000,,3
""")

    assert import_catalog(db, str(csv)) == 2
    shirt, belt = db.list_variants()
    assert (shirt['sku'], shirt['barcode'], shirt['size']) == ("0001", "012345678905", "M")
    assert belt['barcode'] is None
    assert belt['purchase_cost'] == 0
    assert belt['stock_on_hand'] == 3


def test_import_upserts_by_sku(db, tmp_path: Path) -> None:
    db.add_variant("0001", "Old name", 1.0, 1.0, 1)
    csv = _write_csv(tmp_path / "catalog.csv", """
sku,name,sale_price,stock_on_hand
0001,Shirt,30000,7
""")

    import_catalog(db, str(csv))
    [row] = db.list_variants()
    assert (row['name'], row['sale_price'], row['stock_on_hand']) == ("Shirt", 30000.0, 7)


def test_import_requires_core_columns(db, tmp_path: Path) -> None:
    csv = _write_csv(tmp_path / "bad.csv", "barcode,name\n123,Shirt\n")

    with pytest.raises(ValueError):
        import_catalog(db, str(csv))


def test_export_csv(db, tmp_path: Path) -> None:
    db.add_variant("S1", "Scarf", 12000.0, 3.5, 4, barcode="0456")
    out = tmp_path / "out.csv"

    export_catalog(db, str(out))
    df = pd.read_csv(out, dtype={'barcode': str})
    assert list(df['name']) == ["Scarf"]
    assert list(df['barcode']) == ["0456"]
