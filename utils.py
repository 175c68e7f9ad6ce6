# utils.py
import os

import pandas as pd

from database import Database

CATALOG_COLUMNS = ['sku', 'barcode', 'name', 'color', 'size', 'sale_price',
                   'purchase_cost', 'stock_on_hand']
TEXT_COLUMNS = {'sku': str, 'barcode': str}


def _clean(value):
    """NaN cells become None so they land in SQLite as NULL."""
    if value is None or (isinstance(value, float) and pd.isna(value)):
        return None
    return value


def _text(value):
    value = _clean(value)
    return None if value is None else str(value).strip()


def _upsert_rows(db: Database, df):
    missing = [c for c in ('sku', 'name', 'sale_price') if c not in df.columns]
    if missing:
        raise ValueError(f"Catalog file is missing columns: {', '.join(missing)}")
    df = df.reindex(columns=CATALOG_COLUMNS)
    count = 0
    for _, row in df.iterrows():
        sku = _text(row['sku'])
        if not sku:
            continue
        fields = {
            'barcode': _text(row['barcode']),
            'name': _text(row['name']),
            'color': _text(row['color']),
            'size': _text(row['size']),
            'sale_price': float(row['sale_price']),
            'purchase_cost': float(_clean(row['purchase_cost']) or 0),
            'stock_on_hand': max(int(_clean(row['stock_on_hand']) or 0), 0),
        }
        existing = db.get_variant_by_sku(sku)
        if existing:
            db.update_variant(existing['id'], **fields)
        else:
            db.add_variant(sku, **fields)
        count += 1
    return count


def import_catalog_csv(db: Database, file_path: str):
    """
    Read CSV with columns sku,barcode,name,color,size,sale_price,
    purchase_cost,stock_on_hand and upsert into the variants table by sku.
    Codes are read as text so leading zeros survive.
    """
    df = pd.read_csv(file_path, dtype=TEXT_COLUMNS)
    return _upsert_rows(db, df)


def import_catalog_excel(db: Database, file_path: str):
    """Same as import_catalog_csv for .xlsx/.xls files."""
    try:
        df = pd.read_excel(file_path, dtype=TEXT_COLUMNS)
    except Exception as e:
        raise Exception(f"Failed to import from Excel: {str(e)}")
    return _upsert_rows(db, df)


def import_catalog(db: Database, file_path: str):
    ext = os.path.splitext(file_path)[1].lower()
    if ext in ('.xlsx', '.xls'):
        return import_catalog_excel(db, file_path)
    return import_catalog_csv(db, file_path)


def export_catalog_csv(db: Database, file_path: str):
    """Dump the variant catalog to CSV."""
    df = pd.DataFrame(db.list_variants(), columns=['id'] + CATALOG_COLUMNS)
    df.to_csv(file_path, index=False)
    return file_path


def export_catalog_excel(db: Database, file_path: str):
    try:
        df = pd.DataFrame(db.list_variants(), columns=['id'] + CATALOG_COLUMNS)
        df.to_excel(file_path, index=False, sheet_name='Catalog')
        return file_path
    except Exception as e:
        raise Exception(f"Failed to export to Excel: {str(e)}")


def export_catalog(db: Database, file_path: str):
    ext = os.path.splitext(file_path)[1].lower()
    if ext in ('.xlsx', '.xls'):
        return export_catalog_excel(db, file_path)
    return export_catalog_csv(db, file_path)
