# database.py
import sqlite3

from errors import PersistenceFailure

EXCHANGE_RATE_KEY = "exchange_rate"


class Database:
    """
    Manages the SQLite connection and provides the terminal's default
    catalog, customer, exchange-rate, sales and key-value adapters.
    """
    def __init__(self, db_name: str = "pos.db", default_exchange_rate: float = 1500.0):
        self.conn = sqlite3.connect(db_name)
        self.conn.row_factory = sqlite3.Row
        self.default_exchange_rate = default_exchange_rate
        self._create_tables()

    def _create_tables(self):
        cur = self.conn.cursor()
        # Variants (one row per sellable color/size)
        cur.execute("""
        CREATE TABLE IF NOT EXISTS variants (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            sku TEXT UNIQUE NOT NULL,
            barcode TEXT,
            name TEXT,
            color TEXT,
            size TEXT,
            sale_price REAL,
            purchase_cost REAL,
            stock_on_hand INTEGER NOT NULL DEFAULT 0
        )
        """)
        cur.execute("""
        CREATE TABLE IF NOT EXISTS customers (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            name TEXT,
            phone TEXT,
            total_purchases REAL NOT NULL DEFAULT 0
        )
        """)
        # Sales master table
        cur.execute("""
        CREATE TABLE IF NOT EXISTS sales (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            branch_id INTEGER,
            cashier_id INTEGER,
            customer_id INTEGER,
            sale_date TEXT,
            subtotal REAL,
            discount REAL,
            total REAL,
            payment_method TEXT,
            profit REAL,
            FOREIGN KEY(customer_id) REFERENCES customers(id)
        )
        """)
        # Sale items (line items)
        cur.execute("""
        CREATE TABLE IF NOT EXISTS sale_items (
            sale_id INTEGER,
            variant_id INTEGER,
            quantity INTEGER,
            unit_price REAL,
            unit_cost REAL,
            line_total REAL,
            FOREIGN KEY(sale_id) REFERENCES sales(id),
            FOREIGN KEY(variant_id) REFERENCES variants(id)
        )
        """)
        cur.execute("""
        CREATE TABLE IF NOT EXISTS kv_store (
            key TEXT PRIMARY KEY,
            value TEXT
        )
        """)
        self.conn.commit()

    # Variant operations
    def add_variant(self, sku: str, name: str, sale_price: float, purchase_cost: float,
                    stock_on_hand: int, barcode: str = None, color: str = None,
                    size: str = None):
        """Insert a new variant; sku must be unique. Returns the new id."""
        cur = self.conn.cursor()
        cur.execute("""
        INSERT INTO variants (sku, barcode, name, color, size, sale_price, purchase_cost,
                              stock_on_hand)
        VALUES (?, ?, ?, ?, ?, ?, ?, ?)
        """, (sku, barcode, name, color, size, sale_price, purchase_cost, stock_on_hand))
        self.conn.commit()
        return cur.lastrowid

    def update_variant(self, variant_id: int, **fields):
        """Update the given columns of one variant."""
        allowed = {'sku', 'barcode', 'name', 'color', 'size', 'sale_price',
                   'purchase_cost', 'stock_on_hand'}
        unknown = set(fields) - allowed
        if unknown:
            raise ValueError(f"Unknown variant fields: {', '.join(sorted(unknown))}")
        if not fields:
            return
        assignments = ", ".join(f"{name} = ?" for name in fields)
        cur = self.conn.cursor()
        cur.execute(f"UPDATE variants SET {assignments} WHERE id = ?",
                    (*fields.values(), variant_id))
        self.conn.commit()

    def get_variant_by_sku(self, sku: str):
        cur = self.conn.cursor()
        cur.execute("SELECT * FROM variants WHERE sku = ?", (sku,))
        return cur.fetchone()

    def get_variant(self, variant_id: int):
        cur = self.conn.cursor()
        cur.execute("SELECT * FROM variants WHERE id = ?", (variant_id,))
        row = cur.fetchone()
        return dict(row) if row else None

    def delete_variant(self, variant_id: int):
        cur = self.conn.cursor()
        cur.execute("DELETE FROM variants WHERE id = ?", (variant_id,))
        self.conn.commit()
        return cur.rowcount > 0

    def adjust_stock(self, variant_id: int, delta: int):
        """
        Change stock by delta (negative to reduce).
        Prevents negative stock; returns False when the change was refused.
        """
        cur = self.conn.cursor()
        cur.execute("""
        UPDATE variants
        SET stock_on_hand = stock_on_hand + ?
        WHERE id = ? AND stock_on_hand + ? >= 0
        """, (delta, variant_id, delta))
        self.conn.commit()
        return cur.rowcount > 0

    def list_variants(self):
        """Return all variants as list of dicts."""
        cur = self.conn.cursor()
        cur.execute("SELECT * FROM variants ORDER BY id")
        return [dict(row) for row in cur.fetchall()]

    # Catalog provider
    def load_variants(self):
        return self.list_variants()

    # Customer directory
    def add_customer(self, name: str, phone: str = None):
        cur = self.conn.cursor()
        cur.execute("INSERT INTO customers (name, phone) VALUES (?, ?)", (name, phone))
        self.conn.commit()
        return cur.lastrowid

    def search_customers(self, term: str):
        """Search customers by name or phone."""
        cur = self.conn.cursor()
        kw = f"%{term.strip()}%"
        cur.execute("""
        SELECT id, name, phone FROM customers
        WHERE name LIKE ? OR phone LIKE ?
        ORDER BY name
        """, (kw, kw))
        return [dict(row) for row in cur.fetchall()]

    # Exchange rate provider
    def current_rate(self):
        value = self.get(EXCHANGE_RATE_KEY)
        return float(value) if value is not None else self.default_exchange_rate

    def set_rate(self, rate: float):
        self.set(EXCHANGE_RATE_KEY, str(float(rate)))

    # Durable key-value store
    def get(self, key: str):
        cur = self.conn.cursor()
        cur.execute("SELECT value FROM kv_store WHERE key = ?", (key,))
        row = cur.fetchone()
        return row['value'] if row else None

    def set(self, key: str, value: str):
        cur = self.conn.cursor()
        cur.execute("""
        INSERT INTO kv_store (key, value) VALUES (?, ?)
        ON CONFLICT(key) DO UPDATE SET value = excluded.value
        """, (key, value))
        self.conn.commit()

    # Sales persistence
    def create_sale(self, draft):
        """
        Record a sale and its line items in one transaction, deducting stock.
        Raises PersistenceFailure (and writes nothing) if any line would take
        stock below zero, e.g. after a sale on another terminal.
        """
        if not draft.branch_id or not draft.cashier_id:
            raise PersistenceFailure("branch_id and cashier_id are required for a sale")
        profit = draft.total - sum(line.unit_cost * line.quantity for line in draft.lines)
        cur = self.conn.cursor()
        try:
            cur.execute("""
            INSERT INTO sales (branch_id, cashier_id, customer_id, sale_date, subtotal,
                               discount, total, payment_method, profit)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            """, (draft.branch_id, draft.cashier_id, draft.customer_id, draft.sale_date,
                  draft.subtotal, draft.discount, draft.total, draft.payment_method,
                  round(profit, 2)))
            sale_id = cur.lastrowid

            # Line items; stock only drops if enough is left
            for line in draft.lines:
                cur.execute("""
                INSERT INTO sale_items (sale_id, variant_id, quantity, unit_price, unit_cost,
                                        line_total)
                VALUES (?, ?, ?, ?, ?, ?)
                """, (sale_id, line.variant_id, line.quantity, line.unit_price,
                      line.unit_cost, line.line_total))
                cur.execute("""
                UPDATE variants
                SET stock_on_hand = stock_on_hand - ?
                WHERE id = ? AND stock_on_hand >= ?
                """, (line.quantity, line.variant_id, line.quantity))
                if cur.rowcount == 0:
                    raise PersistenceFailure(
                        f"Not enough stock for variant {line.variant_id}; sale not recorded.")
            # Customer lifetime spend
            if draft.customer_id:
                cur.execute("""
                UPDATE customers SET total_purchases = total_purchases + ? WHERE id = ?
                """, (draft.total, draft.customer_id))
            self.conn.commit()
        except PersistenceFailure:
            self.conn.rollback()
            raise
        except sqlite3.Error as e:
            self.conn.rollback()
            raise PersistenceFailure(f"Failed to record sale: {e}") from e
        return self.get_sale_details(sale_id)

    def list_sales(self, date_from: str = None, date_to: str = None):
        """List sales within optional date range."""
        cur = self.conn.cursor()
        q = "SELECT * FROM sales"
        params = []
        if date_from and date_to:
            q += " WHERE sale_date BETWEEN ? AND ?"
            params = [date_from, date_to]
        elif date_from:
            q += " WHERE sale_date >= ?"
            params = [date_from]
        elif date_to:
            q += " WHERE sale_date <= ?"
            params = [date_to]

        q += " ORDER BY sale_date DESC"
        cur.execute(q, params)
        return [dict(r) for r in cur.fetchall()]

    def get_sale_details(self, sale_id: int):
        """Sale header fields plus an 'items' list with variant names."""
        # Get sale header
        cur = self.conn.cursor()
        cur.execute("SELECT * FROM sales WHERE id = ?", (sale_id,))
        sale = cur.fetchone()
        if not sale:
            return None

        # Get sale items with variant details
        cur.execute("""
        SELECT si.*, v.name, v.sku, v.barcode
        FROM sale_items si
        LEFT JOIN variants v ON si.variant_id = v.id
        WHERE si.sale_id = ?
        """, (sale_id,))
        record = dict(sale)
        record['items'] = [dict(row) for row in cur.fetchall()]
        return record

    def close(self):
        self.conn.close()
