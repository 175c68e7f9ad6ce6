# catalog.py
import logging

from models import CatalogVariant

logger = logging.getLogger("pos_terminal.catalog")


class CatalogSnapshot:
    """Immutable view of the catalog as of one refresh."""

    def __init__(self, variants=()):
        self.variants = tuple(variants)
        self._by_id = {v.id: v for v in self.variants}

    def __len__(self):
        return len(self.variants)

    def get(self, variant_id: int):
        return self._by_id.get(variant_id)

    def resolve(self, token: str):
        return resolve_scan(token, self.variants)


def _match(token, variants):
    for v in variants:
        if v.barcode == token or v.sku == token:
            return v
    folded = token.lower()
    for v in variants:
        if (v.barcode or "").lower() == folded or v.sku.lower() == folded:
            return v
    return None


def resolve_scan(token: str, variants):
    """
    Find the variant for a scanned token, or None.
    Exact barcode/SKU first, then case-insensitive, then the same two
    with a '0' prepended (some scanners drop the leading zero). A code
    stored without its leading zero is matched by stripping exactly one.
    """
    token = (token or "").strip()
    if not token:
        return None
    match = _match(token, variants) or _match("0" + token, variants)
    if match is None and len(token) > 1 and token.startswith("0"):
        match = _match(token[1:], variants)
    return match


class CatalogService:
    """
    Holds the current snapshot and swaps it on refresh.
    provider must expose load_variants() returning rows or CatalogVariant objects.
    """

    def __init__(self, provider, on_refresh=None):
        self.provider = provider
        self.on_refresh = on_refresh
        self.snapshot = CatalogSnapshot()

    def refresh(self):
        """Pull a new snapshot. Returns True on success; failures keep the old one."""
        try:
            rows = self.provider.load_variants()
            variants = [r if isinstance(r, CatalogVariant) else CatalogVariant.from_row(r)
                        for r in rows]
        except Exception as e:
            logger.warning(f"Catalog refresh failed: {e}")
            return False
        self.snapshot = CatalogSnapshot(variants)
        logger.debug(f"Catalog refreshed: {len(variants)} variants")
        if self.on_refresh:
            self.on_refresh(self.snapshot)
        return True

    def resolve(self, token: str):
        return self.snapshot.resolve(token)
