# terminal.py
import logging

from catalog import CatalogService
from discount import estimate_profit, profile_totals
from errors import ScanNoMatch
from models import TerminalIdentity
from profiles import PROFILE_COUNT, CartProfileManager, ProfilePersistence, ProfileStore
from sale import SaleAssembler
from scanner import SCOPE_GLOBAL, BarcodeCapture

logger = logging.getLogger("pos_terminal")


class PosTerminal:
    """
    Coordinates scanning, cart profiles, discounts and checkout for one
    physical terminal. This is the surface a UI layer talks to.

    catalog_provider.load_variants(), customers.search_customers(term),
    rates.current_rate(), sales.create_sale(draft) and kv.get/kv.set are
    the external collaborators; a single Database instance satisfies all
    of them.
    """

    def __init__(self, catalog_provider, customers, rates, sales, kv,
                 identity: TerminalIdentity, printer=None, profile_count: int = PROFILE_COUNT,
                 scanner_config=None, clock=None):
        self.identity = identity
        self.customers = customers
        self.rates = rates
        self.global_error = None
        self.scanner_message = None

        self.store = ProfileStore(ProfilePersistence(kv, profile_count))
        self.manager = CartProfileManager(self.store)
        self.catalog = CatalogService(catalog_provider, on_refresh=self.manager.apply_snapshot)
        self.assembler = SaleAssembler(self.manager, self.catalog, sales, rates, identity,
                                       printer=printer, on_failure=self._on_commit_failure)

        scanner_config = scanner_config or {}
        self.capture = BarcodeCapture(
            self.scan,
            decay_ms=scanner_config.get('decay_ms', 150),
            min_length=scanner_config.get('min_length', 3),
            cooldown_ms=scanner_config.get('cooldown_ms', 500),
            scope=scanner_config.get('scope', SCOPE_GLOBAL),
            clock=clock,
        )

    def start(self):
        """Load the catalog; profiles were already restored from storage."""
        if not self.catalog.refresh():
            self.global_error = "Failed to load catalog."
        logger.info(f"Terminal ready: {len(self.store)} profiles, "
                    f"{len(self.catalog.snapshot)} variants, active profile "
                    f"{self.store.active_index + 1}")

    def subscribe(self, listener):
        self.store.subscribe(listener)

    # State

    @property
    def active_index(self):
        return self.store.active_index

    def profile(self, index=None):
        return self.manager.profile(index)

    def totals(self, index=None):
        """subtotal/discount/total, plus profit for privileged roles."""
        profile = self.profile(index)
        totals = profile_totals(profile)
        if self.identity.can_see_profit:
            try:
                rate = self.rates.current_rate()
            except Exception as e:
                logger.warning(f"Exchange rate unavailable: {e}")
            else:
                totals['profit'] = estimate_profit(profile.cart, totals['total'], rate)
        return totals

    # Intents

    def handle_key(self, key: str, target: str = "other"):
        return self.capture.handle_key(key, target)

    def tick(self):
        self.capture.tick()

    def scan(self, token: str):
        """Resolve a scan token and add one unit to the active profile."""
        variant = self.catalog.resolve(token)
        if variant is None:
            error = ScanNoMatch(token)
            self.scanner_message = str(error)
            logger.info(str(error))
            return False
        added = self.manager.add_item(variant)
        if added:
            self.scanner_message = f"Added {variant.name}"
        else:
            self.scanner_message = self.profile().error
        return added

    def update_quantity(self, variant_id: int, delta: int):
        return self.manager.update_quantity(variant_id, delta)

    def remove_item(self, variant_id: int):
        return self.manager.remove_item(variant_id)

    def remove_last_item(self):
        return self.manager.remove_last_item()

    def clear(self):
        return self.manager.clear()

    def set_discount_mode(self, mode: str):
        return self.manager.set_discount_mode(mode)

    def set_discount_value(self, value):
        return self.manager.set_discount_value(value)

    def set_payment_method(self, method: str):
        return self.manager.set_payment_method(method)

    def search_customers(self, term: str):
        if not term or not term.strip():
            return []
        try:
            return self.customers.search_customers(term)
        except Exception as e:
            logger.warning(f"Customer search failed: {e}")
            return []

    def select_customer(self, customer_id):
        return self.manager.select_customer(customer_id)

    def switch_profile(self, index: int):
        try:
            self.manager.switch_active(index)
        except IndexError as e:
            logger.warning(str(e))
            return False
        return True

    def refresh_catalog(self):
        return self.catalog.refresh()

    def commit(self, index=None):
        record = self.assembler.commit(index)
        if record is not None:
            self.global_error = None
        return record

    def _on_commit_failure(self, error):
        self.global_error = str(error)
