# sale.py
import datetime
import logging
from dataclasses import replace

from discount import compute_totals
from errors import CheckoutBlocked, EmptyCart, PersistenceFailure
from models import (
    DEFAULT_PAYMENT_METHOD, SaleDraft, SaleLine, TerminalIdentity,
)
from stock_guard import check_checkout

logger = logging.getLogger("pos_terminal.sale")

SALE_COMPLETED = "Sale completed."


def build_sale_draft(profile, lines, identity: TerminalIdentity, exchange_rate: float,
                     now=None):
    """
    Snapshot a validated cart into a SaleDraft. Prices and costs are taken
    from lines as they are now and never re-derived.
    """
    subtotal = round(sum(line.line_total for line in lines), 2)
    totals = compute_totals(subtotal, profile.discount_mode, profile.discount_value,
                            profile.is_manual_discount)
    now = now or datetime.datetime.now()
    return SaleDraft(
        branch_id=identity.branch_id,
        cashier_id=identity.cashier_id,
        customer_id=profile.selected_customer_id,
        sale_date=now.isoformat(timespec='seconds'),
        subtotal=totals['subtotal'],
        discount=totals['discount'],
        total=totals['total'],
        payment_method=profile.payment_method,
        lines=tuple(
            SaleLine(
                variant_id=line.variant_id,
                quantity=line.quantity,
                unit_price=line.unit_price,
                unit_cost=round(line.variant.purchase_cost * exchange_rate, 2),
                line_total=line.line_total,
            )
            for line in lines
        ),
    )


def _reset_after_sale(profile):
    return replace(
        profile,
        cart=(),
        selected_customer_id=None,
        discount_value=0.0,
        is_manual_discount=False,
        payment_method=DEFAULT_PAYMENT_METHOD,
        success=SALE_COMPLETED,
        error=None,
        is_submitting=False,
    )


class SaleAssembler:
    """
    Commits one profile: validates stock, writes the sale through the
    sales store and resets the profile on success.

    sales_store.create_sale(draft) returns the created sale record (a dict
    with an 'id'); printer(record) receives it afterwards.
    """

    def __init__(self, manager, catalog, sales_store, rates, identity: TerminalIdentity,
                 printer=None, on_failure=None):
        self.manager = manager
        self.catalog = catalog
        self.sales_store = sales_store
        self.rates = rates
        self.identity = identity
        self.printer = printer
        self.on_failure = on_failure

    def commit(self, index=None):
        """Return the created sale record, or None when nothing was committed."""
        store = self.manager.store
        index = self.manager.active_index if index is None else index
        profile = store[index]
        if profile.is_submitting:
            logger.debug(f"Profile {index + 1} is already submitting; ignoring commit")
            return None
        if not profile.cart:
            self.manager.set_error(str(EmptyCart()), index)
            return None

        self.catalog.refresh()
        profile = store[index]
        try:
            lines = check_checkout(profile.cart, self.catalog.snapshot)
        except CheckoutBlocked as e:
            logger.info(f"Profile {index + 1}: {e}")
            self.manager.set_error(str(e), index)
            return None

        store.update(index, lambda p: replace(p, is_submitting=True, error=None, success=None))
        try:
            draft = build_sale_draft(profile, lines, self.identity, self.rates.current_rate())
            record = self.sales_store.create_sale(draft)
            if not isinstance(record, dict) or record.get('id') is None:
                raise PersistenceFailure("Sale was not recorded.")
        except Exception as e:
            message = str(e) or "Failed to complete sale."
            logger.error(f"Checkout error on profile {index + 1}: {message}")
            store.update(index, lambda p: replace(p, error=message, success=None,
                                                  is_submitting=False))
            if self.on_failure:
                self.on_failure(PersistenceFailure(message))
            return None

        store.update(index, _reset_after_sale)
        logger.info(f"Sale #{record.get('id')} committed from profile {index + 1}, "
                    f"total {draft.total:.2f}")
        if self.printer:
            try:
                self.printer(record)
            except Exception as e:
                logger.error(f"Printing sale #{record.get('id')} failed: {e}")
        self.catalog.refresh()
        return record
