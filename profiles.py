# profiles.py
import json
import math
import logging
from dataclasses import replace

from discount import set_manual_value, switch_mode, track_subtotal
from errors import CorruptPersistedState, PosError
from models import (
    DISCOUNT_MODES, PAYMENT_METHODS, CartLine, CartProfile, CatalogVariant,
    Resolved, Unresolved,
)
from stock_guard import add_unit, change_quantity

logger = logging.getLogger("pos_terminal.profiles")

PROFILE_COUNT = 4
PROFILES_KEY = "pos_profiles"
ACTIVE_INDEX_KEY = "pos_active_profile_index"


def default_profiles(count: int = PROFILE_COUNT):
    return tuple(CartProfile() for _ in range(count))


# Serialization

def line_to_dict(line: CartLine):
    if isinstance(line.ref, Resolved):
        return {'variant': line.ref.variant.to_dict(), 'quantity': line.quantity}
    return {'variant_id': line.ref.raw_id, 'quantity': line.quantity}


def line_from_dict(data):
    quantity = data['quantity']
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
        raise ValueError(f"bad quantity {quantity!r}")
    variant = data.get('variant')
    if isinstance(variant, dict):
        try:
            return CartLine(Resolved(CatalogVariant.from_row(variant)), quantity)
        except KeyError:
            # Older payloads only kept the id
            return CartLine(Unresolved(int(variant['id'])), quantity)
    return CartLine(Unresolved(int(data['variant_id'])), quantity)


def profile_to_dict(profile: CartProfile):
    """Everything except the transient fields."""
    return {
        'cart': [line_to_dict(line) for line in profile.cart],
        'selected_customer_id': profile.selected_customer_id,
        'discount_mode': profile.discount_mode,
        'discount_value': profile.discount_value,
        'is_manual_discount': profile.is_manual_discount,
        'payment_method': profile.payment_method,
    }


def profile_from_dict(data):
    if not isinstance(data, dict):
        raise CorruptPersistedState(f"profile is {type(data).__name__}, expected object")
    try:
        mode = data.get('discount_mode', 'finalPrice')
        payment = data.get('payment_method', 'cash')
        if mode not in DISCOUNT_MODES or payment not in PAYMENT_METHODS:
            raise ValueError(f"unknown mode/payment {mode!r}/{payment!r}")
        customer = data.get('selected_customer_id')
        value = float(data.get('discount_value', 0))
        if not math.isfinite(value) or value < 0:
            raise ValueError(f"bad discount value {value!r}")
        manual = data.get('is_manual_discount', False)
        if not isinstance(manual, bool):
            raise ValueError(f"bad manual discount flag {manual!r}")
        cart = tuple(line_from_dict(item) for item in data.get('cart', []))
        if len({line.variant_id for line in cart}) != len(cart):
            raise ValueError("duplicate cart lines")
        return CartProfile(
            cart=cart,
            selected_customer_id=int(customer) if customer not in (None, '') else None,
            discount_mode=mode,
            discount_value=value,
            is_manual_discount=manual,
            payment_method=payment,
        )
    except (KeyError, TypeError, ValueError, AttributeError) as e:
        raise CorruptPersistedState(str(e)) from e


class ProfilePersistence:
    """
    Load/save port for profiles over any key-value store exposing
    get(key) and set(key, value).
    """

    def __init__(self, kv_store, count: int = PROFILE_COUNT):
        self.kv = kv_store
        self.count = count

    def load(self):
        """Return (profiles, active_index); bad or missing data yields defaults."""
        profiles = self._load_profiles()
        active = self._load_active_index()
        if not 0 <= active < self.count:
            active = 0
        return profiles, active

    def _load_profiles(self):
        try:
            raw = self.kv.get(PROFILES_KEY)
            if raw is None:
                return default_profiles(self.count)
            data = json.loads(raw)
            if not isinstance(data, list):
                raise CorruptPersistedState("profiles payload is not a list")
            profiles = [profile_from_dict(item) for item in data[:self.count]]
        except (CorruptPersistedState, ValueError, TypeError) as e:
            logger.warning(f"Discarding stored profiles: {e}")
            return default_profiles(self.count)
        except Exception as e:
            logger.warning(f"Could not read stored profiles: {e}")
            return default_profiles(self.count)
        profiles.extend(CartProfile() for _ in range(self.count - len(profiles)))
        return tuple(profiles)

    def _load_active_index(self):
        try:
            raw = self.kv.get(ACTIVE_INDEX_KEY)
            return int(raw) if raw is not None else 0
        except Exception as e:
            logger.warning(f"Could not read active profile index: {e}")
            return 0

    def save(self, profiles):
        try:
            payload = json.dumps([profile_to_dict(p) for p in profiles])
            self.kv.set(PROFILES_KEY, payload)
        except Exception as e:
            logger.warning(f"Failed to save profiles: {e}")

    def save_active_index(self, index: int):
        try:
            self.kv.set(ACTIVE_INDEX_KEY, str(index))
        except Exception as e:
            logger.warning(f"Failed to save active profile index: {e}")


class ProfileStore:
    """Owns the profile tuple and the active index."""

    def __init__(self, persistence: ProfilePersistence):
        self.persistence = persistence
        self.profiles, self.active_index = persistence.load()
        self._listeners = []

    def __len__(self):
        return len(self.profiles)

    def __getitem__(self, index):
        return self.profiles[index]

    @property
    def active(self):
        return self.profiles[self.active_index]

    def subscribe(self, listener):
        """listener(index, profile) is called after every change."""
        self._listeners.append(listener)

    def update(self, index: int, fn):
        """Replace profile index with fn(profile) and persist; returns the new tuple."""
        self._check_index(index)
        updated = fn(self.profiles[index])
        self.profiles = tuple(updated if i == index else p for i, p in enumerate(self.profiles))
        self.persistence.save(self.profiles)
        self._notify(index)
        return self.profiles

    def update_all(self, fn):
        changed = []
        profiles = []
        for i, profile in enumerate(self.profiles):
            updated = fn(profile)
            if updated != profile:
                changed.append(i)
            profiles.append(updated)
        if changed:
            self.profiles = tuple(profiles)
            self.persistence.save(self.profiles)
            for i in changed:
                self._notify(i)
        return self.profiles

    def set_active(self, index: int):
        self._check_index(index)
        self.active_index = index
        self.persistence.save_active_index(index)
        self._notify(index)

    def _check_index(self, index):
        if not 0 <= index < len(self.profiles):
            raise IndexError(f"No profile {index + 1}; terminal has {len(self.profiles)}")

    def _notify(self, index):
        for listener in self._listeners:
            listener(index, self.profiles[index])


def _refresh_lines(profile, snapshot):
    cart = []
    for line in profile.cart:
        current = snapshot.get(line.variant_id)
        cart.append(CartLine(Resolved(current), line.quantity) if current else line)
    return track_subtotal(replace(profile, cart=tuple(cart)))


class CartProfileManager:
    """
    User-facing cart operations. Each one targets the active profile unless
    an index is given, clears that profile's messages and persists it.
    Validation failures are recorded on the profile and reported by
    returning False.
    """

    def __init__(self, store: ProfileStore):
        self.store = store

    @property
    def active_index(self):
        return self.store.active_index

    def profile(self, index=None):
        return self.store[self.active_index if index is None else index]

    def _mutate(self, fn, index=None):
        index = self.active_index if index is None else index
        try:
            updated = fn(self.store[index])
        except (PosError, ValueError) as e:
            logger.info(f"Profile {index + 1}: {e}")
            self.set_error(str(e), index)
            return False
        updated = replace(updated, success=None, error=None)
        self.store.update(index, lambda _: track_subtotal(updated))
        return True

    def add_item(self, variant, index=None):
        return self._mutate(lambda p: replace(p, cart=add_unit(p.cart, variant)), index)

    def update_quantity(self, variant_id: int, delta: int, index=None):
        return self._mutate(
            lambda p: replace(p, cart=change_quantity(p.cart, variant_id, delta)), index)

    def remove_item(self, variant_id: int, index=None):
        return self._mutate(
            lambda p: replace(p, cart=tuple(l for l in p.cart if l.variant_id != variant_id)),
            index)

    def remove_last_item(self, index=None):
        return self._mutate(lambda p: replace(p, cart=p.cart[:-1]), index)

    def clear(self, index=None):
        return self._mutate(lambda p: replace(p, cart=()), index)

    def select_customer(self, customer_id, index=None):
        return self._mutate(lambda p: replace(p, selected_customer_id=customer_id), index)

    def set_payment_method(self, method: str, index=None):
        def apply(p):
            if method not in PAYMENT_METHODS:
                raise ValueError(f"Unknown payment method: {method}")
            return replace(p, payment_method=method)
        return self._mutate(apply, index)

    def set_discount_mode(self, mode: str, index=None):
        return self._mutate(lambda p: switch_mode(p, mode), index)

    def set_discount_value(self, value, index=None):
        return self._mutate(lambda p: set_manual_value(p, value), index)

    def switch_active(self, index: int):
        self.store.set_active(index)
        logger.info(f"Switched to profile {index + 1}")

    def set_error(self, message, index=None):
        index = self.active_index if index is None else index
        self.store.update(index, lambda p: replace(p, error=message, success=None))

    def set_success(self, message, index=None):
        index = self.active_index if index is None else index
        self.store.update(index, lambda p: replace(p, success=message, error=None))

    def apply_snapshot(self, snapshot):
        """Point every profile's lines at the variants of a fresh snapshot."""
        self.store.update_all(lambda p: _refresh_lines(p, snapshot))
