"""Customer identity and the guest placeholder."""

import unicodedata
from dataclasses import dataclass

GUEST_NAME = "Khách lẻ"

# Names the backend uses when no real customer is attached to a checkout.
PLACEHOLDER_NAMES = frozenset({"khách lẻ", "khách vãng lai", "guest"})


def normalize_name(name: str) -> str:
    """Trim, NFC-normalize and casefold a display name for comparison."""
    return unicodedata.normalize("NFC", name.strip()).casefold()


def is_placeholder_name(name: str) -> bool:
    return normalize_name(name) in PLACEHOLDER_NAMES


@dataclass(frozen=True)
class Customer:
    """A customer identity announced by the backend.

    A customer is *valid for display* when it has a positive id and either a
    name or a phone number. A customer with a non-positive id, or one named
    after a placeholder, is the *guest sentinel*: the backend's way of saying
    the active checkout has no identified customer.
    """

    id: int
    name: str = ""
    phone: str | None = None
    email: str | None = None

    @property
    def display_name(self) -> str:
        return self.name or GUEST_NAME

    def is_valid_for_display(self) -> bool:
        return self.id > 0 and (bool(self.name) or bool(self.phone))

    def is_guest_sentinel(self) -> bool:
        return self.id <= 0 or is_placeholder_name(self.name)

    def lookup_keys(self) -> tuple[str, ...]:
        keys = [customer_key(self.id)]
        if self.phone:
            keys.append(self.phone)
        if self.email:
            keys.append(self.email)
        return tuple(keys)


def customer_key(customer_id: int) -> str:
    return f"id:{customer_id}"
