"""Customer-to-order matching strategies.

Orders rarely name their customer at the moment they arrive, so the engine
resolves one heuristically. Each strategy is a pure function
``(order, candidates) -> customer id | None``; the matcher runs them in order
and the first hit wins.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Mapping, Sequence

import structlog

from ordermonitor.model.customer import normalize_name
from ordermonitor.model.order import OrderRecord
from ordermonitor.reconciliation.state import CustomerEntry, CustomerSource, Link

logger = structlog.get_logger(__name__)

EXACT_SCORE = 1.0
CONTAINMENT_SCORE = 0.8


@dataclass(frozen=True)
class MatchCandidates:
    """Read-only view of the state the strategies may consult."""

    customers: Mapping[int, CustomerEntry]
    customer_keys: Mapping[str, int]
    links: Mapping[int, Link]
    session_started_after: int
    order_time: datetime
    window: timedelta = timedelta(seconds=180)
    recent_limit: int = 3
    similarity_threshold: float = 0.7

    def newest_first(self) -> list[CustomerEntry]:
        return sorted(self.customers.values(), key=lambda entry: entry.sequence, reverse=True)


Strategy = Callable[[OrderRecord, MatchCandidates], "int | None"]


def name_similarity(left: str, right: str) -> float:
    """Score two display names between 0 and 1.

    Exact match after normalization scores 1.0, containment 0.8, anything else
    the Jaccard index of the two character sets.
    """
    a, b = normalize_name(left), normalize_name(right)
    if not a or not b:
        return 0.0
    if a == b:
        return EXACT_SCORE
    if a in b or b in a:
        return CONTAINMENT_SCORE
    chars_a, chars_b = set(a), set(b)
    return len(chars_a & chars_b) / len(chars_a | chars_b)


def match_explicit_link(order: OrderRecord, candidates: MatchCandidates) -> int | None:
    link = candidates.links.get(order.id)
    if link is not None and link.customer_id in candidates.customers:
        return link.customer_id
    return None


def match_phone(order: OrderRecord, candidates: MatchCandidates) -> int | None:
    if not order.customer_phone:
        return None
    return candidates.customer_keys.get(order.customer_phone)


def match_email(order: OrderRecord, candidates: MatchCandidates) -> int | None:
    if not order.customer_email:
        return None
    return candidates.customer_keys.get(order.customer_email)


def match_recent_identity(order: OrderRecord, candidates: MatchCandidates) -> int | None:
    """Attribute a guest-looking order to a customer identified around its creation time."""
    if not order.looks_like_guest():
        return None
    recent = [
        entry
        for entry in candidates.newest_first()
        if entry.source is CustomerSource.IDENTITY and entry.sequence > candidates.session_started_after
    ][: candidates.recent_limit]
    for entry in recent:
        if abs(entry.identified_at - candidates.order_time) <= candidates.window:
            return entry.customer.id
    return None


def match_similar_name(order: OrderRecord, candidates: MatchCandidates) -> int | None:
    if order.has_placeholder_name:
        return None
    best_id, best_score = None, candidates.similarity_threshold
    for entry in candidates.newest_first():
        score = name_similarity(order.customer_name, entry.customer.name)
        if score > best_score:
            best_id, best_score = entry.customer.id, score
    return best_id


DEFAULT_STRATEGIES: tuple[Strategy, ...] = (
    match_explicit_link,
    match_phone,
    match_email,
    match_recent_identity,
    match_similar_name,
)


class CustomerMatcher:
    def __init__(self, strategies: Sequence[Strategy] = DEFAULT_STRATEGIES) -> None:
        self.strategies = tuple(strategies)

    def match(self, order: OrderRecord, candidates: MatchCandidates) -> int | None:
        for strategy in self.strategies:
            customer_id = strategy(order, candidates)
            if customer_id:
                logger.debug(
                    "Customer matched",
                    order_id=order.id,
                    customer_id=customer_id,
                    strategy=strategy.__name__,
                )
                return customer_id
        return None
