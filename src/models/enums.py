from enum import Enum
from typing import Dict, FrozenSet

from ..exceptions import InvalidStatusTransitionError


class FeedSourceKind(str, Enum):
    RSS = "RSS"


class FetchedItemStatus(str, Enum):
    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    APPROVED = "APPROVED"
    PUBLISHED = "PUBLISHED"
    REJECTED = "REJECTED"
    # Secondary items consumed by a combined generation; no post of their own.
    ABSORBED = "ABSORBED"


ALLOWED_TRANSITIONS: Dict[FetchedItemStatus, FrozenSet[FetchedItemStatus]] = {
    FetchedItemStatus.PENDING: frozenset({FetchedItemStatus.PROCESSING}),
    FetchedItemStatus.PROCESSING: frozenset({
        FetchedItemStatus.APPROVED,
        FetchedItemStatus.PENDING,
        FetchedItemStatus.ABSORBED,
    }),
    FetchedItemStatus.APPROVED: frozenset({FetchedItemStatus.PUBLISHED, FetchedItemStatus.REJECTED}),
    FetchedItemStatus.REJECTED: frozenset({FetchedItemStatus.APPROVED}),
    FetchedItemStatus.PUBLISHED: frozenset(),
    FetchedItemStatus.ABSORBED: frozenset(),
}

MANUAL_TRANSITIONS = frozenset({
    (FetchedItemStatus.APPROVED, FetchedItemStatus.REJECTED),
    (FetchedItemStatus.REJECTED, FetchedItemStatus.APPROVED),
})

_missing = set(FetchedItemStatus) - set(ALLOWED_TRANSITIONS)
if _missing:
    raise RuntimeError(f"Transition table is missing states: {sorted(s.value for s in _missing)}")


def can_transition(current: FetchedItemStatus, target: FetchedItemStatus) -> bool:
    return FetchedItemStatus(target) in ALLOWED_TRANSITIONS[FetchedItemStatus(current)]


def ensure_transition(current: FetchedItemStatus, target: FetchedItemStatus) -> None:
    if not can_transition(current, target):
        raise InvalidStatusTransitionError(current, target)


def is_terminal(status: FetchedItemStatus) -> bool:
    return not ALLOWED_TRANSITIONS[FetchedItemStatus(status)]
