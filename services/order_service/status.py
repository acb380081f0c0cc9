"""
Order status state machine.

``LIFECYCLE_PREDECESSORS`` lists, for every target status, the statuses an
order may move from on the normal fulfilment path. ``CUSTOMER_PREDECESSORS``
is the subset a customer may trigger on their own order. Administrators are
not bound by either table; their writes go through ``OrderLifecycle.admin_set_status``.
"""
import enum


class OrderStatus(str, enum.Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    PREPARING = "PREPARING"
    READY = "READY"
    OUT_FOR_DELIVERY = "OUT_FOR_DELIVERY"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"

    @classmethod
    def parse(cls, value: str) -> "OrderStatus":
        """Case-insensitive lookup; raises ValueError for unknown statuses."""
        return cls(str(value).strip().upper())

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


TERMINAL_STATUSES = frozenset({OrderStatus.DELIVERED, OrderStatus.CANCELLED})

_NON_TERMINAL = frozenset(s for s in OrderStatus if s not in TERMINAL_STATUSES)

LIFECYCLE_PREDECESSORS: dict[OrderStatus, frozenset[OrderStatus]] = {
    OrderStatus.PENDING: frozenset(),
    OrderStatus.CONFIRMED: frozenset({OrderStatus.PENDING}),
    OrderStatus.PREPARING: frozenset({OrderStatus.CONFIRMED}),
    OrderStatus.READY: frozenset({OrderStatus.PREPARING}),
    OrderStatus.OUT_FOR_DELIVERY: frozenset({OrderStatus.READY}),
    OrderStatus.DELIVERED: frozenset({OrderStatus.OUT_FOR_DELIVERY}),
    OrderStatus.CANCELLED: _NON_TERMINAL,
}

CUSTOMER_PREDECESSORS: dict[OrderStatus, frozenset[OrderStatus]] = {
    OrderStatus.CANCELLED: frozenset({OrderStatus.PENDING}),
}


def is_lifecycle_transition(current: OrderStatus, target: OrderStatus) -> bool:
    return current in LIFECYCLE_PREDECESSORS[target]


def is_customer_transition(current: OrderStatus, target: OrderStatus) -> bool:
    return current in CUSTOMER_PREDECESSORS.get(target, frozenset())
