import structlog
from decimal import Decimal
from typing import Callable, Optional

from pydantic import BaseModel, Field, TypeAdapter, ValidationError

from shared.errors import NoItemsResolved
from shared.money import from_minor_units, to_cents
from .gateway import SYNTHETIC_LINES, GatewaySession

logger = structlog.get_logger(__name__)


class ResolvedItem(BaseModel):
    name: str = Field(..., min_length=1)
    price: Decimal = Field(..., ge=0)
    quantity: int = Field(..., ge=1)
    image: Optional[str] = None


# A strategy returns the items it found, or None to let the next one try
ResolutionStrategy = Callable[[GatewaySession], Optional[list[ResolvedItem]]]


class ResolutionStep:
    def __init__(self, name: str, strategy: ResolutionStrategy):
        self.name = name
        self.strategy = strategy


class ItemResolutionChain:
    def __init__(self):
        self.steps: list[ResolutionStep] = []

    def add_strategy(self, name: str, strategy: ResolutionStrategy):
        """Builder pattern; strategies run in the order they were added."""
        self.steps.append(ResolutionStep(name, strategy))
        return self

    def resolve(self, session: GatewaySession) -> tuple[str, list[ResolvedItem]]:
        """Returns the name of the winning strategy and its items."""
        for step in self.steps:
            items = step.strategy(session)
            if items:
                logger.info(
                    "items.resolved",
                    session_id=session.session_id, strategy=step.name, count=len(items),
                )
                return step.name, items
            logger.info("items.strategy_empty", session_id=session.session_id, strategy=step.name)
        raise NoItemsResolved()


_item_list = TypeAdapter(list[ResolvedItem])


def metadata_items(session: GatewaySession) -> Optional[list[ResolvedItem]]:
    raw = session.metadata.get("items")
    if not raw:
        return None
    try:
        items = _item_list.validate_json(raw)
    except ValidationError as e:
        logger.warning(
            "items.metadata_unparseable",
            session_id=session.session_id, errors=e.error_count(),
        )
        return None
    return [item.model_copy(update={"price": to_cents(item.price)}) for item in items] or None


def gateway_line_items(session: GatewaySession) -> Optional[list[ResolvedItem]]:
    items = []
    for line in session.line_items:
        if line.description in SYNTHETIC_LINES:
            continue
        quantity = line.quantity or 1
        items.append(ResolvedItem(
            name=line.description or "Unknown Item",
            price=to_cents(from_minor_units(line.amount_total) / quantity),
            quantity=quantity,
        ))
    return items or None


def build_item_resolution_chain() -> ItemResolutionChain:
    chain = ItemResolutionChain()
    chain.add_strategy("metadata_items", metadata_items)
    chain.add_strategy("gateway_line_items", gateway_line_items)
    return chain
