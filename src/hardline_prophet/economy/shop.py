from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, List, Mapping, Tuple

from ..errors import InsufficientCreditsError, UnknownItemError
from ..models.content import ItemDefinition
from ..models.record import PlayerRecord

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PurchaseReceipt:
    """Details about a completed purchase."""
    item_id: str
    item_name: str
    cost: int
    credits_remaining: int


def purchase(record: PlayerRecord, item: ItemDefinition) -> PlayerRecord:
    """Deduct ``item.cost`` and apply the item's stat upgrade, returning the new record.

    The upgrade is read from ``item.effect_description`` (``+5 Stealth``,
    ``+10% HackSpeed``); items whose effect names no stat only cost credits.

    Raises InsufficientCreditsError with a friendly message when the player
    cannot afford the item. The record passed in is never modified.
    """
    if record.credits < item.cost:
        shortfall = item.cost - record.credits
        raise InsufficientCreditsError(
            f"You need {shortfall} more credits to buy '{item.name}'."
        )
    return record.with_changes(
        credits=record.credits - item.cost,
        stats=record.stats.apply_upgrade(item.effect_description),
    )


class Shop:
    """Item catalog front for purchases.

    Usage:
        shop = Shop(catalog.items)
        shop.list_items()
        record, receipt = shop.purchase(record, "proxy_chain")
    """

    def __init__(self, items: Mapping[str, ItemDefinition]) -> None:
        self._items: Dict[str, ItemDefinition] = dict(items)

    def list_items(self) -> List[ItemDefinition]:
        """Items in catalog order."""
        return list(self._items.values())

    def get_item(self, item_id: str) -> ItemDefinition:
        try:
            return self._items[item_id]
        except KeyError as exc:
            raise UnknownItemError(f"Item not found: {item_id}") from exc

    def purchase(self, record: PlayerRecord, item_id: str) -> Tuple[PlayerRecord, PurchaseReceipt]:
        item = self.get_item(item_id)
        logger.debug(
            "Processing purchase: item=%s cost=%s credits=%s", item_id, item.cost, record.credits
        )
        updated = purchase(record, item)
        receipt = PurchaseReceipt(
            item_id=item.id,
            item_name=item.name,
            cost=item.cost,
            credits_remaining=updated.credits,
        )
        logger.info(
            "Purchase complete: %s for %d credits (remaining credits: %d)",
            item.name,
            item.cost,
            updated.credits,
        )
        return updated, receipt
