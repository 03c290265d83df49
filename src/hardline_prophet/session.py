from __future__ import annotations

import logging
from typing import Callable, Iterable, List, Optional

from .config import GameConfig
from .data.loader import ContentCatalog
from .economy.shop import PurchaseReceipt, Shop
from .engine.tick import Scheduler, TickEngine
from .models.content import FlavorEventTrigger
from .models.record import PlayerClass, PlayerRecord
from .profile import apply_starting_profile
from .save.store import StateStore

logger = logging.getLogger(__name__)


class GameSession:
    """Owns the current player record for one logged-on player.

    The session is the single writer of the record cell: the tick engine,
    profile selection and shop purchases all swap in a new record through it.
    Everything runs on one thread (or one event loop), so no locking is done.

    Usage:
        session = GameSession(store, catalog, scheduler=loop)
        session.logon("NewbieHacker")
        ...
        session.shutdown()  # stops ticking, then saves
    """

    def __init__(
        self,
        store: StateStore,
        content: ContentCatalog,
        *,
        config: Optional[GameConfig] = None,
        scheduler: Optional[Scheduler] = None,
        log: Optional[Callable[[str], None]] = None,
        random_source: Optional[Callable[[], float]] = None,
    ) -> None:
        self.store = store
        self.content = content
        self.config = config or GameConfig()
        self.shop = Shop(content.items)
        self._scheduler = scheduler
        self._log = log
        self._random = random_source
        self._current: Optional[PlayerRecord] = None
        self.engine: Optional[TickEngine] = None

    @property
    def current(self) -> Optional[PlayerRecord]:
        return self._current

    @property
    def logged_on(self) -> bool:
        return self._current is not None

    def _get_record(self) -> Optional[PlayerRecord]:
        return self._current

    def _set_record(self, record: PlayerRecord) -> None:
        self._current = record

    def _require_record(self) -> PlayerRecord:
        if self._current is None:
            raise RuntimeError("No player is logged on")
        return self._current

    # Logon / shutdown

    def logon(self, username: str) -> PlayerRecord:
        """Load the player's save, fire login events and start ticking."""
        if self.logged_on:
            raise RuntimeError(f"Player {self._current.username!r} is already logged on")
        return self._begin(self.store.load(username))

    async def logon_async(self, username: str) -> PlayerRecord:
        if self.logged_on:
            raise RuntimeError(f"Player {self._current.username!r} is already logged on")
        record = await self.store.load_async(username)
        return self._begin(record)

    def _begin(self, record: PlayerRecord) -> PlayerRecord:
        self._current = record
        self.engine = TickEngine(
            self._get_record,
            self._set_record,
            self._log,
            self.content.missions,
            self.content.flavor_events,
            scheduler=self._scheduler,
            random_source=self._random,
            config=self.config,
        )
        logger.info(
            "Logged on %s (level %d, %d credits)", record.username, record.level, record.credits
        )
        self.engine.evaluate_flavor_events(FlavorEventTrigger.ON_LOGIN)
        self.engine.start()
        return record

    def shutdown(self) -> Optional[PlayerRecord]:
        """Stop the engine, then save. Returns the saved record (None if nobody was logged on)."""
        record = self._end()
        if record is None:
            return None
        saved = self.store.save(record)
        self._current = None
        return saved

    async def shutdown_async(self) -> Optional[PlayerRecord]:
        record = self._end()
        if record is None:
            return None
        saved = await self.store.save_async(record)
        self._current = None
        return saved

    def _end(self) -> Optional[PlayerRecord]:
        if self.engine is not None:
            self.engine.stop()
            self.engine = None
        if self._current is None:
            logger.debug("shutdown() called with no player logged on")
        return self._current

    # Player actions

    def choose_profile(self, player_class: PlayerClass, perk_ids: Iterable[str] = ()) -> PlayerRecord:
        updated = apply_starting_profile(self._require_record(), player_class, perk_ids)
        self._set_record(updated)
        return updated

    def buy(self, item_id: str) -> PurchaseReceipt:
        updated, receipt = self.shop.purchase(self._require_record(), item_id)
        self._set_record(updated)
        return receipt

    def run_ticks(self, count: int) -> List[PlayerRecord]:
        """Drive ``count`` ticks synchronously, returning each published record."""
        if self.engine is None:
            raise RuntimeError("No player is logged on")
        published: List[PlayerRecord] = []
        for _ in range(count):
            record = self.engine.process_tick()
            if record is not None:
                published.append(record)
        return published
