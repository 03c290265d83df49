from __future__ import annotations

import logging
import random
from typing import Any, Callable, List, Mapping, Optional, Protocol, Sequence, Tuple

from ..config import GameConfig
from ..models.content import FlavorEventDefinition, FlavorEventTrigger, MissionDefinition
from ..models.record import PlayerRecord, clamp_trace
from ..progression.leveling import level_for_experience

logger = logging.getLogger(__name__)

MIN_SPEED_FACTOR = 0.1
MAX_SPEED_FACTOR = 1.0

RecordGetter = Callable[[], Optional[PlayerRecord]]
RecordSetter = Callable[[PlayerRecord], None]
LogSink = Callable[[str], None]
RandomSource = Callable[[], float]


class TimerHandle(Protocol):
    def cancel(self) -> Any: ...


class Scheduler(Protocol):
    """Anything that can run a callback once after a delay in seconds.

    ``asyncio`` event loops satisfy this through ``loop.call_later``.
    """

    def call_later(self, delay: float, callback: Callable[[], Any]) -> TimerHandle: ...


class TickEngine:
    """Advances a player record on a recurring timer.

    Each tick reads one record through ``get_record``, folds the mission step,
    trace check, rewards, leveling and flavor events into a single new record
    and hands it to ``set_record`` exactly once. A tick that raises publishes
    nothing.

    Ticks never overlap: the next timer is armed only after the previous one
    has fired. Without a scheduler, :meth:`start` only flips the running flag
    and ticks are driven by calling :meth:`process_tick` directly.
    """

    def __init__(
        self,
        get_record: RecordGetter,
        set_record: RecordSetter,
        log: Optional[LogSink] = None,
        missions: Optional[Mapping[str, MissionDefinition]] = None,
        flavor_events: Optional[Mapping[FlavorEventTrigger, Sequence[FlavorEventDefinition]]] = None,
        *,
        scheduler: Optional[Scheduler] = None,
        random_source: Optional[RandomSource] = None,
        config: Optional[GameConfig] = None,
    ) -> None:
        if get_record is None or set_record is None:
            raise ValueError("get_record and set_record callbacks are required")
        self._get_record = get_record
        self._set_record = set_record
        self._log = log or logger.info
        self._missions: Mapping[str, MissionDefinition] = dict(missions or {})
        self._flavor_events: Mapping[FlavorEventTrigger, Tuple[FlavorEventDefinition, ...]] = {
            trigger: tuple(events) for trigger, events in (flavor_events or {}).items()
        }
        self._scheduler = scheduler
        self._random = random_source or random.random
        self.config = config or GameConfig()

        self._running: bool = False
        self._handle: Optional[TimerHandle] = None
        self._tick_count: int = 0

    @property
    def running(self) -> bool:
        return self._running

    @property
    def tick_count(self) -> int:
        return self._tick_count

    def start(self) -> None:
        """Start ticking. Safe to call multiple times; subsequent calls are no-ops."""
        if self._running:
            logger.debug("TickEngine.start() called while already running")
            return
        self._running = True
        if self._scheduler is None:
            self._log("Tick engine started without a scheduler; ticks must be driven manually.")
            return
        self._log("Tick engine started. Scheduling first tick...")
        self._schedule_next()

    def stop(self) -> None:
        """Stop ticking and cancel any pending timer. Safe to call when stopped."""
        if not self._running:
            return
        self._running = False
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
        self._log(f"Tick engine stopped after {self._tick_count} tick(s).")

    def tick_interval_ms(self, record: Optional[PlayerRecord]) -> float:
        base = self.config.base_tick_interval_ms
        if record is None:
            return base
        factor = 1.0 - record.stats.hack_speed / 100.0
        factor = max(MIN_SPEED_FACTOR, min(MAX_SPEED_FACTOR, factor))
        return base * factor

    def process_tick(self) -> Optional[PlayerRecord]:
        """Run one tick and return the published record (None if nothing was published)."""
        record = self._get_record()
        if record is None:
            self._log("No player record available; stopping tick engine.")
            self.stop()
            return None

        if not self._missions:
            self._log("WARNING: No active mission and no missions loaded. Cannot progress.")
            return None

        updated, leveled_up = self._advance_mission(record)

        self.evaluate_flavor_events(FlavorEventTrigger.ON_TICK)
        if leveled_up:
            self.evaluate_flavor_events(FlavorEventTrigger.ON_LEVEL_UP)

        self._set_record(updated)
        self._tick_count += 1
        logger.debug("Tick %d processed for %r", self._tick_count, updated.username)
        return updated

    def evaluate_flavor_events(self, trigger: FlavorEventTrigger) -> List[str]:
        """Roll every event registered for ``trigger`` independently, in catalog order.

        Fired texts go to the log sink and are returned. Effects are reported,
        not applied.
        """
        fired: List[str] = []
        for event in self._flavor_events.get(trigger, ()):
            if self._random() < event.chance:
                self._log(event.text)
                if event.effect is not None:
                    logger.info("Flavor event %s effect not applied: %s", event.id, event.effect.describe())
                fired.append(event.text)
        return fired

    # Mission logic

    def _advance_mission(self, record: PlayerRecord) -> Tuple[PlayerRecord, bool]:
        mission_id = record.active_mission_id
        mission = self._missions.get(mission_id) if mission_id else None
        if mission is None:
            default_id = next(iter(self._missions))
            if mission_id:
                self._log(f"Unknown mission '{mission_id}'. Assigning default: {default_id}")
            else:
                self._log(f"No active mission. Assigning default: {default_id}")
            # The assigning tick counts as the mission's first tick.
            self._log(f"Mission '{default_id}' started, progress: 1")
            return record.with_changes(active_mission_id=default_id, active_mission_progress=1), False

        progress = record.active_mission_progress + 1
        trace = record.trace_level
        if mission.trace_risk > 0 and self._random() < mission.trace_risk:
            trace = clamp_trace(trace + self.config.trace_increment)
            self._log(f"Trace increased to {trace:.1f}% on '{mission.id}'.")

        if progress < mission.duration_ticks:
            self._log(f"Mission '{mission.id}' progress: {progress}/{mission.duration_ticks}")
            return record.with_changes(active_mission_progress=progress, trace_level=trace), False

        credits = record.credits + mission.reward.credits
        experience = record.experience + mission.reward.xp
        level = level_for_experience(experience, self.config.base_xp)
        leveled_up = level > record.level
        next_id = self._pick_next_mission(mission.id)

        self._log(f"Mission '{mission.id}' completed!")
        if leveled_up:
            self._log(f"LEVEL UP! Reached Level {level}")
        self._log(
            f"Awarded {mission.reward.credits} Credits (Total: {credits}), "
            f"{mission.reward.xp:.1f} XP (Total: {experience:.1f}). Level: {level}. "
            f"Next mission: {next_id}"
        )
        updated = record.with_changes(
            credits=credits,
            experience=experience,
            level=level,
            trace_level=trace,
            active_mission_id=next_id,
            active_mission_progress=0,
        )
        return updated, leveled_up

    def _pick_next_mission(self, completed_id: str) -> str:
        candidates = [mid for mid in self._missions if mid != completed_id]
        if not candidates:
            candidates = list(self._missions)
        if len(candidates) == 1:
            return candidates[0]
        index = min(int(self._random() * len(candidates)), len(candidates) - 1)
        return candidates[index]

    # Scheduling

    def _schedule_next(self) -> None:
        if not self._running or self._scheduler is None:
            return
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
        try:
            interval_ms = self.tick_interval_ms(self._get_record())
        except Exception:
            logger.exception("Failed to read record for tick interval; using base interval")
            interval_ms = self.config.base_tick_interval_ms
        logger.debug("Scheduling next tick in %.0fms", interval_ms)
        self._handle = self._scheduler.call_later(interval_ms / 1000.0, self._on_timer)

    def _on_timer(self) -> None:
        self._handle = None
        if not self._running:
            return
        try:
            self.process_tick()
        except Exception as exc:
            logger.exception("Error during tick")
            self._log(f"!!! ERROR during tick: {exc}")
        self._schedule_next()
