from __future__ import annotations

import logging
from collections import defaultdict
from typing import Callable, DefaultDict, Iterable, List, Type

from domain.events import DomainEvent, GameSessionEnded, PlayerScoreUpdated

logger = logging.getLogger(__name__)

EventHandler = Callable[[DomainEvent], None]


class EventDispatcher:
    """
    Delivers domain events to subscribed handlers.

    Services call `dispatch` only after the entities that raised the events
    have been persisted, so handlers always observe committed state. A
    failing handler is logged and does not stop delivery to the others.
    """

    def __init__(self) -> None:
        self._handlers: DefaultDict[Type, List[EventHandler]] = defaultdict(list)

    def subscribe(self, event_type: Type, handler: EventHandler) -> None:
        self._handlers[event_type].append(handler)

    def dispatch(self, events: Iterable[DomainEvent]) -> None:
        for event in events:
            logger.info("Domain event %s: %s", type(event).__name__, event)
            for handler in self._handlers.get(type(event), []):
                try:
                    handler(event)
                except Exception:
                    logger.exception(
                        "Handler %r failed for %s", handler, type(event).__name__
                    )


# Used when a caller does not wire its own dispatcher; only logs events.
default_dispatcher = EventDispatcher()


def _announce_milestone(event: PlayerScoreUpdated) -> None:
    if event.is_significant_milestone:
        logger.info(
            "Player %s passed a score milestone: %s -> %s",
            event.player_id,
            event.old_score,
            event.new_score,
        )


def _announce_high_performance(event: GameSessionEnded) -> None:
    if event.is_high_performance:
        logger.info(
            "High-performance session %s by player %s: %s points",
            event.session_id,
            event.player_id,
            event.final_score,
        )


def register_audit_handlers(dispatcher: EventDispatcher) -> None:
    """Subscribe the handlers that record notable achievements."""

    dispatcher.subscribe(PlayerScoreUpdated, _announce_milestone)
    dispatcher.subscribe(GameSessionEnded, _announce_high_performance)
