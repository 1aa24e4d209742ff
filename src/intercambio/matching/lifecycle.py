"""
Ciclo de vida de un Match persistido.

    pending  -> accepted | declined | ended
    accepted -> ended
    declined, ended: terminales

Lo usa la capa de persistencia, nunca el ranker.
"""

from datetime import datetime
from typing import Callable, Optional

import structlog

from intercambio.errors import InvalidTransitionError
from intercambio.models import Match, MatchStatus
from intercambio.models.match import utc_now

logger = structlog.get_logger()

ALLOWED_TRANSITIONS: dict[MatchStatus, frozenset[MatchStatus]] = {
    MatchStatus.PENDING: frozenset(
        {MatchStatus.ACCEPTED, MatchStatus.DECLINED, MatchStatus.ENDED}
    ),
    MatchStatus.ACCEPTED: frozenset({MatchStatus.ENDED}),
    MatchStatus.DECLINED: frozenset(),
    MatchStatus.ENDED: frozenset(),
}


class MatchLifecycleManager:
    """Valida y aplica transiciones de estado sobre matches."""

    def __init__(self, clock: Optional[Callable[[], datetime]] = None):
        self._clock = clock or utc_now

    @staticmethod
    def can_transition(
        current: Optional[MatchStatus], target: MatchStatus
    ) -> bool:
        if current is None:
            return False
        return target in ALLOWED_TRANSITIONS[current]

    def initialize(self, match: Match) -> Match:
        """
        Asigna el estado inicial a un match propuesto antes de persistirlo.

        Raises:
            InvalidTransitionError: si el match ya tiene estado
        """
        if match.status is not None:
            raise InvalidTransitionError(match.id, match.status, MatchStatus.PENDING)

        now = self._clock()
        return match.model_copy(
            update={"status": MatchStatus.PENDING, "created_at": now, "updated_at": now}
        )

    def transition(self, match: Match, target: MatchStatus) -> Match:
        """
        Aplica una transición y devuelve una copia con `updated_at` nuevo.

        Raises:
            InvalidTransitionError: si la transición no es legal
        """
        if target is not None:
            target = MatchStatus(target)
        if target is None or not self.can_transition(match.status, target):
            logger.warning(
                "Transición de match rechazada",
                match_id=match.id,
                current=getattr(match.status, "value", None),
                target=getattr(target, "value", None),
            )
            raise InvalidTransitionError(match.id, match.status, target)

        updated = match.model_copy(
            update={"status": target, "updated_at": self._clock()}
        )
        logger.info(
            "Match actualizado",
            match_id=match.id,
            current=match.status.value,
            target=target.value,
        )
        return updated

    def touch(self, match: Match) -> Match:
        """Actualiza `updated_at` sin cambiar el estado."""
        return match.model_copy(update={"updated_at": self._clock()})

    def accept(self, match: Match) -> Match:
        return self.transition(match, MatchStatus.ACCEPTED)

    def decline(self, match: Match) -> Match:
        return self.transition(match, MatchStatus.DECLINED)

    def end(self, match: Match) -> Match:
        return self.transition(match, MatchStatus.ENDED)
