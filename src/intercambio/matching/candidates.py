"""
Búsqueda de candidatos.

Filtro en dos pasos:
- En el store: usuarios que aprenden algún idioma que el solicitante enseña.
- En memoria: descarta al propio solicitante, los excluidos, y a quien no
  forma un intercambio mutuo con el solicitante.
"""

from typing import Iterable, Optional

import structlog

from intercambio.config import get_settings
from intercambio.database.interfaces import UserStore
from intercambio.matching.scoring import is_mutual_exchange
from intercambio.models import User

logger = structlog.get_logger()


class CandidateFinder:
    """Obtiene candidatos estructuralmente elegibles (sin score)."""

    def __init__(self, user_store: UserStore, fetch_limit: Optional[int] = None):
        self.user_store = user_store
        if fetch_limit is None:
            fetch_limit = get_settings().candidate_fetch_limit
        if fetch_limit < 1:
            raise ValueError(f"fetch_limit debe ser positivo: {fetch_limit}")
        self.fetch_limit = fetch_limit

    async def fetch_pool(self, requester: User) -> list[User]:
        """
        Consulta el store por usuarios que aprenden lo que el solicitante enseña.

        El tamaño del pool está acotado por `fetch_limit`.
        """
        if not requester.native_languages:
            logger.info("El usuario no enseña ningún idioma", user_id=requester.id)
            return []

        pool = await self.user_store.find_by_criteria(
            learning_languages=requester.native_languages,
            limit=self.fetch_limit,
        )

        if not pool:
            logger.info(
                "El store no devolvió candidatos",
                user_id=requester.id,
                languages=requester.native_languages,
            )
            return []

        return list(pool)

    def filter_pool(
        self,
        requester: User,
        pool: Iterable[User],
        exclude_ids: Iterable[str] = (),
    ) -> list[User]:
        """Aplica las reglas de exclusión y la segunda dirección. Preserva el orden."""
        pool = list(pool)
        excluded = set(exclude_ids)
        candidates = []

        for user in pool:
            if user.id == requester.id:
                continue
            if user.id in excluded:
                continue
            # La segunda dirección no se puede empujar al store; se chequean ambas
            if not is_mutual_exchange(requester, user):
                continue
            candidates.append(user)

        logger.debug(
            "Candidatos filtrados",
            user_id=requester.id,
            pool=len(pool),
            excluded=len(excluded),
            candidates=len(candidates),
        )
        return candidates

    async def find_candidates(
        self,
        requester: User,
        exclude_ids: Iterable[str] = frozenset(),
    ) -> list[User]:
        """Trae el pool del store y lo filtra."""
        pool = await self.fetch_pool(requester)
        return self.filter_pool(requester, pool, exclude_ids)
