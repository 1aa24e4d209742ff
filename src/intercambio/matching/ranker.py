"""
Ranker de matches.

Orquesta la búsqueda de candidatos y el score de compatibilidad:
1. Resolver al solicitante (NotFoundError si no existe)
2. En paralelo: matches existentes (exclusión) y pool de candidatos del store
3. Filtrar el pool en memoria
4. Puntuar cada candidato y armar un Match propuesto
5. Ordenar por score descendente (estable) y truncar

No persiste nada: los Match devueltos son propuestas.
"""

import asyncio
from dataclasses import dataclass, field
from typing import Optional

import structlog

from intercambio.config import get_settings
from intercambio.database.interfaces import MatchStore, UserStore
from intercambio.errors import NotFoundError
from intercambio.matching.candidates import CandidateFinder
from intercambio.matching.scoring import compatibility_score, first_teachable_language
from intercambio.models import Match, User

logger = structlog.get_logger()


@dataclass
class RankedMatch:
    """Candidato puntuado con su Match propuesto."""

    user: User
    match: Match
    score: int  # 0 a 100


@dataclass
class RankingResult:
    """Resultado de un ranking."""

    matches: list[RankedMatch] = field(default_factory=list)
    total_found: int = 0  # Candidatos puntuados antes de truncar


class MatchRanker:
    """
    Ranker de compañeros de intercambio para un usuario.

    Recibe sus colaboradores ya construidos; no mantiene estado entre llamadas.
    """

    def __init__(
        self,
        user_store: UserStore,
        match_store: MatchStore,
        candidate_finder: Optional[CandidateFinder] = None,
        default_limit: Optional[int] = None,
    ):
        self.user_store = user_store
        self.match_store = match_store
        self.candidate_finder = candidate_finder or CandidateFinder(user_store)
        if default_limit is None:
            default_limit = get_settings().default_match_limit
        if default_limit < 1:
            raise ValueError(f"default_limit debe ser positivo: {default_limit}")
        self.default_limit = default_limit

    async def rank(
        self,
        requester_id: str,
        limit: Optional[int] = None,
        exclude_existing: bool = False,
        timeout: Optional[float] = None,
    ) -> RankingResult:
        """
        Rankea candidatos para un usuario.

        Args:
            requester_id: ID del usuario que busca compañeros
            limit: Máximo de resultados (default_limit si es None)
            exclude_existing: Excluir usuarios con los que ya tiene un match
            timeout: Deadline en segundos; al vencer se cancelan las llamadas al store

        Returns:
            RankingResult con los matches ordenados y el total encontrado

        Raises:
            NotFoundError: si el solicitante no existe
            UpstreamUnavailableError: si falla algún colaborador (sin reintentos acá)
            asyncio.TimeoutError: si se vence el deadline
        """
        limit = self.default_limit if limit is None else limit
        if limit < 1:
            raise ValueError(f"limit debe ser positivo: {limit}")

        if timeout is None:
            return await self._rank(requester_id, limit, exclude_existing)
        return await asyncio.wait_for(
            self._rank(requester_id, limit, exclude_existing), timeout=timeout
        )

    async def _rank(
        self, requester_id: str, limit: int, exclude_existing: bool
    ) -> RankingResult:
        requester = await self.user_store.find_by_id(requester_id)
        if requester is None:
            raise NotFoundError("Usuario", requester_id)

        # Ninguna de las dos consultas depende de la otra
        if exclude_existing:
            exclude_ids, pool = await self._gather_or_cancel(
                self._existing_partner_ids(requester_id),
                self.candidate_finder.fetch_pool(requester),
            )
        else:
            exclude_ids = set()
            pool = await self.candidate_finder.fetch_pool(requester)

        candidates = self.candidate_finder.filter_pool(requester, pool, exclude_ids)

        ranked = []
        for candidate in candidates:
            try:
                ranked.append(self._score_candidate(requester, candidate))
            except ValueError as e:
                logger.warning(
                    "Candidato inválido, se omite",
                    user_id=requester_id,
                    candidate_id=getattr(candidate, "id", None),
                    error=str(e),
                )

        # sort es estable: los empates conservan el orden del finder
        ranked.sort(key=lambda r: r.score, reverse=True)

        logger.info(
            "Ranking calculado",
            user_id=requester_id,
            total=len(ranked),
            returned=min(limit, len(ranked)),
            excluded=len(exclude_ids),
        )

        return RankingResult(matches=ranked[:limit], total_found=len(ranked))

    @staticmethod
    async def _gather_or_cancel(*coros):
        """
        Como asyncio.gather, pero si una tarea falla cancela las demás
        y espera a que terminen antes de propagar el error.
        """
        tasks = [asyncio.ensure_future(coro) for coro in coros]
        try:
            return await asyncio.gather(*tasks)
        except BaseException:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

    async def _existing_partner_ids(self, user_id: str) -> set[str]:
        """IDs de la otra parte en cada match existente del usuario."""
        existing = await self.match_store.find_by_user_id(user_id)
        return {match.other_party(user_id) for match in existing}

    def _score_candidate(self, requester: User, candidate: User) -> RankedMatch:
        match = Match(
            user1_id=requester.id,
            user2_id=candidate.id,
            user1_teaches=first_teachable_language(requester, candidate),
            user2_teaches=first_teachable_language(candidate, requester),
        )
        return RankedMatch(
            user=candidate,
            match=match,
            score=compatibility_score(requester, candidate),
        )
