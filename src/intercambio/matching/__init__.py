"""
Motor de matching.

Busca candidatos por idiomas compatibles, los puntúa y los rankea.
"""

from intercambio.matching.candidates import CandidateFinder
from intercambio.matching.lifecycle import ALLOWED_TRANSITIONS, MatchLifecycleManager
from intercambio.matching.ranker import MatchRanker, RankedMatch, RankingResult
from intercambio.matching.scoring import (
    compatibility_score,
    first_teachable_language,
    is_mutual_exchange,
    teachable_languages,
)

__all__ = [
    "CandidateFinder",
    "MatchRanker",
    "RankedMatch",
    "RankingResult",
    "MatchLifecycleManager",
    "ALLOWED_TRANSITIONS",
    "compatibility_score",
    "first_teachable_language",
    "is_mutual_exchange",
    "teachable_languages",
]
