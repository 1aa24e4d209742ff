"""
Modelos de datos del motor de matching.

Definidos solo en términos de lo que el algoritmo necesita; los
repositorios adaptan su esquema de storage a estas formas.
"""

from intercambio.models.language import (
    LanguageEntry,
    LanguageProfile,
    LanguageRole,
    ProficiencyLevel,
)
from intercambio.models.user import User
from intercambio.models.match import Match, MatchStatus, TERMINAL_STATUSES

__all__ = [
    # Idiomas
    "LanguageEntry",
    "LanguageProfile",
    "LanguageRole",
    "ProficiencyLevel",
    # Usuario
    "User",
    # Match
    "Match",
    "MatchStatus",
    "TERMINAL_STATUSES",
]
