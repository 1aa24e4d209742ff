"""
Contratos de los colaboradores externos del motor.

El motor solo depende de estas interfaces; las implementaciones
(Supabase u otras) adaptan su esquema a los modelos del dominio.
"""

from abc import ABC, abstractmethod
from typing import Optional

from intercambio.models import Match, MatchStatus, User


class UserStore(ABC):
    """Búsqueda de usuarios (solo lectura para el motor)."""

    @abstractmethod
    async def find_by_id(self, user_id: str) -> Optional[User]:
        """Usuario por ID, o None si no existe."""
        pass

    @abstractmethod
    async def find_by_criteria(
        self,
        native_languages: Optional[list[str]] = None,
        learning_languages: Optional[list[str]] = None,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
    ) -> list[User]:
        """
        Usuarios que enseñan alguno de `native_languages` y aprenden
        alguno de `learning_languages` (cada criterio solo si se pasa).
        """
        pass


class MatchStore(ABC):
    """Persistencia de matches."""

    @abstractmethod
    async def create(self, match: Match) -> Match:
        """Persiste un match propuesto y lo devuelve en estado pending."""
        pass

    @abstractmethod
    async def find_by_id(self, match_id: str) -> Optional[Match]:
        pass

    @abstractmethod
    async def find_by_user_id(
        self, user_id: str, status: Optional[MatchStatus] = None
    ) -> list[Match]:
        """Matches donde el usuario aparece en cualquiera de las dos posiciones."""
        pass

    @abstractmethod
    async def find_by_users(self, user1_id: str, user2_id: str) -> Optional[Match]:
        """Match entre dos usuarios, revisando ambos órdenes."""
        pass

    @abstractmethod
    async def update(self, match: Match) -> Match:
        pass

    @abstractmethod
    async def delete(self, match_id: str) -> bool:
        pass
