"""
Repositorios de Supabase.

Implementan los contratos UserStore y MatchStore. Cada uno traduce las
filas de su tabla a los modelos del dominio y las fallas del store a
UpstreamUnavailableError. Las llamadas al cliente (sync) corren en un
thread para no bloquear el event loop.
"""

import asyncio
from typing import Any, Callable, Optional

import httpx
import structlog
from postgrest.exceptions import APIError
from pydantic import ValidationError
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from intercambio.config import get_settings
from intercambio.database.interfaces import MatchStore, UserStore
from intercambio.database.supabase_client import get_supabase_client, SupabaseClient
from intercambio.errors import InvalidTransitionError, NotFoundError, UpstreamUnavailableError
from intercambio.matching.lifecycle import MatchLifecycleManager
from intercambio.models import LanguageEntry, LanguageProfile, Match, MatchStatus, User

logger = structlog.get_logger()

USER_COLUMNS = "*, user_languages(language_code, type, level, created_at)"


class BaseRepository:
    """Clase base para repositorios."""

    TABLE = ""

    def __init__(self, client: Optional[SupabaseClient] = None):
        self._client = client or get_supabase_client()

    @property
    def client(self) -> SupabaseClient:
        return self._client

    async def _execute(self, operation: str, build_query: Callable[[], Any]):
        """
        Ejecuta una consulta en un thread.

        Args:
            operation: Nombre de la operación (para logs y errores)
            build_query: Función que arma la consulta sin ejecutarla

        Raises:
            UpstreamUnavailableError: si Supabase falla o no responde
        """
        try:
            return await asyncio.to_thread(self._run, build_query)
        except (APIError, httpx.HTTPError) as e:
            logger.error(
                "Error en el store",
                table=self.TABLE,
                operation=operation,
                error=str(e),
            )
            raise UpstreamUnavailableError(operation, self.TABLE, e) from e

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        retry=retry_if_exception_type(httpx.TransportError),
        reraise=True,
    )
    def _run(self, build_query: Callable[[], Any]):
        # Solo se reintentan fallas de transporte; los errores de PostgREST no
        return build_query().execute()


class SupabaseUserRepository(BaseRepository, UserStore):
    """Repositorio de usuarios con sus idiomas (users + user_languages)."""

    TABLE = "users"

    async def find_by_id(self, user_id: str) -> Optional[User]:
        """Obtiene un usuario por su UUID."""
        response = await self._execute(
            "find_by_id",
            lambda: (
                self.client.table(self.TABLE)
                .select(USER_COLUMNS)
                .eq("id", user_id)
                .limit(1)
            ),
        )
        if not response.data:
            return None
        return self._to_user(response.data[0])

    async def find_by_criteria(
        self,
        native_languages: Optional[list[str]] = None,
        learning_languages: Optional[list[str]] = None,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
    ) -> list[User]:
        """
        Búsqueda por idiomas, en una sola consulta.

        Cada criterio es un embed !inner de user_languages con alias propio,
        así el filtro no recorta el perfil completo que trae USER_COLUMNS.
        El tamaño de página siempre está acotado (candidate_fetch_limit
        si no se pasa limit).

        Args:
            native_languages: El usuario enseña alguno de estos idiomas
            learning_languages: El usuario aprende alguno de estos idiomas
            limit: Máximo de usuarios
            offset: Desplazamiento para paginar
        """
        page_size = limit if limit is not None else get_settings().candidate_fetch_limit
        filters = [
            (alias, role, [code.strip().lower() for code in codes])
            for alias, role, codes in (
                ("teaches", "teaching", native_languages),
                ("learns", "learning", learning_languages),
            )
            if codes
        ]

        def build_query():
            columns = [USER_COLUMNS]
            columns += [f"{alias}:user_languages!inner(language_code)" for alias, _, _ in filters]
            query = self.client.table(self.TABLE).select(", ".join(columns))
            for alias, role, codes in filters:
                query = query.eq(f"{alias}.type", role).in_(f"{alias}.language_code", codes)
            query = query.order("created_at")
            if offset:
                return query.range(offset, offset + page_size - 1)
            return query.limit(page_size)

        response = await self._execute("find_by_criteria", build_query)
        return self._to_users(response.data or [])

    def _to_users(self, rows: list[dict]) -> list[User]:
        users = []
        for row in rows:
            try:
                users.append(self._to_user(row))
            except (ValidationError, KeyError) as e:
                logger.warning(
                    "Usuario con datos inválidos, se omite",
                    user_id=row.get("id"),
                    error=str(e),
                )
        return users

    @staticmethod
    def _to_user(row: dict) -> User:
        """Convierte una fila de users (con user_languages embebido) al modelo."""
        languages = sorted(
            row.get("user_languages") or [],
            key=lambda lang: lang.get("created_at") or "",
        )
        profile = LanguageProfile(
            entries=tuple(
                LanguageEntry(
                    code=lang["language_code"],
                    role=lang["type"],
                    level=lang.get("level"),
                )
                for lang in languages
            )
        )
        return User(
            id=row["id"],
            display_name=row["display_name"],
            email=row.get("email"),
            profile=profile,
            bio=row.get("bio"),
            avatar_url=row.get("avatar_url"),
            created_at=row.get("created_at"),
            updated_at=row.get("updated_at"),
        )


class SupabaseMatchRepository(BaseRepository, MatchStore):
    """Repositorio de matches. Aplica el ciclo de vida en cada escritura."""

    TABLE = "matches"

    def __init__(
        self,
        client: Optional[SupabaseClient] = None,
        lifecycle: Optional[MatchLifecycleManager] = None,
    ):
        super().__init__(client)
        self.lifecycle = lifecycle or MatchLifecycleManager()

    async def create(self, match: Match) -> Match:
        """
        Persiste un match propuesto.

        Returns:
            El match guardado, en estado pending
        """
        match = self.lifecycle.initialize(match)
        response = await self._execute(
            "create",
            lambda: self.client.table(self.TABLE).insert(match.to_db_dict()),
        )
        logger.info(
            "Match creado",
            match_id=match.id,
            user1_id=match.user1_id,
            user2_id=match.user2_id,
        )
        return self._to_match(response.data[0]) if response.data else match

    async def find_by_id(self, match_id: str) -> Optional[Match]:
        response = await self._execute(
            "find_by_id",
            lambda: (
                self.client.table(self.TABLE)
                .select("*")
                .eq("id", match_id)
                .limit(1)
            ),
        )
        return self._to_match(response.data[0]) if response.data else None

    async def find_by_user_id(
        self, user_id: str, status: Optional[MatchStatus] = None
    ) -> list[Match]:
        """Obtiene los matches de un usuario (en cualquier posición)."""

        def build_query():
            query = (
                self.client.table(self.TABLE)
                .select("*")
                .or_(f"user1_id.eq.{user_id},user2_id.eq.{user_id}")
            )
            if status is not None:
                query = query.eq("status", MatchStatus(status).value)
            return query.order("created_at", desc=True)

        response = await self._execute("find_by_user_id", build_query)
        return [self._to_match(row) for row in response.data or []]

    async def find_by_users(self, user1_id: str, user2_id: str) -> Optional[Match]:
        response = await self._execute(
            "find_by_users",
            lambda: (
                self.client.table(self.TABLE)
                .select("*")
                .or_(
                    f"and(user1_id.eq.{user1_id},user2_id.eq.{user2_id}),"
                    f"and(user1_id.eq.{user2_id},user2_id.eq.{user1_id})"
                )
                .limit(1)
            ),
        )
        return self._to_match(response.data[0]) if response.data else None

    async def update(self, match: Match) -> Match:
        """
        Actualiza un match existente.

        Si cambia el estado, la transición se valida contra el estado guardado.
        La escritura solo se aplica si ese estado sigue igual en la tabla.

        Raises:
            NotFoundError: si el match no existe
            InvalidTransitionError: si el cambio de estado no es legal
        """
        current = await self.find_by_id(match.id)
        if current is None:
            raise NotFoundError("Match", match.id)

        if match.status != current.status:
            stamped = self.lifecycle.transition(current, match.status)
            match = match.model_copy(update={"updated_at": stamped.updated_at})
        else:
            match = self.lifecycle.touch(match)

        return await self._write(match, current.status)

    async def change_status(self, match_id: str, status: MatchStatus) -> Match:
        """Aplica una transición de estado sobre un match guardado."""
        current = await self.find_by_id(match_id)
        if current is None:
            raise NotFoundError("Match", match_id)
        return await self._write(self.lifecycle.transition(current, status), current.status)

    async def delete(self, match_id: str) -> bool:
        response = await self._execute(
            "delete",
            lambda: self.client.table(self.TABLE).delete().eq("id", match_id),
        )
        deleted = len(response.data or []) > 0
        logger.info("Match eliminado", match_id=match_id, deleted=deleted)
        return deleted

    async def _write(self, match: Match, expected_status: MatchStatus) -> Match:
        """
        Escribe el match si el estado guardado sigue siendo expected_status.

        Si otra escritura cambió el estado entre la lectura y este update,
        PostgREST no devuelve filas y no se pisa nada.

        Raises:
            NotFoundError: si el match ya no existe
            InvalidTransitionError: si el estado guardado cambió
        """
        data = match.to_db_dict()
        data.pop("id")
        data.pop("created_at")
        response = await self._execute(
            "update",
            lambda: (
                self.client.table(self.TABLE)
                .update(data)
                .eq("id", match.id)
                .eq("status", MatchStatus(expected_status).value)
            ),
        )
        if response.data:
            return self._to_match(response.data[0])

        stored = await self.find_by_id(match.id)
        if stored is None:
            raise NotFoundError("Match", match.id)
        logger.warning(
            "Estado del match cambiado por otra escritura",
            match_id=match.id,
            expected=MatchStatus(expected_status).value,
            stored=stored.status.value if stored.status else None,
            target=match.status.value if match.status else None,
        )
        raise InvalidTransitionError(match.id, stored.status, match.status)

    @staticmethod
    def _to_match(row: dict) -> Match:
        return Match.model_validate(row)
