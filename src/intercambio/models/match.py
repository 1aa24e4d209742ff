"""
Modelo de Match

Un intercambio propuesto o confirmado entre dos usuarios. Representa
un par no ordenado pero se guarda con orden fijo (user1, user2): para
saber si existe un match entre A y B hay que revisar ambas direcciones.
"""

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def new_match_id() -> str:
    """ID opaco generado al crear el match."""
    return f"match-{uuid.uuid4().hex}"


class MatchStatus(str, Enum):
    """Estados de un match persistido."""

    PENDING = "pending"
    ACCEPTED = "accepted"
    DECLINED = "declined"
    ENDED = "ended"


TERMINAL_STATUSES = frozenset({MatchStatus.DECLINED, MatchStatus.ENDED})


class Match(BaseModel):
    """
    Match entre dos usuarios.

    El ranker deja `status` en None: el estado inicial (pending) lo asigna
    la persistencia.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=new_match_id, description="ID opaco del match")
    user1_id: str = Field(..., min_length=1, description="Usuario que pidió el ranking")
    user2_id: str = Field(..., min_length=1, description="Candidato")
    user1_teaches: str = Field("", description="Idioma que user1 enseña a user2")
    user2_teaches: str = Field("", description="Idioma que user2 enseña a user1")
    status: Optional[MatchStatus] = Field(None, description="None hasta persistir")
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    @model_validator(mode="after")
    def _check_users(self) -> "Match":
        if self.user1_id == self.user2_id:
            raise ValueError("No se puede matchear a un usuario consigo mismo")
        return self

    def involves(self, user_id: str) -> bool:
        return user_id in (self.user1_id, self.user2_id)

    def other_party(self, user_id: str) -> str:
        """ID del otro participante del match."""
        if user_id == self.user1_id:
            return self.user2_id
        if user_id == self.user2_id:
            return self.user1_id
        raise ValueError(f"El usuario {user_id} no participa del match {self.id}")

    def connects(self, user_a: str, user_b: str) -> bool:
        """True si el match une a ambos usuarios, en cualquier orden."""
        return {self.user1_id, self.user2_id} == {user_a, user_b}

    def is_active(self) -> bool:
        """Un match activo fue aceptado y permite intercambiar."""
        return self.status == MatchStatus.ACCEPTED

    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def to_db_dict(self) -> dict:
        """Convierte a diccionario para inserción en Supabase."""
        return self.model_dump(mode="json")
