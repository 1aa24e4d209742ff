"""
Perfil de idiomas de un usuario.

Secuencia ordenada de idiomas que el usuario enseña o aprende. El orden
declarado importa: el ranker usa el primer idioma compatible para
armar el Match.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class LanguageRole(str, Enum):
    """Rol del usuario respecto a un idioma."""

    TEACHING = "teaching"
    LEARNING = "learning"


class ProficiencyLevel(str, Enum):
    """Nivel de dominio de un idioma."""

    NATIVE = "native"
    ADVANCED = "advanced"
    INTERMEDIATE = "intermediate"
    BEGINNER = "beginner"


class LanguageEntry(BaseModel):
    """Un idioma declarado por el usuario (fila de user_languages)."""

    model_config = ConfigDict(frozen=True)

    code: str = Field(..., min_length=1, description="Código ISO 639-1: en, es, fr")
    role: LanguageRole = Field(..., description="teaching o learning")
    level: Optional[ProficiencyLevel] = Field(
        None, description="Nivel (de quien enseña, o el pedido por quien aprende)"
    )

    @field_validator("code")
    @classmethod
    def _normalize_code(cls, value: str) -> str:
        code = value.strip().lower()
        if not code:
            raise ValueError("El código de idioma no puede estar vacío")
        return code


class LanguageProfile(BaseModel):
    """Idiomas que un usuario enseña y aprende, en orden declarado."""

    model_config = ConfigDict(frozen=True)

    entries: tuple[LanguageEntry, ...] = Field(default_factory=tuple)

    @model_validator(mode="after")
    def _check_duplicates(self) -> "LanguageProfile":
        seen = set()
        for entry in self.entries:
            key = (entry.code, entry.role)
            if key in seen:
                raise ValueError(
                    f"Idioma duplicado en el perfil: {entry.code} ({entry.role.value})"
                )
            seen.add(key)
        return self

    @classmethod
    def build(
        cls,
        teaching: Optional[list] = None,
        learning: Optional[list] = None,
    ) -> "LanguageProfile":
        """
        Arma un perfil a partir de listas simples.

        Cada elemento puede ser un código ("en") o un par (código, nivel).
        Los idiomas que se enseñan sin nivel se asumen nativos.
        """
        entries = []
        for item in teaching or []:
            code, level = item if isinstance(item, tuple) else (item, ProficiencyLevel.NATIVE)
            entries.append(LanguageEntry(code=code, role=LanguageRole.TEACHING, level=level))
        for item in learning or []:
            code, level = item if isinstance(item, tuple) else (item, None)
            entries.append(LanguageEntry(code=code, role=LanguageRole.LEARNING, level=level))
        return cls(entries=tuple(entries))

    @property
    def teaching_codes(self) -> list[str]:
        return [e.code for e in self.entries if e.role == LanguageRole.TEACHING]

    @property
    def learning_codes(self) -> list[str]:
        return [e.code for e in self.entries if e.role == LanguageRole.LEARNING]

    def teaches(self, code: str) -> bool:
        return code.strip().lower() in self.teaching_codes

    def learns(self, code: str) -> bool:
        return code.strip().lower() in self.learning_codes

    def level_for(self, code: str, role: LanguageRole) -> Optional[ProficiencyLevel]:
        """Nivel declarado para un idioma y rol, o None si no está en el perfil."""
        code = code.strip().lower()
        for entry in self.entries:
            if entry.code == code and entry.role == role:
                return entry.level
        return None
