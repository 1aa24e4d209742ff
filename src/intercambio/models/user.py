"""
Modelo de Usuario

Vista de solo lectura que el motor de matching necesita de un usuario.
El ciclo de vida del usuario pertenece a otro sistema; los repositorios
adaptan su representación de storage a este modelo.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from intercambio.models.language import LanguageProfile, LanguageRole, ProficiencyLevel


class User(BaseModel):
    """
    Participante de un intercambio de idiomas.
    """

    model_config = ConfigDict(from_attributes=True, frozen=True)

    # Identificadores
    id: str = Field(..., min_length=1, description="UUID del usuario")
    display_name: str = Field(..., min_length=1, description="Nombre para mostrar")
    email: Optional[str] = Field(None, description="Email de contacto")

    # Idiomas
    profile: LanguageProfile = Field(
        default_factory=LanguageProfile, description="Idiomas que enseña y aprende"
    )

    # Perfil público
    bio: Optional[str] = Field(None, description="Bio libre")
    avatar_url: Optional[str] = Field(None, description="URL del avatar")

    # Metadatos
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator("id", "display_name")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("No puede estar vacío")
        return value

    @property
    def native_languages(self) -> list[str]:
        """Idiomas que el usuario puede enseñar, en orden declarado."""
        return self.profile.teaching_codes

    @property
    def learning_languages(self) -> list[str]:
        """Idiomas que el usuario está aprendiendo, en orden declarado."""
        return self.profile.learning_codes

    def can_teach(self, language_code: str) -> bool:
        return self.profile.teaches(language_code)

    def is_learning(self, language_code: str) -> bool:
        return self.profile.learns(language_code)

    def get_proficiency(self, language_code: str) -> Optional[ProficiencyLevel]:
        """Nivel pedido para un idioma que aprende (None si no lo aprende)."""
        return self.profile.level_for(language_code, LanguageRole.LEARNING)
