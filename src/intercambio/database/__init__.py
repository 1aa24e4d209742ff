"""
Módulo de base de datos.

Contratos de los colaboradores externos y su implementación sobre Supabase.
"""

from intercambio.database.interfaces import MatchStore, UserStore
from intercambio.database.supabase_client import get_supabase_client, SupabaseClient
from intercambio.database.repositories import (
    SupabaseMatchRepository,
    SupabaseUserRepository,
)

__all__ = [
    "UserStore",
    "MatchStore",
    "get_supabase_client",
    "SupabaseClient",
    "SupabaseUserRepository",
    "SupabaseMatchRepository",
]
