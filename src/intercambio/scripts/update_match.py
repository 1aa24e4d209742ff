"""
Script para cambiar el estado de un match.

Uso:
    python -m intercambio.scripts.update_match --match-id <id> --status accepted
    python -m intercambio.scripts.update_match --match-id <id> --status ended
"""

import argparse
import asyncio
import sys

import structlog

from intercambio.config import get_settings
from intercambio.database import SupabaseMatchRepository
from intercambio.errors import InvalidTransitionError, NotFoundError
from intercambio.logging_config import configure_logging
from intercambio.models import Match, MatchStatus

logger = structlog.get_logger()


async def update_match(match_id: str, status: MatchStatus) -> Match:
    """Aplica la transición y devuelve el match actualizado."""
    repo = SupabaseMatchRepository()
    return await repo.change_status(match_id, status)


def main():
    """Entry point del script."""
    parser = argparse.ArgumentParser(description="Cambia el estado de un match")
    parser.add_argument("--match-id", required=True, help="ID del match")
    parser.add_argument(
        "--status",
        required=True,
        choices=[s.value for s in MatchStatus if s != MatchStatus.PENDING],
        help="Nuevo estado",
    )

    args = parser.parse_args()

    configure_logging(get_settings().log_level)

    try:
        match = asyncio.run(update_match(args.match_id, MatchStatus(args.status)))
        logger.info(
            "Estado actualizado",
            match_id=match.id,
            status=match.status.value,
            updated_at=match.updated_at.isoformat(),
        )
        sys.exit(0)

    except (NotFoundError, InvalidTransitionError) as e:
        logger.error("No se pudo actualizar el match", error=str(e))
        sys.exit(2)
    except KeyboardInterrupt:
        logger.info("Actualización interrumpida por usuario")
        sys.exit(130)
    except Exception as e:
        logger.error("Error fatal actualizando match", error=str(e))
        sys.exit(1)


if __name__ == "__main__":
    main()
