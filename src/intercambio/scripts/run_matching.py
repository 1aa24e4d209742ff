"""
Script para rankear compañeros de intercambio para un usuario.

Muestra los mejores candidatos y, opcionalmente, persiste los matches
propuestos (omitiendo pares que ya tienen un match).

Uso:
    python -m intercambio.scripts.run_matching --user-id <uuid>
    python -m intercambio.scripts.run_matching --user-id <uuid> --limit 5 --exclude-existing
    python -m intercambio.scripts.run_matching --user-id <uuid> --persist --timeout 10
"""

import argparse
import asyncio
import sys
from typing import Optional

import structlog

from intercambio.config import get_settings, get_language_name
from intercambio.database import SupabaseMatchRepository, SupabaseUserRepository
from intercambio.database.interfaces import MatchStore
from intercambio.errors import NotFoundError
from intercambio.logging_config import configure_logging
from intercambio.matching import MatchRanker, RankingResult

logger = structlog.get_logger()


async def persist_matches(match_store: MatchStore, result: RankingResult) -> dict:
    """Persiste los matches propuestos que todavía no existen."""
    stats = {"created": 0, "skipped": 0}

    for ranked in result.matches:
        match = ranked.match
        existing = await match_store.find_by_users(match.user1_id, match.user2_id)
        if existing is not None:
            stats["skipped"] += 1
            logger.debug(
                "Match ya existente",
                match_id=existing.id,
                status=existing.status.value if existing.status else None,
            )
            continue

        await match_store.create(match)
        stats["created"] += 1

    return stats


async def run_matching(
    user_id: str,
    limit: Optional[int] = None,
    exclude_existing: bool = False,
    persist: bool = False,
    timeout: Optional[float] = None,
) -> RankingResult:
    """
    Rankea candidatos para un usuario.

    Args:
        user_id: UUID del usuario
        limit: Máximo de resultados
        exclude_existing: Excluir usuarios ya matcheados
        persist: Guardar los matches propuestos
        timeout: Deadline en segundos
    """
    settings = get_settings()
    user_repo = SupabaseUserRepository()
    match_repo = SupabaseMatchRepository()
    ranker = MatchRanker(user_repo, match_repo)

    result = await ranker.rank(
        user_id,
        limit=limit,
        exclude_existing=exclude_existing,
        timeout=timeout or settings.rank_timeout_seconds,
    )

    for position, ranked in enumerate(result.matches, start=1):
        match = ranked.match
        print(
            f"{position:>2}. {ranked.user.display_name} ({ranked.user.id}) "
            f"score={ranked.score} "
            f"enseña={get_language_name(match.user2_teaches) if match.user2_teaches else '-'} "
            f"aprende={get_language_name(match.user1_teaches) if match.user1_teaches else '-'}"
        )

    if persist:
        stats = await persist_matches(match_repo, result)
        logger.info("Matches persistidos", user_id=user_id, **stats)

    return result


def main():
    """Entry point del script."""
    parser = argparse.ArgumentParser(
        description="Ranking de compañeros de intercambio de idiomas"
    )
    parser.add_argument("--user-id", required=True, help="UUID del usuario")
    parser.add_argument(
        "--limit",
        type=int,
        default=None,
        help="Máximo de resultados (default: DEFAULT_MATCH_LIMIT)",
    )
    parser.add_argument(
        "--exclude-existing",
        action="store_true",
        help="Excluir usuarios con los que ya hay un match",
    )
    parser.add_argument(
        "--persist",
        action="store_true",
        help="Guardar los matches propuestos",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Deadline en segundos para el ranking",
    )

    args = parser.parse_args()

    configure_logging(get_settings().log_level)
    logger.info("Iniciando ranking", user_id=args.user_id)

    try:
        result = asyncio.run(
            run_matching(
                user_id=args.user_id,
                limit=args.limit,
                exclude_existing=args.exclude_existing,
                persist=args.persist,
                timeout=args.timeout,
            )
        )
        logger.info(
            "Ranking completado",
            returned=len(result.matches),
            total=result.total_found,
        )
        sys.exit(0)

    except NotFoundError as e:
        logger.error("Usuario inexistente", error=str(e))
        sys.exit(2)
    except KeyboardInterrupt:
        logger.info("Ranking interrumpido por usuario")
        sys.exit(130)
    except Exception as e:
        logger.error("Error fatal en ranking", error=str(e))
        sys.exit(1)


if __name__ == "__main__":
    main()
