"""
Errores del motor de matching.

- NotFoundError: la entidad pedida no existe (fatal para la llamada).
- UpstreamUnavailableError: falla de transporte/store de un colaborador.
- InvalidTransitionError: cambio de estado ilegal de un Match.
"""

from typing import Optional


class IntercambioError(Exception):
    """Clase base para errores del dominio."""


class NotFoundError(IntercambioError):
    """La entidad solicitada no existe en el store."""

    def __init__(self, entity: str, entity_id: str):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} no encontrado: {entity_id}")


class UpstreamUnavailableError(IntercambioError):
    """Un colaborador externo (búsqueda de usuarios o persistencia) falló."""

    def __init__(
        self,
        operation: str,
        table: Optional[str] = None,
        cause: Optional[BaseException] = None,
    ):
        self.operation = operation
        self.table = table
        self.cause = cause
        detail = f": {cause}" if cause is not None else ""
        where = f" en '{table}'" if table else ""
        super().__init__(f"Store no disponible durante {operation}{where}{detail}")


class InvalidTransitionError(IntercambioError):
    """Transición de estado no permitida para un Match."""

    def __init__(self, match_id: str, current, target):
        self.match_id = match_id
        self.current = current
        self.target = target
        current_value = getattr(current, "value", current)
        target_value = getattr(target, "value", target)
        super().__init__(
            f"Transición inválida para match {match_id}: "
            f"{current_value} -> {target_value}"
        )
