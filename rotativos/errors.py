# rotativos/errors.py


class RotativosError(Exception):
    """Error base del dominio de rotativos."""


class NotFoundError(RotativosError, LookupError):
    """Evento, bloque, balance o rotativo inexistente."""

    def __init__(self, entity: str, entity_id):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} no encontrado: {entity_id}")


class InvalidRequestError(RotativosError, ValueError):
    """La operación no es válida para el estado actual."""


class BlockNotCancellableError(InvalidRequestError):
    """El bloque ya inició y no puede cancelarse."""
