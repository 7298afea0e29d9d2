"""
Domain errors raised by the inspection record engine.

Every error carries a human readable message plus a details dict that the
API layer returns unchanged.
"""
from typing import Dict, List, Optional
from uuid import UUID


class FichaError(Exception):
    """Base error for aggregate operations."""

    def __init__(self, message: str, details: Dict = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class ValidationFailed(FichaError):
    """One or more business rules were violated. Nothing was written."""

    def __init__(self, errors: List[str], section: Optional[str] = None):
        self.errors = list(errors)
        self.section = section
        label = f"Validation failed for {section}" if section else "Validation failed"
        super().__init__(
            f"{label}: {'; '.join(self.errors)}",
            {"errors": self.errors, "section": section},
        )


class CardinalityViolation(ValidationFailed):
    """A section has the wrong number of entries."""

    def __init__(self, message: str, section: str):
        super().__init__([message], section=section)


class DuplicateAggregate(FichaError):
    """An inspection record already exists for the producer and cycle."""

    def __init__(self, codigo_productor: str, gestion: int):
        self.codigo_productor = codigo_productor
        self.gestion = gestion
        super().__init__(
            f"Ya existe una ficha para el productor {codigo_productor} en la gestion {gestion}",
            {"codigo_productor": codigo_productor, "gestion": gestion},
        )


class NotFound(FichaError):
    """The inspection record does not exist."""

    def __init__(self, id_ficha: UUID):
        self.id_ficha = id_ficha
        super().__init__(
            f"Ficha {id_ficha} not found",
            {"id_ficha": str(id_ficha)},
        )


class StoreError(FichaError):
    """The persistent store failed. The transaction was rolled back."""
    pass
