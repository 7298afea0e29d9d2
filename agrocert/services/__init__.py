# Services module
from agrocert.services.reference_lookup import ReferenceLookup
from agrocert.services.parcela_service import ParcelaService
from agrocert.services.ficha_reader import FichaReader
from agrocert.services.ficha_service import FichaService

__all__ = [
    "ReferenceLookup",
    "ParcelaService",
    "FichaReader",
    "FichaService",
]
