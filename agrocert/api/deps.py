from typing import Annotated

from fastapi import Depends

from agrocert.database import async_session_factory
from agrocert.services.ficha_service import FichaService


def get_ficha_service() -> FichaService:
    """Dependency providing the aggregate service bound to the application's session factory."""
    return FichaService(session_factory=async_session_factory)


FichaServiceDep = Annotated[FichaService, Depends(get_ficha_service)]
