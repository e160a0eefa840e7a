"""FastAPI dependencies shared by the API routes."""

from typing import Annotated

from fastapi import Depends, Request

from wine_value.config import AppConfig
from wine_value.services.session_service import SessionService


def get_service(request: Request) -> SessionService:
    """Dependency to get the application's session service."""
    return request.app.state.service


def get_config(request: Request) -> AppConfig:
    """Dependency to get the application configuration."""
    return request.app.state.config


# Type aliases for dependency injection
ServiceDep = Annotated[SessionService, Depends(get_service)]
ConfigDep = Annotated[AppConfig, Depends(get_config)]
