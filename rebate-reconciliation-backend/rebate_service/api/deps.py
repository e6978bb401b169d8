"""
Dependencies for database sessions and per-client rebate controllers.
"""
from typing import Generator, Optional
from fastapi import Depends, Header, HTTPException, Request, status
from sqlalchemy.orm import Session
from rebate_service.config import API_SETTINGS
from rebate_service.database import SessionLocal
from rebate_service.services.controller import ControllerRegistry, RebateController
from rebate_service.utils import get_logger

logger = get_logger(__name__)

def get_db() -> Generator[Session, None, None]:
    """
    Database session dependency.
    Ensures proper session lifecycle management with automatic cleanup.

    Yields:
        Session: SQLAlchemy database session
    """
    db = SessionLocal()
    try:
        yield db
    except Exception as e:
        logger.error("Database session error", error=str(e), exc_info=True)
        db.rollback()
        raise
    finally:
        db.close()

def get_registry(request: Request) -> ControllerRegistry:
    """Controller registry created in the application lifespan."""
    registry = getattr(request.app.state, "controllers", None)
    if registry is None:
        logger.error("Controller registry not initialised")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Rebate service not initialised",
        )
    return registry

def get_client_id(
    x_client_id: Optional[str] = Header(None, alias=API_SETTINGS["client_id_header"]),
) -> str:
    """Client id keying the dashboard session and stored preferences."""
    value = (x_client_id or "").strip()
    return value or str(API_SETTINGS["default_client_id"])

def get_controller(
    client_id: str = Depends(get_client_id),
    registry: ControllerRegistry = Depends(get_registry),
) -> RebateController:
    return registry.get(client_id)
