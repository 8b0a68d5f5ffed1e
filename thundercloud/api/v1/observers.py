"""
API endpoints for the observer registry
"""

from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException, Request

from thundercloud.core.logging import format_token, get_logger
from thundercloud.models import ObserverActiveUpdate, ObserverLocationUpdate, ObserverResponse
from thundercloud.services.observer_store import ObserverNotFoundError, ObserverStore

logger = get_logger(__name__)

router = APIRouter()


def get_observer_store(request: Request) -> ObserverStore:
    return request.app.state.container.observer_store


@router.post("/location", response_model=ObserverResponse)
async def update_location(
    update: ObserverLocationUpdate,
    store: ObserverStore = Depends(get_observer_store)
) -> ObserverResponse:
    """Register or move an observer; the observer becomes active."""
    observer = await store.save_location(update.token, update.latitude, update.longitude)
    return ObserverResponse(
        observer=observer.model_dump(mode="json"),
        timestamp=datetime.now(timezone.utc).isoformat()
    )


@router.post("/active", response_model=ObserverResponse)
async def update_active(
    update: ObserverActiveUpdate,
    store: ObserverStore = Depends(get_observer_store)
) -> ObserverResponse:
    """Enable or disable alerts for a registered observer."""
    try:
        observer = await store.set_active(update.token, update.is_active)
    except ObserverNotFoundError:
        logger.warning(f"Active toggle for unknown observer {format_token(update.token)}")
        raise HTTPException(
            status_code=404,
            detail={"error": "Observer not found", "message": "Report a location before toggling alerts"}
        )

    return ObserverResponse(
        observer=observer.model_dump(mode="json"),
        timestamp=datetime.now(timezone.utc).isoformat()
    )
