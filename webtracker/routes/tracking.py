"""
Public shipment tracking.
"""

from fastapi import APIRouter, Depends, HTTPException, status

from webtracker.db.helpers import DatabaseError
from webtracker.infrastructure.observability.logging import get_logger
from webtracker.models.api.shipment_response import TrackResponse
from webtracker.repositories import Store
from webtracker.routes.dependencies import get_store
from webtracker.services.tracking_service import public_view

router = APIRouter(prefix="/api/track", tags=["tracking"])
logger = get_logger(__name__)


@router.get("/{tracking_id}", response_model=TrackResponse)
async def track(tracking_id: str, store: Store = Depends(get_store)):
    try:
        shipment = await store.shipments.get(tracking_id.strip())
    except DatabaseError as e:
        logger.error("Tracking lookup failed", tracking_id=tracking_id, error=str(e))
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e)
        ) from e
    if shipment is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="shipment not found")
    return public_view(shipment)
