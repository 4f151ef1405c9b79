"""
shipments.py
------------
Purpose:
    Bearer-guarded admin endpoints used by the dashboard: shipment CRUD,
    status counts, and free-text manifest extraction.

Notes:
    - Shipments created here belong to the pseudo user "admin-ui".
    - Weight is fixed on every write regardless of the request body.
    - DELETE /api/shipments/cleanup runs the retention prune.
"""

from fastapi import APIRouter, Depends, HTTPException, status

from webtracker.auth.verify import auth_dependency
from webtracker.db.helpers import DatabaseError
from webtracker.infrastructure.observability.logging import get_logger
from webtracker.models.api.shipment_request import (
    ParseRequest,
    ShipmentCreateRequest,
    ShipmentUpdateRequest,
)
from webtracker.models.api.shipment_response import StatsResponse, TrackingIdResponse
from webtracker.models.domain.manifest_domain import Manifest
from webtracker.models.domain.shipment_domain import Shipment
from webtracker.repositories import Store
from webtracker.routes.dependencies import get_runtime, get_shipment_service, get_store
from webtracker.runtime import Application
from webtracker.services.gemini_service import GeminiServiceError
from webtracker.services.shipment_service import ShipmentService

router = APIRouter(prefix="/api", tags=["shipments"], dependencies=[Depends(auth_dependency)])
logger = get_logger(__name__)

CLEANUP_ID = "cleanup"


def _store_failure(e: DatabaseError) -> HTTPException:
    logger.error("Store operation failed", operation=e.operation, error=str(e))
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))


@router.get("/shipments", response_model=list[Shipment])
async def list_shipments(store: Store = Depends(get_store)):
    try:
        return await store.shipments.list_all()
    except DatabaseError as e:
        raise _store_failure(e) from e


@router.post("/shipments", response_model=TrackingIdResponse)
async def create_shipment(
    body: ShipmentCreateRequest,
    shipments: ShipmentService = Depends(get_shipment_service),
):
    manifest = Manifest(
        sender_name=body.sender_name,
        sender_country=body.sender_country,
        receiver_name=body.receiver_name,
        receiver_country=body.receiver_country,
        receiver_phone=body.receiver_phone,
        receiver_email=body.receiver_email,
        receiver_address=body.receiver_address,
        cargo_type=body.cargo_type,
    )
    try:
        tracking_id = await shipments.create_from_dashboard(manifest)
    except DatabaseError as e:
        raise _store_failure(e) from e
    return {"tracking_id": tracking_id}


@router.patch("/shipments/{tracking_id}")
async def update_shipment(
    tracking_id: str,
    body: ShipmentUpdateRequest,
    shipments: ShipmentService = Depends(get_shipment_service),
):
    try:
        updated = await shipments.apply_update(tracking_id, body.model_dump(exclude_none=True))
    except DatabaseError as e:
        raise _store_failure(e) from e
    if updated is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="shipment not found")
    return {"tracking_id": tracking_id}


@router.delete("/shipments/{tracking_id}")
async def delete_shipment(
    tracking_id: str,
    runtime: Application = Depends(get_runtime),
):
    store = runtime.store
    try:
        if tracking_id == CLEANUP_ID:
            removed = await store.shipments.prune_aged(**runtime.settings.get_retention_config())
            return {"removed": removed["total"]}
        await store.shipments.delete(tracking_id)
    except DatabaseError as e:
        raise _store_failure(e) from e
    return {"tracking_id": tracking_id}


@router.get("/stats", response_model=StatsResponse)
async def stats(store: Store = Depends(get_store)):
    try:
        counts = await store.shipments.count_by_status()
    except DatabaseError as e:
        raise _store_failure(e) from e
    return counts


@router.post("/parse")
async def parse_manifest(body: ParseRequest, runtime: Application = Depends(get_runtime)):
    text = body.text.strip()
    if not text:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="text is required")
    if runtime.gemini is None:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="service starting")

    try:
        manifest = await runtime.gemini.extract(text)
    except GeminiServiceError as e:
        logger.error("Manifest extraction failed", error=str(e), error_type=type(e).__name__)
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e)) from e
    return manifest.model_dump(by_alias=True)
