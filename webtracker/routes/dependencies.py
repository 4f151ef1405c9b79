"""
Request-scoped access to the runtime built in the app lifespan.
"""

from fastapi import HTTPException, Request, status

from webtracker.repositories import Store
from webtracker.runtime import Application
from webtracker.services.shipment_service import ShipmentService


def get_runtime(request: Request) -> Application:
    return request.app.state.runtime


def get_store(request: Request) -> Store:
    return get_runtime(request).store


def get_shipment_service(request: Request) -> ShipmentService:
    service = get_runtime(request).shipments
    if service is None:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="service starting")
    return service
