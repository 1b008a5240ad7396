"""Customer and health endpoints of the reference target service."""

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.responses import JSONResponse

from loadbench.target.models import CustomerRequest, CustomerResponse
from loadbench.target.store import CustomerStore

logger = structlog.get_logger()

router = APIRouter(prefix="/customers", tags=["customers"])
health_router = APIRouter(tags=["health"])


def get_store(request: Request) -> CustomerStore:
    return request.app.state.store


@router.get("/{customer_id}", response_model=CustomerResponse)
async def get_customer(
    customer_id: int,
    store: CustomerStore = Depends(get_store),  # noqa: B008
) -> CustomerResponse:
    customer = store.get(customer_id)
    if customer is None:
        raise HTTPException(status_code=404, detail=f"Customer {customer_id} not found")
    return customer


@router.get("", response_model=list[CustomerResponse])
async def search_customers(
    search: str | None = Query(default=None),
    store: CustomerStore = Depends(get_store),  # noqa: B008
) -> list[CustomerResponse]:
    return store.search(search)


@router.post("", response_model=CustomerResponse, status_code=201)
async def create_customer(
    request: CustomerRequest,
    store: CustomerStore = Depends(get_store),  # noqa: B008
) -> CustomerResponse:
    return store.add(request)


@health_router.get("/actuator/health")
async def health(request: Request) -> JSONResponse:
    if getattr(request.app.state, "healthy", True):
        return JSONResponse(status_code=200, content={"status": "UP"})
    return JSONResponse(status_code=503, content={"status": "DOWN"})
