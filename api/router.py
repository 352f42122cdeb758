"""Main API router that includes versioned routers."""

from fastapi import APIRouter

from api.v1 import health, reagent_orders, reagents, sample_tests, samples

# Main API router
api_router = APIRouter()

# Include v1 routers
v1_router = APIRouter(prefix="/v1")
v1_router.include_router(health.router, tags=["health"])
v1_router.include_router(samples.router, tags=["samples"])
v1_router.include_router(sample_tests.router, tags=["sample-tests"])
v1_router.include_router(reagents.router, tags=["reagents"])
v1_router.include_router(reagent_orders.router, tags=["reagent-orders"])

api_router.include_router(v1_router)
