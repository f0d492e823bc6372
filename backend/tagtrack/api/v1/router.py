"""TagTrack IMS — API v1 router aggregation."""
from fastapi import APIRouter

from tagtrack.api.v1.endpoints import (
    categories,
    instances,
    inventory,
    skus,
    tags,
    tools,
)

api_router = APIRouter()

api_router.include_router(categories.router, prefix="/categories", tags=["categories"])
api_router.include_router(skus.router, prefix="/skus", tags=["skus"])
api_router.include_router(instances.router, prefix="/instances", tags=["instances"])
api_router.include_router(tags.router, prefix="/tags", tags=["tags"])
api_router.include_router(tools.router, prefix="/tools", tags=["tools"])
api_router.include_router(inventory.router, prefix="/inventory", tags=["inventory"])
