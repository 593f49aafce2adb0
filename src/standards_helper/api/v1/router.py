from fastapi import APIRouter

from standards_helper.api.v1 import health, standards

api_v1_router = APIRouter()
api_v1_router.include_router(health.router)
api_v1_router.include_router(standards.router)
