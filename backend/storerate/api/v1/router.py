"""API v1 router."""

from fastapi import APIRouter

from storerate.api.v1.admin import router as admin_router
from storerate.api.v1.auth import router as auth_router
from storerate.api.v1.ratings import router as ratings_router
from storerate.api.v1.stores import router as stores_router
from storerate.api.v1.users import router as users_router

api_router = APIRouter()

# Auth
api_router.include_router(auth_router)

# Resources
api_router.include_router(stores_router)
api_router.include_router(ratings_router)
api_router.include_router(users_router)
api_router.include_router(admin_router)


@api_router.get("/")
async def root():
    """Root endpoint."""
    return {"message": "Store Rating API v1", "status": "operational"}
