from fastapi import APIRouter

from .endpoints import review_router

api_router = APIRouter()

api_router.include_router(review_router.router, prefix="/review", tags=["Review"])
