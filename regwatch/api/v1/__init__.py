from fastapi import APIRouter

# Aggregate all v1 routers here
from .routers import dispatcher, instruments, pollers, progress

api_router = APIRouter()
api_router.include_router(pollers.router)
api_router.include_router(dispatcher.router)
api_router.include_router(progress.router)
api_router.include_router(instruments.router)

__all__ = ["api_router"]
