"""API router for version 2."""
from fastapi import APIRouter

from podsync.api.v2.endpoints import auth, devices, episodes, subscriptions


api_router = APIRouter()
api_router.include_router(auth.router)
api_router.include_router(devices.router)
api_router.include_router(subscriptions.router)
api_router.include_router(episodes.router)
