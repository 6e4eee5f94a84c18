"""
V1 API router aggregator: wires all endpoint modules together.
"""

from fastapi import APIRouter

from app.api.v1.endpoints import auth, calendar, health, hours, users

api_router = APIRouter()

# Login, refresh, logout, profile
api_router.include_router(auth.router)

# Admin account management
api_router.include_router(users.router)

# Month ledgers, range copy, reports
api_router.include_router(hours.router)

# Calendar events and vacation requests
api_router.include_router(calendar.router)

api_router.include_router(health.router)
