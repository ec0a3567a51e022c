from fastapi import APIRouter

from homeplanner.api.v1.endpoints import events

api_router = APIRouter()

# Include all route modules
api_router.include_router(events.router)
