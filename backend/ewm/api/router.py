"""
Central API router that aggregates all route modules.
"""

from fastapi import APIRouter

from ewm.api.routes import categories, comments, compilations, events, requests, users

api_router = APIRouter()
api_router.include_router(users.router)
api_router.include_router(categories.admin_router)
api_router.include_router(categories.public_router)
api_router.include_router(events.private_router)
api_router.include_router(events.admin_router)
api_router.include_router(events.public_router)
api_router.include_router(requests.router)
api_router.include_router(compilations.admin_router)
api_router.include_router(compilations.public_router)
api_router.include_router(comments.router)
