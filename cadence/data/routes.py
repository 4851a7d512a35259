"""Data API routes - combines the per-resource routers."""
from fastapi import APIRouter

from cadence.data.completions import routes as completion_routes
from cadence.data.obligations import routes as obligation_routes
from cadence.data.transactions import routes as transaction_routes
from cadence.data.user_preferences import routes as preference_routes
from cadence.data.users import routes as user_routes

router = APIRouter()

router.include_router(user_routes.router)
router.include_router(obligation_routes.router)
router.include_router(preference_routes.router)
router.include_router(completion_routes.router)
router.include_router(transaction_routes.router)
