from fastapi import APIRouter

from rental_backoffice.api.routes import activity, payments, rentals

api_router = APIRouter()

api_router.include_router(rentals.router, prefix="/rentals", tags=["rentals"])
api_router.include_router(payments.router, prefix="/payments", tags=["payments"])
api_router.include_router(activity.router, prefix="/activity", tags=["activity"])
