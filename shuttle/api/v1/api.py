from fastapi import APIRouter
from shuttle.api.v1.routes import admin, auth, bookings, ops, public, reports

api_router = APIRouter(prefix="/api/v1")

# public and customer endpoints first, then the admin console
for module in (auth, public, bookings, ops, admin, reports):
    api_router.include_router(module.router)
