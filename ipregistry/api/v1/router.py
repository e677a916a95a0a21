from fastapi import APIRouter
from ipregistry.api.v1.endpoints import health, records, contributors, gender, ipassets, calendar

api_router = APIRouter()

api_router.include_router(health.router)
api_router.include_router(records.router)
api_router.include_router(contributors.router)
api_router.include_router(gender.router)
api_router.include_router(ipassets.router)
api_router.include_router(calendar.router)
