"""
API router - aggregates all route modules.
"""
from fastapi import APIRouter
from rateunlock.api.leads import router as leads_router
from rateunlock.api.lenders import router as lenders_router
from rateunlock.api.partners import router as partners_router
from rateunlock.api.calculators import router as calculators_router
from rateunlock.api.health import router as health_router

api_router = APIRouter()
api_router.include_router(leads_router)
api_router.include_router(lenders_router)
api_router.include_router(partners_router)
api_router.include_router(calculators_router)
api_router.include_router(health_router)
