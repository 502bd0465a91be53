from fastapi import APIRouter
from analyst.api import analysis

api_router = APIRouter()
api_router.include_router(analysis.router, prefix="/api/analysis", tags=["analysis"])
