from fastapi import APIRouter

from .endpoints import pipeline

api_router = APIRouter()

# Operator triggers, item review, settings and sources - Mounts at /pipeline
api_router.include_router(pipeline.router, prefix="/pipeline", tags=["pipeline"])
