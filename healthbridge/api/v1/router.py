"""
API Router v1

Combines all route modules.
"""

from fastapi import APIRouter

from healthbridge.api.v1.routes import google_fit, consent, ingest

api_router = APIRouter()

api_router.include_router(google_fit.router, prefix="/google-fit", tags=["Google Fit"])
api_router.include_router(consent.router, prefix="/consents", tags=["Consents"])
api_router.include_router(ingest.router, prefix="/ingest", tags=["Ingestion"])
