"""
API router.
"""
from fastapi import APIRouter

from compliance_platform.api.v1.endpoints import (
    activity,
    api_keys,
    assessments,
    control_assessments,
    health,
    nist_csf,
    organizations,
    reports,
    risks,
    threats,
)
from compliance_platform.api.v1.endpoints.api_keys import auth_router

api_router = APIRouter()

# Health check endpoint (no prefix, so it's /api/health)
api_router.include_router(health.router, tags=["health"])

api_router.include_router(risks.router, prefix="/risks", tags=["risks"])
api_router.include_router(organizations.router, prefix="/organizations", tags=["organizations"])
api_router.include_router(assessments.router, prefix="/assessments", tags=["assessments"])
api_router.include_router(control_assessments.router, prefix="/assessments", tags=["control-assessments"])
api_router.include_router(reports.router, prefix="/reports", tags=["reports"])
api_router.include_router(nist_csf.router, prefix="/nist-csf", tags=["nist-csf"])
api_router.include_router(threats.assets_router, prefix="/assets", tags=["threat-modeling"])
api_router.include_router(threats.router, prefix="/threat-models", tags=["threat-modeling"])
api_router.include_router(api_keys.router, prefix="/api-keys", tags=["api-keys"])
api_router.include_router(auth_router, prefix="/auth", tags=["auth"])
api_router.include_router(activity.router, prefix="/activity", tags=["activity"])
