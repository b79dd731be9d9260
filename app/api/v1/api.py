from fastapi import APIRouter

from app.api.v1.endpoints import brands, kyc, register

api_router = APIRouter()

# Business registration draft
api_router.include_router(register.router, prefix="/register", tags=["registration"])

# KYC verification
api_router.include_router(kyc.router, prefix="/kyc", tags=["kyc"])

# Brand catalog for the onboarding pickers
api_router.include_router(brands.router, prefix="/brands", tags=["brands"])
