# slotbook/api/v1/router.py
from fastapi import APIRouter
from slotbook.api.v1 import (
    auth,
    trainers,
    sessions,
    registrations,
    checkin,
)

api_router = APIRouter()

api_router.include_router(auth.router,          prefix="/auth",          tags=["auth"])
api_router.include_router(trainers.router,      prefix="/trainers",      tags=["trainers"])
api_router.include_router(sessions.router,      prefix="/sessions",      tags=["sessions"])
api_router.include_router(registrations.router, prefix="/registrations", tags=["registrations"])
api_router.include_router(checkin.router,       prefix="/checkin",       tags=["checkin"])
