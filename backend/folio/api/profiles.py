"""
Public Profile API

Endpoints:
    GET  /api/profiles/{username} - Public profile (hidden entries removed)
    POST /api/check-username      - Username availability
"""

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from folio.database import get_db
from folio.schemas import (
    PublicProfileResponse,
    UsernameCheckRequest,
    UsernameCheckResponse,
)
from folio.services import profile as profile_service

router = APIRouter(prefix="/api", tags=["profiles"])


@router.get("/profiles/{username}", response_model=PublicProfileResponse)
async def get_public_profile(username: str, db: AsyncSession = Depends(get_db)):
    user = await profile_service.get_public_profile(db, username)

    profile = PublicProfileResponse.model_validate(user)
    profile.projects = [p for p in profile.projects if not p.hidden]
    profile.education = [e for e in profile.education if not e.hidden]
    profile.work_experiences = [w for w in profile.work_experiences if not w.hidden]
    profile.contacts = [c for c in profile.contacts if not c.hidden]
    return profile


@router.post("/check-username", response_model=UsernameCheckResponse)
async def check_username(request: UsernameCheckRequest, db: AsyncSession = Depends(get_db)):
    if not request.username:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Username is required",
        )
    return await profile_service.check_username(db, request.username)
