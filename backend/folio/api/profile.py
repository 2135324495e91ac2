"""
Profile Owner API

Endpoints:
    GET    /api/me/profile                       - Full owner view
    PUT    /api/me/profile/general               - Name, username, about...
    GET    /api/me/profile/{section}             - List entries
    POST   /api/me/profile/{section}             - Create entry
    PUT    /api/me/profile/{section}/{entry_id}  - Update entry
    PATCH  /api/me/profile/{section}/{entry_id}  - Hide / show entry
    DELETE /api/me/profile/{section}/{entry_id}  - Delete entry

Sections: projects, education, experience, contacts.

Every mutation marks the profile's search artifacts stale and requests a
debounced index build once the response is ready.
"""

import logging
from typing import Type

from fastapi import APIRouter, BackgroundTasks, Depends
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from folio.auth import get_current_user_id
from folio.database import get_db
from folio.schemas import (
    ContactCreate,
    ContactResponse,
    EducationCreate,
    EducationResponse,
    ExperienceCreate,
    ExperienceResponse,
    GeneralUpdate,
    ProjectCreate,
    ProjectResponse,
    UserProfileResponse,
    VisibilityUpdate,
)
from folio.services import profile as profile_service
from folio.services.staleness import request_search_build

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/me/profile", tags=["profile"])


@router.get("", response_model=UserProfileResponse)
async def get_my_profile(
    db: AsyncSession = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    user = await profile_service.get_user(db, user_id, with_sections=True)
    return UserProfileResponse.model_validate(user)


@router.put("/general", response_model=UserProfileResponse)
async def update_general(
    update: GeneralUpdate,
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    user = await profile_service.update_general(db, user_id, update)
    background_tasks.add_task(request_search_build, user_id)
    return UserProfileResponse.model_validate(user)


def section_router(
    section: str,
    create_schema: Type[BaseModel],
    response_schema: Type[BaseModel],
) -> APIRouter:
    """Build the CRUD + visibility routes for one profile section."""
    section_api = APIRouter(prefix=f"/{section}")

    @section_api.get("", response_model=list[response_schema])
    async def list_entries(
        db: AsyncSession = Depends(get_db),
        user_id: str = Depends(get_current_user_id),
    ):
        entries = await profile_service.list_entries(db, user_id, section)
        return [response_schema.model_validate(e) for e in entries]

    @section_api.post("", response_model=response_schema, status_code=201)
    async def create_entry(
        data: create_schema,
        background_tasks: BackgroundTasks,
        db: AsyncSession = Depends(get_db),
        user_id: str = Depends(get_current_user_id),
    ):
        entry = await profile_service.create_entry(db, user_id, section, data)
        background_tasks.add_task(request_search_build, user_id)
        return response_schema.model_validate(entry)

    @section_api.put("/{entry_id}", response_model=response_schema)
    async def update_entry(
        entry_id: str,
        data: create_schema,
        background_tasks: BackgroundTasks,
        db: AsyncSession = Depends(get_db),
        user_id: str = Depends(get_current_user_id),
    ):
        entry = await profile_service.update_entry(db, user_id, section, entry_id, data)
        background_tasks.add_task(request_search_build, user_id)
        return response_schema.model_validate(entry)

    @section_api.patch("/{entry_id}", response_model=response_schema)
    async def set_visibility(
        entry_id: str,
        data: VisibilityUpdate,
        background_tasks: BackgroundTasks,
        db: AsyncSession = Depends(get_db),
        user_id: str = Depends(get_current_user_id),
    ):
        entry = await profile_service.set_entry_hidden(
            db, user_id, section, entry_id, data.hidden
        )
        background_tasks.add_task(request_search_build, user_id)
        return response_schema.model_validate(entry)

    @section_api.delete("/{entry_id}")
    async def delete_entry(
        entry_id: str,
        background_tasks: BackgroundTasks,
        db: AsyncSession = Depends(get_db),
        user_id: str = Depends(get_current_user_id),
    ):
        await profile_service.delete_entry(db, user_id, section, entry_id)
        background_tasks.add_task(request_search_build, user_id)
        return {"success": True}

    return section_api


router.include_router(section_router("projects", ProjectCreate, ProjectResponse))
router.include_router(section_router("education", EducationCreate, EducationResponse))
router.include_router(section_router("experience", ExperienceCreate, ExperienceResponse))
router.include_router(section_router("contacts", ContactCreate, ContactResponse))
