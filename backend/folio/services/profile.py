"""
Profile Use Cases - General info and section CRUD for the profile owner

Every mutation here follows the same shape:

    change rows → mark_profile_dirty() → commit

so the staleness flags are raised in the same transaction as the change.
Routes schedule request_search_build() after the commit succeeds.

Sections:
    projects    → Project
    education   → Education
    experience  → WorkExperience
    contacts    → Contact
"""

import logging
import re
from typing import Dict, List, Optional, Type

from pydantic import BaseModel
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from folio.errors import ProfileNotFoundError, UsernameTakenError
from folio.models import Contact, Education, Project, User, WorkExperience
from folio.schemas import GeneralUpdate
from folio.services.staleness import mark_profile_dirty

logger = logging.getLogger(__name__)

SECTION_MODELS: Dict[str, Type] = {
    "projects": Project,
    "education": Education,
    "experience": WorkExperience,
    "contacts": Contact,
}

# Format accepted by the availability check (looser than the edit form)
USERNAME_CHECK_RE = re.compile(r"^[a-zA-Z0-9._-]+$")


def _clean(value: Optional[str]) -> Optional[str]:
    """Trim text; blank becomes None."""
    if value is None:
        return None
    value = value.strip()
    return value or None


def _cleaned_fields(data: BaseModel) -> dict:
    return {
        key: _clean(value) if isinstance(value, str) else value
        for key, value in data.model_dump().items()
    }


async def get_user(db: AsyncSession, user_id: str, with_sections: bool = False) -> User:
    stmt = select(User).where(User.id == user_id)
    if with_sections:
        stmt = stmt.options(
            selectinload(User.projects),
            selectinload(User.education),
            selectinload(User.work_experiences),
            selectinload(User.contacts),
        ).execution_options(populate_existing=True)
    result = await db.execute(stmt)
    user = result.scalar_one_or_none()
    if user is None:
        raise ProfileNotFoundError(f"User not found: {user_id}")
    return user


async def update_general(db: AsyncSession, user_id: str, data: GeneralUpdate) -> User:
    """
    Update name, username and the other general fields.

    Raises:
        ProfileNotFoundError: Unknown user
        UsernameTakenError: Username belongs to someone else
    """
    user = await get_user(db, user_id)
    username = data.username.strip().lower()

    taken = await db.execute(
        select(User.id).where(User.username == username, User.id != user_id)
    )
    if taken.first() is not None:
        raise UsernameTakenError(f"Username is already taken: {username}")

    user.name = data.name.strip()
    user.username = username
    user.title = _clean(data.title)
    user.about = _clean(data.about)
    user.location = _clean(data.location)
    user.website = _clean(data.website)
    user.custom_status = _clean(data.custom_status)

    await mark_profile_dirty(db, user_id)
    try:
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        raise UsernameTakenError(f"Username is already taken: {username}") from e

    logger.info(f"Updated general profile for user {user_id}")
    return await get_user(db, user_id, with_sections=True)


async def list_entries(db: AsyncSession, user_id: str, section: str) -> List:
    model = SECTION_MODELS[section]
    result = await db.execute(
        select(model)
        .where(model.user_id == user_id)
        .order_by(model.created_at, model.id)
    )
    return list(result.scalars().all())


async def _get_owned_entry(db: AsyncSession, user_id: str, section: str, entry_id: str):
    model = SECTION_MODELS[section]
    result = await db.execute(
        select(model).where(model.id == entry_id, model.user_id == user_id)
    )
    entry = result.scalar_one_or_none()
    if entry is None:
        raise ProfileNotFoundError(f"{section} entry not found: {entry_id}")
    return entry


async def create_entry(db: AsyncSession, user_id: str, section: str, data: BaseModel):
    await get_user(db, user_id)

    entry = SECTION_MODELS[section](user_id=user_id, **_cleaned_fields(data))
    db.add(entry)
    await mark_profile_dirty(db, user_id)
    await db.commit()
    await db.refresh(entry)

    logger.info(f"Created {section} entry {entry.id} for user {user_id}")
    return entry


async def update_entry(
    db: AsyncSession, user_id: str, section: str, entry_id: str, data: BaseModel
):
    entry = await _get_owned_entry(db, user_id, section, entry_id)
    for field, value in _cleaned_fields(data).items():
        setattr(entry, field, value)

    await mark_profile_dirty(db, user_id)
    await db.commit()
    await db.refresh(entry)
    return entry


async def set_entry_hidden(
    db: AsyncSession, user_id: str, section: str, entry_id: str, hidden: bool
):
    entry = await _get_owned_entry(db, user_id, section, entry_id)
    entry.hidden = hidden

    await mark_profile_dirty(db, user_id)
    await db.commit()
    await db.refresh(entry)
    return entry


async def delete_entry(db: AsyncSession, user_id: str, section: str, entry_id: str) -> None:
    entry = await _get_owned_entry(db, user_id, section, entry_id)
    await db.delete(entry)

    await mark_profile_dirty(db, user_id)
    await db.commit()
    logger.info(f"Deleted {section} entry {entry_id} for user {user_id}")


async def get_public_profile(db: AsyncSession, username: str) -> User:
    result = await db.execute(
        select(User)
        .where(User.username == username.lower())
        .options(
            selectinload(User.projects),
            selectinload(User.education),
            selectinload(User.work_experiences),
            selectinload(User.contacts),
        )
    )
    user = result.scalar_one_or_none()
    if user is None:
        raise ProfileNotFoundError(f"Profile not found: {username}")
    return user


async def check_username(db: AsyncSession, username: str) -> dict:
    """
    Report whether a username can be claimed.

    Format problems are reported as unavailable with an error message
    rather than as a failed request.
    """
    if not USERNAME_CHECK_RE.match(username):
        return {"available": False, "error": "Username contains invalid characters"}
    if len(username) < 3:
        return {"available": False, "error": "Username must be at least 3 characters"}
    if len(username) > 32:
        return {"available": False, "error": "Username must be no more than 32 characters"}

    username = username.lower()
    result = await db.execute(
        select(func.count()).select_from(User).where(User.username == username)
    )
    available = result.scalar_one() == 0
    return {
        "available": available,
        "username": username,
        "message": "Username is available" if available else "Username is already taken",
    }
