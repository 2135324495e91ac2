from fastapi import APIRouter
from folio.api import profile, profiles, search

api_router = APIRouter()
api_router.include_router(search.router)
api_router.include_router(profile.router)
api_router.include_router(profiles.router)
