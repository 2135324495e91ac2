from folio.schemas.profile import (
    ContactCreate,
    ContactResponse,
    EducationCreate,
    EducationResponse,
    ExperienceCreate,
    ExperienceResponse,
    GeneralUpdate,
    ProjectCreate,
    ProjectResponse,
    PublicProfileResponse,
    UserProfileResponse,
    UsernameCheckRequest,
    UsernameCheckResponse,
    VisibilityUpdate,
)
from folio.schemas.search import SearchResponse, SearchResultResponse

__all__ = [
    "ContactCreate",
    "ContactResponse",
    "EducationCreate",
    "EducationResponse",
    "ExperienceCreate",
    "ExperienceResponse",
    "GeneralUpdate",
    "ProjectCreate",
    "ProjectResponse",
    "PublicProfileResponse",
    "UserProfileResponse",
    "UsernameCheckRequest",
    "UsernameCheckResponse",
    "VisibilityUpdate",
    "SearchResponse",
    "SearchResultResponse",
]
