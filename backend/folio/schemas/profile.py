from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

YEAR_PATTERN = r"^\d{4}$"
YEAR_OR_PRESENT_PATTERN = r"^(\d{4}|Present)?$"
HTTPS_URL_PATTERN = r"^(https://.*)?$"
HTTP_URL_PATTERN = r"^(https?://.*)?$"
USERNAME_PATTERN = r"^[a-zA-Z][a-zA-Z0-9_]*$"
MAX_ABOUT_WORDS = 200

ContactType = Literal[
    "EMAIL", "PHONE", "WEBSITE", "TWITTER", "LINKEDIN", "GITHUB", "DISCORD", "LINK"
]


class GeneralUpdate(BaseModel):
    name: str = Field(min_length=2, max_length=50)
    username: str = Field(min_length=3, max_length=32, pattern=USERNAME_PATTERN)
    title: Optional[str] = Field(default=None, max_length=100)
    about: Optional[str] = None
    location: Optional[str] = Field(default=None, max_length=100)
    website: Optional[str] = Field(default=None, max_length=500, pattern=HTTPS_URL_PATTERN)
    custom_status: Optional[str] = Field(default=None, max_length=100)

    @field_validator("about")
    @classmethod
    def about_word_limit(cls, v: Optional[str]) -> Optional[str]:
        if v and len(v.split()) > MAX_ABOUT_WORDS:
            raise ValueError(f"About section must be less than {MAX_ABOUT_WORDS} words")
        return v


class ProjectCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    title: str = Field(min_length=1, max_length=100)
    description: str = Field(min_length=1, max_length=500)
    company: Optional[str] = Field(default=None, max_length=100)
    link: Optional[str] = Field(default=None, max_length=500, pattern=HTTPS_URL_PATTERN)
    collaborators: Optional[str] = Field(default=None, max_length=200)
    skills: Optional[str] = Field(default=None, max_length=200)
    from_year: str = Field(alias="from", pattern=YEAR_PATTERN)
    to_year: Optional[str] = Field(default=None, alias="to", pattern=YEAR_OR_PRESENT_PATTERN)


class EducationCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    degree: str = Field(min_length=1, max_length=100)
    institution: str = Field(min_length=1, max_length=100)
    location: Optional[str] = Field(default=None, max_length=100)
    url: Optional[str] = Field(default=None, max_length=500, pattern=HTTP_URL_PATTERN)
    description: Optional[str] = Field(default=None, max_length=500)
    field_of_study: Optional[str] = Field(default=None, max_length=100)
    gpa: Optional[str] = Field(default=None, pattern=r"^(\d(\.\d{1,2})?)?$")
    activities: Optional[str] = Field(default=None, max_length=200)
    from_year: str = Field(alias="from", pattern=YEAR_PATTERN)
    to_year: str = Field(alias="to", pattern=r"^(\d{4}|Present)$")


class ExperienceCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    title: str = Field(min_length=1, max_length=100)
    company: str = Field(min_length=1, max_length=100)
    location: Optional[str] = Field(default=None, max_length=100)
    description: Optional[str] = Field(default=None, max_length=500)
    skills: Optional[str] = Field(default=None, max_length=200)
    from_year: str = Field(alias="from", pattern=YEAR_PATTERN)
    to_year: Optional[str] = Field(default=None, alias="to", pattern=YEAR_OR_PRESENT_PATTERN)


class ContactCreate(BaseModel):
    type: ContactType
    value: str = Field(min_length=1, max_length=200)


class VisibilityUpdate(BaseModel):
    hidden: bool


class _SectionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    id: str
    hidden: bool = False


class ProjectResponse(_SectionResponse):
    title: str
    description: str
    company: Optional[str] = None
    link: Optional[str] = None
    collaborators: Optional[str] = None
    skills: Optional[str] = None
    from_year: str = Field(alias="from")
    to_year: Optional[str] = Field(default=None, alias="to")


class EducationResponse(_SectionResponse):
    degree: str
    institution: str
    location: Optional[str] = None
    url: Optional[str] = None
    description: Optional[str] = None
    field_of_study: Optional[str] = None
    gpa: Optional[str] = None
    activities: Optional[str] = None
    from_year: str = Field(alias="from")
    to_year: str = Field(alias="to")


class ExperienceResponse(_SectionResponse):
    title: str
    company: str
    location: Optional[str] = None
    description: Optional[str] = None
    skills: Optional[str] = None
    from_year: str = Field(alias="from")
    to_year: Optional[str] = Field(default=None, alias="to")


class ContactResponse(_SectionResponse):
    type: str
    value: str


class UserProfileResponse(BaseModel):
    """Owner view, including hidden entries and index bookkeeping."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    email: str
    name: str
    username: Optional[str] = None
    image: Optional[str] = None
    title: Optional[str] = None
    about: Optional[str] = None
    location: Optional[str] = None
    website: Optional[str] = None
    custom_status: Optional[str] = None
    embeddings_stale: bool
    search_vector_stale: bool
    embedding_updated_at: Optional[datetime] = None
    search_vector_updated_at: Optional[datetime] = None
    projects: list[ProjectResponse] = []
    education: list[EducationResponse] = []
    work_experiences: list[ExperienceResponse] = []
    contacts: list[ContactResponse] = []


class PublicProfileResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    username: Optional[str] = None
    image: Optional[str] = None
    title: Optional[str] = None
    about: Optional[str] = None
    location: Optional[str] = None
    website: Optional[str] = None
    custom_status: Optional[str] = None
    projects: list[ProjectResponse] = []
    education: list[EducationResponse] = []
    work_experiences: list[ExperienceResponse] = []
    contacts: list[ContactResponse] = []


class UsernameCheckRequest(BaseModel):
    username: Optional[str] = None


class UsernameCheckResponse(BaseModel):
    available: bool
    username: Optional[str] = None
    message: Optional[str] = None
    error: Optional[str] = None
