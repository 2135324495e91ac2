from folio.models.user import User
from folio.models.profile import (
    CONTACT_TYPES,
    Contact,
    Education,
    Project,
    WorkExperience,
)

__all__ = [
    "User",
    "Project",
    "Education",
    "WorkExperience",
    "Contact",
    "CONTACT_TYPES",
]
