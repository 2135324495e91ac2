"""
Profile Section Models - Projects, education, work experience, contacts

Every section row belongs to exactly one user and can be hidden from the
public profile. Hidden rows are also left out of the search index.
"""

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, String, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from folio.database import Base
import uuid

CONTACT_TYPES = (
    "EMAIL",
    "PHONE",
    "WEBSITE",
    "TWITTER",
    "LINKEDIN",
    "GITHUB",
    "DISCORD",
    "LINK",
)


def _uuid() -> str:
    return str(uuid.uuid4())


class Project(Base):
    __tablename__ = "projects"

    id = Column(String, primary_key=True, default=_uuid)
    user_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(100), nullable=False)
    description = Column(Text, nullable=False, default="")
    company = Column(String(100), nullable=True)
    link = Column(String(500), nullable=True)
    collaborators = Column(String(200), nullable=True)
    skills = Column(String(200), nullable=True)
    from_year = Column("from", String(4), nullable=False)
    to_year = Column("to", String(7), nullable=True)  # year or "Present"
    hidden = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    user = relationship("User", back_populates="projects")


class Education(Base):
    __tablename__ = "education"

    id = Column(String, primary_key=True, default=_uuid)
    user_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    degree = Column(String(100), nullable=False)
    institution = Column(String(100), nullable=False)
    location = Column(String(100), nullable=True)
    url = Column(String(500), nullable=True)
    description = Column(Text, nullable=True)
    field_of_study = Column(String(100), nullable=True)
    gpa = Column(String(4), nullable=True)
    activities = Column(String(200), nullable=True)
    from_year = Column("from", String(4), nullable=False)
    to_year = Column("to", String(7), nullable=False)
    hidden = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    user = relationship("User", back_populates="education")


class WorkExperience(Base):
    __tablename__ = "work_experiences"

    id = Column(String, primary_key=True, default=_uuid)
    user_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(100), nullable=False)
    company = Column(String(100), nullable=False)
    location = Column(String(100), nullable=True)
    description = Column(Text, nullable=True)
    skills = Column(String(200), nullable=True)
    from_year = Column("from", String(4), nullable=False)
    to_year = Column("to", String(7), nullable=True)
    hidden = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    user = relationship("User", back_populates="work_experiences")


class Contact(Base):
    __tablename__ = "contacts"

    id = Column(String, primary_key=True, default=_uuid)
    user_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    type = Column(String(20), nullable=False)
    value = Column(String(200), nullable=False)
    hidden = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    user = relationship("User", back_populates="contacts")
