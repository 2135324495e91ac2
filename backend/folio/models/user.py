"""
User Model - Profile owner and search index record

One row per account. Besides the editable profile fields, the row carries
the derived search artifacts and their staleness bookkeeping:

    searchable_text     denormalized discoverable text (rebuilt wholesale)
    search_vector       {lexeme: [positions]} built from searchable_text
    embedding           1536-dim semantic vector (JSON array)

Staleness Flow:
    profile write → embeddings_stale = search_vector_stale = True, dirty_version += 1
    index build   → artifact persisted → flag cleared if dirty_version is
                    unchanged since the build read the row
"""

from sqlalchemy import Boolean, Column, DateTime, Integer, JSON, String, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from folio.database import Base
import uuid


class User(Base):
    """
    Profile owner with search index columns.

    Attributes:
        id: UUID primary key (immutable)
        username: Public handle, unique, stored lowercase
        custom_status: Short free-text status shown on the profile
        searchable_text: Plain text fed to both indexes
        search_vector: Lexeme → positions map used for full-text ranking
        embedding: Semantic vector of searchable_text
        embeddings_stale: embedding lags the profile
        search_vector_stale: search_vector lags the profile
        dirty_version: Bumped on every profile write; the builder only
            clears a flag while it still matches the version it read
    """

    __tablename__ = "users"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    email = Column(String(255), nullable=False, unique=True)
    name = Column(String(100), nullable=False)
    username = Column(String(32), nullable=True, unique=True, index=True)
    image = Column(String(1000), nullable=True)
    title = Column(String(100), nullable=True)
    about = Column(Text, nullable=True)
    location = Column(String(100), nullable=True)
    website = Column(String(500), nullable=True)
    custom_status = Column(String(100), nullable=True)

    searchable_text = Column(Text, nullable=True)
    search_vector = Column(JSON(none_as_null=True), nullable=True)
    embedding = Column(JSON(none_as_null=True), nullable=True)  # Store as JSON array
    embeddings_stale = Column(Boolean, nullable=False, default=False, index=True)
    search_vector_stale = Column(Boolean, nullable=False, default=False, index=True)
    dirty_version = Column(Integer, nullable=False, default=0, server_default="0")
    embedding_updated_at = Column(DateTime, nullable=True)
    search_vector_updated_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    projects = relationship(
        "Project", back_populates="user", cascade="all, delete-orphan",
        order_by="Project.created_at",
    )
    education = relationship(
        "Education", back_populates="user", cascade="all, delete-orphan",
        order_by="Education.created_at",
    )
    work_experiences = relationship(
        "WorkExperience", back_populates="user", cascade="all, delete-orphan",
        order_by="WorkExperience.created_at",
    )
    contacts = relationship(
        "Contact", back_populates="user", cascade="all, delete-orphan",
        order_by="Contact.created_at",
    )

    def __repr__(self) -> str:
        return f"<User(id='{self.id}', username='{self.username}')>"
