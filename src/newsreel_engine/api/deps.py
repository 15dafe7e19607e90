"""FastAPI dependencies."""

from typing import Annotated

from fastapi import Depends
from sqlalchemy.orm import Session

from newsreel_engine.db.session import get_session
from newsreel_engine.services.repository import VideoRepository
from newsreel_engine.services.storage import ObjectStore, get_object_store

SessionDep = Annotated[Session, Depends(get_session)]


def get_repository(session: SessionDep) -> VideoRepository:
    """Video repository over the request's session."""
    return VideoRepository(session)


RepositoryDep = Annotated[VideoRepository, Depends(get_repository)]
ObjectStoreDep = Annotated[ObjectStore, Depends(get_object_store)]
