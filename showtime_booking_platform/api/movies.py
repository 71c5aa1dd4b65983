"""
Movie catalogue API endpoints.
"""

from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends

from ..schemas.catalog import MovieResponse, ShowResponse
from ..services import CatalogService
from ..utils.dependencies import get_catalog_service

router = APIRouter(prefix="/movies", tags=["movies"])


@router.get("", response_model=List[MovieResponse])
async def list_movies(catalog: CatalogService = Depends(get_catalog_service)):
    """List all movies, newest first."""
    return await catalog.list_movies()


@router.get("/{movie_id}", response_model=MovieResponse)
async def get_movie(movie_id: UUID, catalog: CatalogService = Depends(get_catalog_service)):
    """Get a movie by ID."""
    return await catalog.get_movie(movie_id)


@router.get("/{movie_id}/shows", response_model=List[ShowResponse])
async def list_upcoming_shows(movie_id: UUID, catalog: CatalogService = Depends(get_catalog_service)):
    """
    List the movie's shows that have not started yet.

    Shows are ordered by start time, soonest first.
    """
    return await catalog.list_upcoming_shows(movie_id)
