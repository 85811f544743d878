"""
Educators API Endpoints

GET /api/v1/educators - Educator summaries, optionally by subject or category
POST /api/v1/educators - Create the acting educator's profile
GET /api/v1/educators/:educator_id - Educator detail with reviews and ratings
GET /api/v1/educators/:educator_id/ratings - Live rating summary
PUT /api/v1/educators/:educator_id/subjects/:subject_id - Assign a subject
DELETE /api/v1/educators/:educator_id/subjects/:subject_id - Remove a subject
"""
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Path, Query
from pydantic import BaseModel

from ledger import schemas
from ledger.api.identity import get_actor, get_service
from ledger.services.ledger_service import LedgerService

router = APIRouter(prefix="/api/v1/educators", tags=["educators"])


class EducatorListResponse(BaseModel):
    data: List[schemas.EducatorSummary]
    metadata: Dict[str, Any]


class EducatorResponse(BaseModel):
    data: schemas.EducatorWithUser


class EducatorDetailResponse(BaseModel):
    data: schemas.EducatorDetail


class RatingResponse(BaseModel):
    data: schemas.RatingSummary


class EducatorSubjectResponse(BaseModel):
    data: schemas.EducatorSubject


class RemovedResponse(BaseModel):
    data: Dict[str, Any]


@router.get("", response_model=EducatorListResponse)
async def list_educators(
    limit: Optional[int] = Query(None, ge=0, description="Maximum number of educators"),
    subject_id: Optional[int] = Query(None, ge=1, le=schemas.MAX_ID, description="Only educators teaching this subject"),
    category_id: Optional[int] = Query(None, ge=1, le=schemas.MAX_ID, description="Only educators teaching in this category"),
    service: LedgerService = Depends(get_service),
):
    """
    List educators with their user, subjects and live ratings.

    Raises:
        404: Subject or category not found
    """
    educators = await service.list_educators(limit=limit, subject_id=subject_id, category_id=category_id)
    return EducatorListResponse(
        data=educators,
        metadata={
            "count": len(educators),
            "subject_id": subject_id,
            "category_id": category_id,
        },
    )


@router.post("", response_model=EducatorResponse, status_code=201)
async def create_educator_profile(
    body: schemas.EducatorProfileCreate,
    actor: schemas.ActingIdentity = Depends(get_actor),
    service: LedgerService = Depends(get_service),
):
    """
    Create the acting educator's profile.

    Raises:
        403: Actor is not the educator named by user_id
        409: The user already has a profile
    """
    return EducatorResponse(data=await service.register_educator_profile(actor, body))


@router.get("/{educator_id}", response_model=EducatorDetailResponse)
async def get_educator(
    educator_id: int = Path(..., ge=1, le=schemas.MAX_ID, description="Educator profile id"),
    service: LedgerService = Depends(get_service),
):
    return EducatorDetailResponse(data=await service.educator_detail(educator_id))


@router.get("/{educator_id}/ratings", response_model=RatingResponse)
async def get_educator_ratings(
    educator_id: int = Path(..., ge=1, le=schemas.MAX_ID, description="Educator profile id"),
    service: LedgerService = Depends(get_service),
):
    return RatingResponse(data=await service.ratings_for(educator_id))


@router.put("/{educator_id}/subjects/{subject_id}", response_model=EducatorSubjectResponse)
async def assign_subject(
    educator_id: int = Path(..., ge=1, le=schemas.MAX_ID, description="Educator profile id"),
    subject_id: int = Path(..., ge=1, le=schemas.MAX_ID, description="Subject id"),
    actor: schemas.ActingIdentity = Depends(get_actor),
    service: LedgerService = Depends(get_service),
):
    """
    Assign a subject to the acting educator. Assigning twice is a no-op.

    Raises:
        403: Actor does not own the profile
        404: Educator or subject not found
    """
    link = await service.assign_subject(actor, educator_id, subject_id)
    return EducatorSubjectResponse(data=link)


@router.delete("/{educator_id}/subjects/{subject_id}", response_model=RemovedResponse)
async def remove_subject(
    educator_id: int = Path(..., ge=1, le=schemas.MAX_ID, description="Educator profile id"),
    subject_id: int = Path(..., ge=1, le=schemas.MAX_ID, description="Subject id"),
    actor: schemas.ActingIdentity = Depends(get_actor),
    service: LedgerService = Depends(get_service),
):
    removed = await service.remove_subject(actor, educator_id, subject_id)
    return RemovedResponse(data={"educator_id": educator_id, "subject_id": subject_id, "removed": removed})
