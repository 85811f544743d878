"""
Reviews and Testimonials API Endpoints

POST /api/v1/reviews - Review an educator as the acting student
GET /api/v1/educators/:educator_id/reviews - An educator's reviews with students
POST /api/v1/testimonials - Submit a testimonial as the acting user
GET /api/v1/testimonials - Visible testimonials with their users
POST /api/v1/testimonials/:testimonial_id/hide - Hide the acting user's testimonial
"""
from typing import List

from fastapi import APIRouter, Depends, Path
from pydantic import BaseModel

from ledger import schemas
from ledger.api.identity import get_actor, get_service
from ledger.services.ledger_service import LedgerService

router = APIRouter(prefix="/api/v1", tags=["reviews"])


class ReviewResponse(BaseModel):
    data: schemas.Review


class ReviewListResponse(BaseModel):
    data: List[schemas.ReviewWithStudent]


class TestimonialResponse(BaseModel):
    data: schemas.Testimonial


class TestimonialListResponse(BaseModel):
    data: List[schemas.TestimonialWithUser]


@router.post("/reviews", response_model=ReviewResponse, status_code=201)
async def submit_review(
    body: schemas.ReviewCreate,
    actor: schemas.ActingIdentity = Depends(get_actor),
    service: LedgerService = Depends(get_service),
):
    """
    Review an educator.

    Raises:
        403: Actor is not the reviewing student
        404: Educator, student or session not found
        422: Rating out of range, or the session does not match or is not completed
    """
    return ReviewResponse(data=await service.submit_review(actor, body))


@router.get("/educators/{educator_id}/reviews", response_model=ReviewListResponse)
async def list_educator_reviews(
    educator_id: int = Path(..., ge=1, le=schemas.MAX_ID, description="Educator profile id"),
    service: LedgerService = Depends(get_service),
):
    return ReviewListResponse(data=await service.reviews_for_educator(educator_id))


@router.post("/testimonials", response_model=TestimonialResponse, status_code=201)
async def submit_testimonial(
    body: schemas.TestimonialCreate,
    actor: schemas.ActingIdentity = Depends(get_actor),
    service: LedgerService = Depends(get_service),
):
    return TestimonialResponse(data=await service.submit_testimonial(actor, body))


@router.get("/testimonials", response_model=TestimonialListResponse)
async def list_testimonials(service: LedgerService = Depends(get_service)):
    return TestimonialListResponse(data=await service.visible_testimonials())


@router.post("/testimonials/{testimonial_id}/hide", response_model=TestimonialResponse)
async def hide_testimonial(
    testimonial_id: int = Path(..., ge=1, le=schemas.MAX_ID, description="Testimonial id"),
    actor: schemas.ActingIdentity = Depends(get_actor),
    service: LedgerService = Depends(get_service),
):
    """
    Hide a testimonial from the public listing.

    Raises:
        403: Actor did not write the testimonial
        404: Testimonial not found
    """
    return TestimonialResponse(data=await service.hide_testimonial(actor, testimonial_id))
