"""
Catalog API Endpoints

GET /api/v1/categories - List categories
POST /api/v1/categories - Create a category
GET /api/v1/categories/:category_id - Category with its subjects
GET /api/v1/subjects - List subjects, optionally by category
POST /api/v1/subjects - Create a subject
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, Path, Query
from pydantic import BaseModel

from ledger import schemas
from ledger.api.identity import get_service
from ledger.services.ledger_service import LedgerService

router = APIRouter(prefix="/api/v1", tags=["catalog"])


class CategoryResponse(BaseModel):
    data: schemas.Category


class CategoryListResponse(BaseModel):
    data: List[schemas.Category]


class CategoryDetailResponse(BaseModel):
    data: schemas.CategoryWithSubjects


class SubjectResponse(BaseModel):
    data: schemas.Subject


class SubjectListResponse(BaseModel):
    data: List[schemas.Subject]


@router.get("/categories", response_model=CategoryListResponse)
async def list_categories(service: LedgerService = Depends(get_service)):
    return CategoryListResponse(data=await service.list_categories())


@router.post("/categories", response_model=CategoryResponse, status_code=201)
async def create_category(
    body: schemas.CategoryCreate,
    service: LedgerService = Depends(get_service),
):
    """
    Create a category.

    Raises:
        409: Category name already in use
    """
    return CategoryResponse(data=await service.create_category(body))


@router.get("/categories/{category_id}", response_model=CategoryDetailResponse)
async def get_category(
    category_id: int = Path(..., ge=1, le=schemas.MAX_ID, description="Category id"),
    service: LedgerService = Depends(get_service),
):
    return CategoryDetailResponse(data=await service.category_detail(category_id))


@router.get("/subjects", response_model=SubjectListResponse)
async def list_subjects(
    category_id: Optional[int] = Query(None, ge=1, le=schemas.MAX_ID, description="Only subjects in this category"),
    service: LedgerService = Depends(get_service),
):
    return SubjectListResponse(data=await service.list_subjects(category_id=category_id))


@router.post("/subjects", response_model=SubjectResponse, status_code=201)
async def create_subject(
    body: schemas.SubjectCreate,
    service: LedgerService = Depends(get_service),
):
    """
    Create a subject under an existing category.

    Raises:
        404: Category not found
    """
    return SubjectResponse(data=await service.create_subject(body))
