"""
Users API Endpoints

POST /api/v1/users - Register a user
GET /api/v1/users/:user_id - Fetch a user
GET /api/v1/users/by-username/:username - Fetch a user by username
"""
from fastapi import APIRouter, Depends, Path
from pydantic import BaseModel

from ledger import schemas
from ledger.api.identity import get_service
from ledger.errors import NotFoundError
from ledger.services.ledger_service import LedgerService

router = APIRouter(prefix="/api/v1/users", tags=["users"])


class UserResponse(BaseModel):
    data: schemas.User


@router.post("", response_model=UserResponse, status_code=201)
async def register_user(
    body: schemas.UserCreate,
    service: LedgerService = Depends(get_service),
):
    """
    Register a user.

    Raises:
        409: Username or email already in use
        422: Invalid fields
    """
    user = await service.register_user(body)
    return UserResponse(data=user)


@router.get("/by-username/{username}", response_model=UserResponse)
async def get_user_by_username(
    username: str = Path(..., min_length=1),
    service: LedgerService = Depends(get_service),
):
    user = await service.store.get_user_by_username(username)
    if user is None:
        raise NotFoundError("user", username, key="username")
    return UserResponse(data=user)


@router.get("/{user_id}", response_model=UserResponse)
async def get_user(
    user_id: int = Path(..., ge=1, le=schemas.MAX_ID, description="User id"),
    service: LedgerService = Depends(get_service),
):
    user = await service.get_user(user_id)
    return UserResponse(data=user)
