"""
Users API Endpoints.

Login, self-service profile, admin user management and bulk lead assignment.
"""

from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, status

from api.models import (
    AssignLeadsRequest,
    AssignLeadsResponse,
    ErrorResponse,
    LoginRequest,
    LoginResponse,
    MessageResponse,
    UserCreateRequest,
    UserResponse,
    UserUpdateRequest,
    UserWithStatsResponse,
)
from api.security import create_access_token, get_current_actor
from domain.access_policy import Actor
from services import directory_service, user_service
from services.user_service import NewUser, UserWithStats

router = APIRouter(responses={401: {"model": ErrorResponse}, 403: {"model": ErrorResponse}})


def _with_stats(row: UserWithStats) -> UserWithStatsResponse:
    return UserWithStatsResponse(
        **UserResponse.from_domain(row.user).model_dump(),
        leads=row.stats.leads,
        conversions=row.stats.conversions,
        conversion_rate=row.stats.conversion_rate,
    )


@router.post("/users/login", response_model=LoginResponse, summary="Login")
def login(request: LoginRequest):
    """Exchange email and password for a bearer token."""
    user = user_service.authenticate(request.email, request.password)
    return LoginResponse(**UserResponse.from_domain(user).model_dump(), token=create_access_token(user))


@router.get("/users/profile", response_model=UserResponse, summary="Current User")
def get_profile(actor: Actor = Depends(get_current_actor)):
    return UserResponse.from_domain(user_service.get_profile(actor))


@router.put("/users/profile", response_model=UserResponse, summary="Update Current User")
def update_profile(request: UserUpdateRequest, actor: Actor = Depends(get_current_actor)):
    """Edit your own account. A role change is only applied for admins."""
    changes = request.model_dump(exclude_unset=True)
    return UserResponse.from_domain(user_service.update_profile(actor, changes))


@router.post(
    "/users/assign-leads",
    response_model=AssignLeadsResponse,
    summary="Assign Leads",
)
def assign_leads(request: AssignLeadsRequest, actor: Actor = Depends(get_current_actor)):
    """
    Assign a batch of leads to one user. Admin only.

    Unknown lead ids are skipped; an unknown user fails the request.
    """
    assigned = directory_service.assign_leads_bulk(request.user_id, request.lead_ids, actor)
    return AssignLeadsResponse(message="Leads assigned successfully", assigned=assigned)


@router.post(
    "/users",
    response_model=UserResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register User",
)
def register_user(request: UserCreateRequest, actor: Actor = Depends(get_current_actor)):
    user = user_service.register_user(
        NewUser(
            name=request.name,
            email=request.email,
            password=request.password,
            role=request.role.value if request.role else None,
        ),
        actor,
    )
    return UserResponse.from_domain(user)


@router.get("/users", response_model=List[UserWithStatsResponse], summary="List Users")
def list_users(actor: Actor = Depends(get_current_actor)):
    return [_with_stats(row) for row in user_service.list_users(actor)]


@router.get("/users/{user_id}", response_model=UserWithStatsResponse, summary="User Detail")
def get_user(user_id: UUID, actor: Actor = Depends(get_current_actor)):
    return _with_stats(user_service.get_user(user_id, actor))


@router.put("/users/{user_id}", response_model=UserResponse, summary="Update User")
def update_user(user_id: UUID, request: UserUpdateRequest, actor: Actor = Depends(get_current_actor)):
    changes = request.model_dump(exclude_unset=True)
    return UserResponse.from_domain(user_service.update_user(user_id, changes, actor))


@router.delete("/users/{user_id}", response_model=MessageResponse, summary="Delete User")
def delete_user(user_id: UUID, actor: Actor = Depends(get_current_actor)):
    """Delete a user. Their leads move to the admin making the request."""
    user_service.delete_user(user_id, actor)
    return MessageResponse(message="User deleted successfully")
