from typing import Dict

from fastapi import APIRouter, Depends

from campus.auth.models import AuthenticatedUser
from campus.auth.rbac import any_role, require_access
from campus.auth.session import get_profile
from campus.db.user import update_user
from campus.models import RoleName, UpdateStudentProfileRequest, UserResponse

router = APIRouter()

require_student = require_access(any_role(RoleName.STUDENT.value))


@router.get("/profile", response_model=UserResponse)
async def get_student_profile(
    current_user: AuthenticatedUser = Depends(require_student),
) -> UserResponse:
    return await get_profile(current_user)


@router.patch("/profile", response_model=UserResponse)
async def update_student_profile(
    request: UpdateStudentProfileRequest,
    current_user: AuthenticatedUser = Depends(require_student),
) -> UserResponse:
    updates = request.model_dump(exclude_none=True)
    if updates:
        await update_user(current_user.id, **updates)

    return await get_profile(current_user)


@router.get("/dashboard")
async def get_dashboard(
    current_user: AuthenticatedUser = Depends(require_student),
) -> Dict:
    return {
        "message": f"Welcome to your dashboard, {current_user.first_name}!",
        "data": {"courses": [], "assignments": [], "grades": []},
    }
