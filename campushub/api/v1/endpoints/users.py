from fastapi import APIRouter, Depends

from campushub.core.security import get_current_user
from campushub.models.user import User
from campushub.schemas.users import UserResponse
from campushub.utils.check_capability import capabilities_for

router = APIRouter(prefix="/users", tags=["users"])


@router.get("/me", response_model=UserResponse)
async def get_me(current_user: User = Depends(get_current_user)):
    """Current user with the capabilities granted by their role."""
    return {
        "user_id": current_user.user_id,
        "email": current_user.email,
        "first_name": current_user.first_name,
        "last_name": current_user.last_name,
        "role": current_user.role,
        "division": current_user.division,
        "department": current_user.department,
        "club_id": current_user.club_id,
        "capabilities": capabilities_for(current_user.role),
    }
