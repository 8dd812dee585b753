from typing import List, Optional
from pydantic import BaseModel

from campushub.constants.constants import Capability, UserRole


class UserResponse(BaseModel):
    user_id: str
    email: str
    first_name: str
    last_name: str
    role: UserRole
    division: Optional[str] = None
    department: Optional[str] = None
    club_id: Optional[str] = None
    capabilities: List[Capability] = []

    class Config:
        from_attributes = True
