"""User model for CampusHub - identity and eligibility attributes only."""

from sqlalchemy import Column, String, Boolean, Enum

from campushub.constants.constants import UserRole
from campushub.models.base import Base, TimestampMixin, new_id


class User(Base, TimestampMixin):
    __tablename__ = "users"
    user_id = Column(String, primary_key=True, index=True, default=new_id)
    email = Column(String, unique=True, index=True, nullable=False)
    first_name = Column(String, nullable=False)
    last_name = Column(String, nullable=False)
    role = Column(Enum(UserRole), nullable=False)
    division = Column(String, nullable=True)  # For students: "First Year", "Second Year", ...
    department = Column(String, nullable=True)
    club_id = Column(String, nullable=True)
    is_active = Column(Boolean, default=True)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    def __repr__(self):
        return f"<User {self.email} ({self.role.value if self.role else None})>"
