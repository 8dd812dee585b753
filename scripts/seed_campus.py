import sys
import os

# Add the project root to the Python path
project_root = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
sys.path.insert(0, project_root)

import asyncio
from datetime import datetime, timedelta
from sqlalchemy import select
from campushub.constants.constants import EventCategory, UserRole, VenueType
from campushub.core.database import aget_db, session_manager
from campushub.core.security import create_jwt_token
from campushub.models.user import User
from campushub.services.ApprovalWorkflow import ApprovalWorkflow
from campushub.services.InventoryService import InventoryService

SEED_USERS = [
    ("hod@campus.edu", "Asha", "Rao", UserRole.hod, None, "Computer Science"),
    ("teacher@campus.edu", "Vikram", "Shah", UserRole.teacher, None, "Computer Science"),
    ("registrar@campus.edu", "Meera", "Iyer", UserRole.registrar, None, None),
    ("finance@campus.edu", "Rohan", "Das", UserRole.financial_head, None, None),
    ("tech@campus.edu", "Kiran", "Nair", UserRole.technical_staff, None, None),
    ("clubhead@campus.edu", "Neha", "Joshi", UserRole.club_head, "Second Year", "Computer Science"),
    ("student@campus.edu", "Arjun", "Patel", UserRole.student, "First Year", "Computer Science"),
]

SEED_VENUES = [
    {"name": "Main Auditorium", "venue_type": VenueType.auditorium, "capacity": 500, "location": "Block A",
     "amenities": ["projector", "sound system", "stage"]},
    {"name": "Seminar Hall 1", "venue_type": VenueType.hall, "capacity": 120, "location": "Block B",
     "amenities": ["projector"]},
    {"name": "Sports Ground", "venue_type": VenueType.ground, "capacity": 2000, "location": "North Campus",
     "amenities": []},
]

SEED_EQUIPMENT = [
    {"name": "Wireless Microphone", "equipment_type": "audio", "quantity": 10},
    {"name": "Projector", "equipment_type": "visual", "quantity": 4},
    {"name": "Stage Light", "equipment_type": "lighting", "quantity": 12},
]


async def seed_campus():
    """Create demo users, venues, equipment and one approved event."""
    await session_manager.init()
    async for db in aget_db():
        users = {}
        for email, first, last, role, division, department in SEED_USERS:
            existing = (await db.execute(select(User).where(User.email == email))).scalar_one_or_none()
            if existing:
                users[role] = existing
                continue
            user = User(email=email, first_name=first, last_name=last, role=role,
                        division=division, department=department)
            db.add(user)
            users[role] = user
        await db.commit()
        print(f"✅ {len(users)} users ready")

        inventory = InventoryService(db)
        if not await inventory.list_venues():
            for venue in SEED_VENUES:
                await inventory.create_venue(dict(venue), users[UserRole.technical_staff])
            print(f"✅ {len(SEED_VENUES)} venues created")
        if not await inventory.list_equipment():
            for item in SEED_EQUIPMENT:
                await inventory.create_equipment(dict(item), users[UserRole.technical_staff])
            print(f"✅ {len(SEED_EQUIPMENT)} equipment pools created")

        workflow = ApprovalWorkflow(db)
        if not await workflow.list_events():
            start = (datetime.utcnow() + timedelta(days=7)).replace(hour=14, minute=0, second=0, microsecond=0)
            event = await workflow.create_event({
                "title": "Tech Talk: Distributed Systems",
                "category": EventCategory.technical,
                "start_date": start,
                "end_date": start + timedelta(hours=2),
                "location": "Main Auditorium",
                "max_attendees": 300,
            }, users[UserRole.hod])
            print(f"✅ Event '{event.title}' created ({event.status.value})")

        print("\n🔑 Bearer tokens for local testing:")
        for role, user in users.items():
            print(f"  {role.value:16} {create_jwt_token({'sub': user.user_id})}")

    await session_manager.close()


if __name__ == "__main__":
    asyncio.run(seed_campus())
