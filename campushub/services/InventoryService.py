"""
Inventory Service
Venue and equipment records managed by technical staff.
"""

import logging
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from campushub.constants.constants import Capability, MaintenanceStatus, VenueType
from campushub.core.exceptions import ConflictError, NotFoundError, ValidationError
from campushub.models.equipment import Equipment
from campushub.models.user import User
from campushub.models.venue import Venue
from campushub.utils.check_capability import ensure_capability

logger = logging.getLogger(__name__)

INVENTORY_DENIED = "Only technical staff can manage venues and equipment"


class InventoryService:

    def __init__(self, db: AsyncSession):
        self.db = db

    # ==================== VENUES ====================

    async def create_venue(self, data: dict, user: User) -> Venue:
        ensure_capability(user, Capability.inventory_manage, INVENTORY_DENIED)
        if not data.get("capacity") or data["capacity"] <= 0:
            raise ValidationError("Venue capacity must be a positive number")

        venue = Venue(**data, created_by=user.user_id)
        self.db.add(venue)
        try:
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            raise ConflictError(f"A venue named '{data.get('name')}' already exists")

        logger.info(f"Venue created: {venue.name} by {user.user_id}")
        return venue

    async def get_venue(self, venue_id: str) -> Venue:
        venue = (await self.db.execute(
            select(Venue).where(Venue.venue_id == venue_id)
        )).scalar_one_or_none()
        if not venue:
            raise NotFoundError("Venue not found")
        return venue

    async def list_venues(
        self,
        venue_type: Optional[VenueType] = None,
        min_capacity: Optional[int] = None,
        available_only: bool = False,
    ) -> List[Venue]:
        query = select(Venue).order_by(Venue.name)
        if venue_type:
            query = query.where(Venue.venue_type == venue_type)
        if min_capacity:
            query = query.where(Venue.capacity >= min_capacity)
        if available_only:
            query = query.where(Venue.is_available.is_(True))
        return list((await self.db.execute(query)).scalars().all())

    async def update_venue(self, venue_id: str, changes: dict, user: User) -> Venue:
        ensure_capability(user, Capability.inventory_manage, INVENTORY_DENIED)
        venue = await self.get_venue(venue_id)
        if "capacity" in changes and (changes["capacity"] is None or changes["capacity"] <= 0):
            raise ValidationError("Venue capacity must be a positive number")

        for key, value in changes.items():
            setattr(venue, key, value)
        try:
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            raise ConflictError(f"A venue named '{changes.get('name')}' already exists")

        logger.info(f"Venue updated: {venue.name} ({', '.join(changes)})")
        return venue

    async def set_venue_availability(self, venue_id: str, is_available: bool, user: User) -> Venue:
        """Manual open/close switch. Existing bookings are left in place."""
        return await self.update_venue(venue_id, {"is_available": is_available}, user)

    # ==================== EQUIPMENT ====================

    async def create_equipment(self, data: dict, user: User) -> Equipment:
        ensure_capability(user, Capability.inventory_manage, INVENTORY_DENIED)
        data = dict(data)
        quantity = data.get("quantity")
        if quantity is None or quantity < 0:
            raise ValidationError("Equipment quantity cannot be negative")

        available = data.pop("available_quantity", None)
        available = quantity if available is None else available
        self._check_pool(quantity, available)

        equipment = Equipment(**data, available_quantity=available, created_by=user.user_id)
        self.db.add(equipment)
        await self.db.commit()

        logger.info(f"Equipment created: {equipment.name} x{equipment.quantity} by {user.user_id}")
        return equipment

    async def get_equipment(self, equipment_id: str) -> Equipment:
        equipment = (await self.db.execute(
            select(Equipment).where(Equipment.equipment_id == equipment_id)
        )).scalar_one_or_none()
        if not equipment:
            raise NotFoundError("Equipment not found")
        return equipment

    async def list_equipment(
        self,
        equipment_type: Optional[str] = None,
        maintenance_status: Optional[MaintenanceStatus] = None,
    ) -> List[Equipment]:
        query = select(Equipment).order_by(Equipment.name)
        if equipment_type:
            query = query.where(Equipment.equipment_type == equipment_type)
        if maintenance_status:
            query = query.where(Equipment.maintenance_status == maintenance_status)
        return list((await self.db.execute(query)).scalars().all())

    async def update_equipment(self, equipment_id: str, changes: dict, user: User) -> Equipment:
        """Edit a pool. Withdrawing units only lowers `available_quantity`; bookings are untouched."""
        ensure_capability(user, Capability.inventory_manage, INVENTORY_DENIED)
        equipment = (await self.db.execute(
            select(Equipment).where(Equipment.equipment_id == equipment_id).with_for_update()
        )).scalar_one_or_none()
        if not equipment:
            raise NotFoundError("Equipment not found")

        quantity = changes.get("quantity", equipment.quantity)
        available = changes.get("available_quantity", equipment.available_quantity)
        if "quantity" in changes and "available_quantity" not in changes:
            available = min(available, quantity)
        self._check_pool(quantity, available)

        for key, value in changes.items():
            setattr(equipment, key, value)
        equipment.available_quantity = available
        await self.db.commit()

        logger.info(f"Equipment updated: {equipment.name} {equipment.available_quantity}/{equipment.quantity}")
        return equipment

    @staticmethod
    def _check_pool(quantity: Optional[int], available: Optional[int]) -> None:
        if quantity is None or quantity < 0:
            raise ValidationError("Equipment quantity cannot be negative")
        if available is None or available < 0 or available > quantity:
            raise ValidationError("Available quantity must be between 0 and the total quantity")
