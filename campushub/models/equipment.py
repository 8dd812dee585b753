"""Equipment inventory (fungible unit pools) and equipment bookings."""

from sqlalchemy import JSON, CheckConstraint, Column, DateTime, Enum, ForeignKey, Integer, String, Text

from campushub.constants.constants import BookingStatus, MaintenanceStatus
from campushub.models.base import Base, TimestampMixin, new_id


class Equipment(Base, TimestampMixin):
    __tablename__ = "equipment"
    __table_args__ = (
        CheckConstraint("quantity >= 0", name="ck_equipment_quantity"),
        CheckConstraint(
            "available_quantity >= 0 AND available_quantity <= quantity",
            name="ck_equipment_available_quantity",
        ),
    )

    equipment_id = Column(String, primary_key=True, index=True, default=new_id)
    name = Column(String, nullable=False)
    equipment_type = Column(String, nullable=False)  # audio, visual, lighting, decoration, ...
    quantity = Column(Integer, nullable=False)  # total units owned
    available_quantity = Column(Integer, nullable=False)  # units not withdrawn (maintenance etc.)
    specifications = Column(JSON, nullable=True)
    maintenance_status = Column(Enum(MaintenanceStatus), nullable=False, default=MaintenanceStatus.good)
    created_by = Column(String, ForeignKey("users.user_id"), nullable=True)

    def __repr__(self):
        return f"<Equipment {self.name} {self.available_quantity}/{self.quantity}>"


class EquipmentBooking(Base, TimestampMixin):
    """Reservation of `quantity` units of one equipment pool for [start_time, end_time)."""

    __tablename__ = "equipment_bookings"
    __table_args__ = (
        CheckConstraint("start_time < end_time", name="ck_equipment_bookings_window"),
        CheckConstraint("quantity > 0", name="ck_equipment_bookings_quantity"),
    )

    booking_id = Column(String, primary_key=True, index=True, default=new_id)
    equipment_id = Column(String, ForeignKey("equipment.equipment_id"), nullable=False, index=True)
    event_id = Column(String, ForeignKey("events.event_id"), nullable=True, index=True)
    user_id = Column(String, ForeignKey("users.user_id"), nullable=False)
    quantity = Column(Integer, nullable=False)
    start_time = Column(DateTime, nullable=False)
    end_time = Column(DateTime, nullable=False, index=True)
    status = Column(Enum(BookingStatus), nullable=False, default=BookingStatus.pending, index=True)
    notes = Column(Text, nullable=True)

    def __repr__(self):
        return f"<EquipmentBooking {self.equipment_id} x{self.quantity} {self.status.value}>"
