from __future__ import annotations

from datetime import datetime
from enum import StrEnum
from typing import Optional

from sqlalchemy import CheckConstraint, Enum, Float, ForeignKey, Index, UniqueConstraint
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship
from sqlalchemy.sql.sqltypes import BigInteger, DateTime, Integer, String


class Base(DeclarativeBase):
    pass


class SlotStatus(StrEnum):
    AVAILABLE = "available"
    BOOKED = "booked"


class BookingStatus(StrEnum):
    BOOKED = "booked"
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class PaymentStatus(StrEnum):
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"


ACTIVE_BOOKING_STATUSES = (BookingStatus.BOOKED, BookingStatus.ACTIVE)


def _str_enum(enum_cls: type[StrEnum]) -> Enum:
    return Enum(
        enum_cls,
        values_callable=lambda cls: [e.value for e in cls],
        native_enum=False,
    )


class User(Base):
    __tablename__ = "users"
    __table_args__ = (UniqueConstraint("email", name="uq_users_email"),)

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    auth_provider: Mapped[str] = mapped_column(String(50), nullable=False, default="external")
    auth_provider_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)


class Area(Base):
    __tablename__ = "areas"

    area_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    area_name: Mapped[str] = mapped_column(String(255), nullable=False)
    latitude: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    longitude: Mapped[Optional[float]] = mapped_column(Float, nullable=True)

    slots: Mapped[list["ParkingSlot"]] = relationship(back_populates="area")


class ParkingSlot(Base):
    __tablename__ = "parking_slots"
    __table_args__ = (Index("idx_slots_area_status", "area_id", "status"),)

    slot_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    area_id: Mapped[str] = mapped_column(ForeignKey("areas.area_id"), nullable=False)
    status: Mapped[SlotStatus] = mapped_column(
        _str_enum(SlotStatus),
        nullable=False,
        default=SlotStatus.AVAILABLE,
    )

    area: Mapped["Area"] = relationship(back_populates="slots")


class Vehicle(Base):
    __tablename__ = "vehicles"

    vehicle_number: Mapped[str] = mapped_column(String(32), primary_key=True)
    customer_name: Mapped[str] = mapped_column(String(255), nullable=False)
    contact_number: Mapped[str] = mapped_column(String(50), nullable=False)


class Booking(Base):
    __tablename__ = "bookings"
    __table_args__ = (
        CheckConstraint("exit_time IS NULL OR entry_time < exit_time", name="chk_bookings_time"),
        CheckConstraint("amount_paid IS NULL OR amount_paid >= 0", name="chk_bookings_amount"),
        Index("idx_bookings_slot", "slot_id"),
        Index("idx_bookings_user", "user_id"),
    )

    booking_id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    user_id: Mapped[Optional[int]] = mapped_column(BigInteger, nullable=True)
    vehicle_number: Mapped[str] = mapped_column(ForeignKey("vehicles.vehicle_number"), nullable=False)
    slot_id: Mapped[str] = mapped_column(ForeignKey("parking_slots.slot_id"), nullable=False)
    entry_time: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)
    exit_time: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=False), nullable=True)
    status: Mapped[BookingStatus] = mapped_column(
        _str_enum(BookingStatus),
        nullable=False,
        default=BookingStatus.BOOKED,
    )
    payment_status: Mapped[PaymentStatus] = mapped_column(
        _str_enum(PaymentStatus),
        nullable=False,
        default=PaymentStatus.PENDING,
    )
    amount_paid: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)


class PastBooking(Base):
    __tablename__ = "past_bookings"
    __table_args__ = (Index("idx_past_bookings_user", "user_id"),)

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    booking_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    user_id: Mapped[Optional[int]] = mapped_column(BigInteger, nullable=True)
    vehicle_number: Mapped[str] = mapped_column(String(32), nullable=False)
    slot_id: Mapped[str] = mapped_column(String(64), nullable=False)
    area_name: Mapped[str] = mapped_column(String(255), nullable=False)
    entry_time: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)
    exit_time: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=False), nullable=True)
    status: Mapped[BookingStatus] = mapped_column(_str_enum(BookingStatus), nullable=False)
    amount_paid: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    payment_status: Mapped[PaymentStatus] = mapped_column(_str_enum(PaymentStatus), nullable=False)
    customer_name: Mapped[str] = mapped_column(String(255), nullable=False)
    contact_number: Mapped[str] = mapped_column(String(50), nullable=False)
    cancelled_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=False), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)
