from sqlalchemy import Column, Integer, Boolean, CheckConstraint, Date, DateTime, ForeignKey, JSON, Text, Time, Index, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from core.database import Base
from enum import Enum


class CheckinStatus(str, Enum):
    PENDING = "pending"
    SNOOZED = "snoozed"
    ESCALATED_NO_RESPONSE = "escalated_no_response"
    # Set by the response endpoint, never by the jobs.
    COMPLETED = "completed"


class NotificationType(str, Enum):
    INITIAL_CHECKIN = "initial_checkin"
    ADMIN_NO_RESPONSE = "admin_no_response"


class DeliveryStatus(str, Enum):
    SENT = "sent"
    FAILED = "failed"


ALERT_TYPE_NO_RESPONSE = "no_response_after_snooze"
ALERT_PRIORITY_HIGH = "high"
ALERT_STATUS_PENDING = "pending"


# --- COLLABORATOR TABLES ---
# Owned by the user/device management surface; the jobs only read them
# (and deactivate tokens the push service reports as unregistered).

class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    email = Column(Text, unique=True, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    profile = relationship("UserProfile", back_populates="user", uselist=False)
    devices = relationship("UserDevice", back_populates="user")


class UserProfile(Base):
    __tablename__ = "user_profiles"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), unique=True, nullable=False)
    full_name = Column(Text, nullable=True)

    user = relationship("User", back_populates="profile")


class UserDevice(Base):
    __tablename__ = "user_devices"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    device_token = Column(Text, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=True)

    user = relationship("User", back_populates="devices")

    __table_args__ = (
        Index("ix_user_devices_user_active", "user_id", "is_active"),
    )


# --- CHECK-IN LIFECYCLE ---

class SafetyTiming(Base):
    """Recurring schedule: fires at time_of_day on each of active_days."""
    __tablename__ = "safety_timings"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    org_id = Column(Integer, nullable=False)
    label = Column(Text, nullable=False)
    time_of_day = Column("time", Time, nullable=False)
    # Lowercase weekday names, e.g. ["monday", "friday"]. Legacy rows hold a JSON string.
    active_days = Column(JSON, nullable=False, default=list)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        Index("ix_safety_timings_active_time", "is_active", "time"),
    )


class SafetyCheckin(Base):
    """One dated occurrence of a timing."""
    __tablename__ = "safety_checkins"

    id = Column(Integer, primary_key=True, autoincrement=True)
    timing_id = Column(Integer, ForeignKey("safety_timings.id"), nullable=False)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    org_id = Column(Integer, nullable=False)
    checkin_date = Column(Date, nullable=False)
    scheduled_time = Column(Time, nullable=False)
    status = Column(Text, default=CheckinStatus.PENDING.value, nullable=False)
    snooze_count = Column(Integer, default=0, nullable=False)
    last_snooze_at = Column(DateTime(timezone=True), nullable=True)
    responded_at = Column(DateTime(timezone=True), nullable=True)
    escalated_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=True)

    snooze_logs = relationship("SafetySnoozeLog", back_populates="checkin", order_by="SafetySnoozeLog.snooze_number")
    alert = relationship("SafetyAlert", back_populates="checkin", uselist=False)

    __table_args__ = (
        # Two overlapping evaluator runs must not both create today's instance.
        UniqueConstraint("timing_id", "checkin_date", name="uq_safety_checkin_timing_date"),
        CheckConstraint("snooze_count >= 0", name="ck_safety_checkin_snooze_count_non_negative"),
        Index("ix_safety_checkins_status_snooze", "status", "last_snooze_at"),
    )


class SafetySnoozeLog(Base):
    """Append-only record of one reminder attempt."""
    __tablename__ = "safety_snooze_logs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    checkin_id = Column(Integer, ForeignKey("safety_checkins.id"), nullable=False)
    snooze_number = Column(Integer, nullable=False)  # 1-based
    sent_at = Column(DateTime(timezone=True), nullable=False)
    notification_delivered = Column(Boolean, nullable=False)

    checkin = relationship("SafetyCheckin", back_populates="snooze_logs")

    __table_args__ = (
        UniqueConstraint("checkin_id", "snooze_number", name="uq_safety_snooze_log_checkin_number"),
    )


class SafetyAlert(Base):
    """Administrator-facing escalation record."""
    __tablename__ = "safety_alerts"

    id = Column(Integer, primary_key=True, autoincrement=True)
    checkin_id = Column(Integer, ForeignKey("safety_checkins.id"), nullable=False)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    org_id = Column(Integer, nullable=False)
    alert_type = Column(Text, nullable=False)
    priority = Column(Text, nullable=False)
    alert_status = Column(Text, default=ALERT_STATUS_PENDING, nullable=False)
    alert_sent_at = Column(DateTime(timezone=True), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    checkin = relationship("SafetyCheckin", back_populates="alert")

    __table_args__ = (
        UniqueConstraint("checkin_id", "alert_type", name="uq_safety_alert_checkin_type"),
        Index("ix_safety_alerts_org_status", "org_id", "alert_status"),
    )


class NotificationLog(Base):
    """Append-only audit record of one delivery attempt."""
    __tablename__ = "notification_logs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    checkin_id = Column(Integer, ForeignKey("safety_checkins.id"), nullable=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    notification_type = Column(Text, nullable=False)
    delivery_status = Column(Text, nullable=False)  # 'sent' | 'failed'
    error_message = Column(Text, nullable=True)
    sent_at = Column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        Index("ix_notification_logs_checkin_id", "checkin_id"),
    )
