from sqlalchemy import Column, Integer, String, ForeignKey, DateTime, Boolean, Text, JSON, Enum as SQLEnum
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from datetime import datetime
import enum

from ..core.database import Base
from ..services.scheduling import parse_time

class DepartmentStatus(str, enum.Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    UNDER_MAINTENANCE = "under-maintenance"
    CLOSED = "closed"

class Wing(str, enum.Enum):
    EAST = "east"
    WEST = "west"
    NORTH = "north"
    SOUTH = "south"
    CENTRAL = "central"

def generate_department_code(name: str) -> str:
    initials = "".join(word[0] for word in name.split() if word).upper()
    return f"{initials}{str(int(datetime.utcnow().timestamp() * 1000))[-4:]}"

class Department(Base):
    __tablename__ = "departments"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), unique=True, index=True, nullable=False)
    description = Column(Text, nullable=False)
    icon = Column(String(20), default="🏥")
    department_code = Column(String(20), unique=True, index=True, nullable=True)

    head_doctor_id = Column(Integer, ForeignKey("doctors.id", use_alter=True), nullable=True)

    # Contact
    phone = Column(String(30), nullable=True)
    contact_email = Column(String(255), nullable=True)
    location = Column(String(255), nullable=True)
    floor = Column(String(50), default="Ground Floor")
    wing = Column(SQLEnum(Wing), default=Wing.CENTRAL)

    # Offered services: [{"name", "description", "price", "duration", "requirements"}]
    services = Column(JSON, default=list)
    service_list = Column(JSON, default=list)
    specializations = Column(JSON, default=list)

    # Operating hours
    weekday_open = Column(String(5), default="08:00")
    weekday_close = Column(String(5), default="17:00")
    weekend_open = Column(String(5), default="09:00")
    weekend_close = Column(String(5), default="13:00")
    emergency = Column(Boolean, default=True)
    hours_notes = Column(Text, nullable=True)

    status = Column(SQLEnum(DepartmentStatus), default=DepartmentStatus.ACTIVE, index=True)
    is_active = Column(Boolean, default=True)

    # Capacity and statistics
    capacity_doctors = Column(Integer, default=0)
    capacity_patients_per_day = Column(Integer, default=50)
    capacity_beds = Column(Integer, default=0)
    monthly_patients = Column(Integer, default=0)
    success_rate = Column(String(10), default="95%")
    average_wait_time = Column(String(30), default="15 minutes")

    color_code = Column(String(10), default="#3B82F6")
    notes = Column(Text, nullable=True)

    # Timestamps
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    # Relationships
    doctors = relationship("Doctor", back_populates="department", foreign_keys="Doctor.department_id")
    head_doctor = relationship("Doctor", foreign_keys=[head_doctor_id], post_update=True)

    def prepare_for_save(self):
        """Fill generated fields and keep is_active and status consistent."""
        if not self.department_code:
            self.department_code = generate_department_code(self.name)
        else:
            self.department_code = self.department_code.strip().upper()

        if self.services and not self.service_list:
            self.service_list = [service.get("name") for service in self.services]

        if self.is_active is False and self.status == DepartmentStatus.ACTIVE:
            self.status = DepartmentStatus.INACTIVE
        elif self.is_active is True and self.status == DepartmentStatus.INACTIVE:
            self.status = DepartmentStatus.ACTIVE

    def add_service(self, service: dict):
        self.services = list(self.services or []) + [service]
        names = list(self.service_list or [])
        if service.get("name") not in names:
            names.append(service.get("name"))
        self.service_list = names

    @property
    def current_status(self) -> str:
        if not self.is_active:
            return "Closed"
        if self.status == DepartmentStatus.UNDER_MAINTENANCE:
            return "Under Maintenance"
        if self.status == DepartmentStatus.INACTIVE:
            return "Inactive"
        return "Active"

    @property
    def formatted_hours(self) -> str:
        weekdays = f"Weekdays: {self.weekday_open} - {self.weekday_close}"
        weekends = f"Weekends: {self.weekend_open} - {self.weekend_close}"
        emergency = " | 24/7 Emergency" if self.emergency else ""
        return f"{weekdays} | {weekends}{emergency}"

    def is_open_now(self, now: datetime) -> bool:
        if not self.is_active or self.status != DepartmentStatus.ACTIVE:
            return False
        if self.emergency:
            return True

        current = now.hour * 60 + now.minute
        if now.weekday() >= 5:
            opens, closes = self.weekend_open, self.weekend_close
        else:
            opens, closes = self.weekday_open, self.weekday_close
        if not opens or not closes:
            return False
        return parse_time(opens) <= current <= parse_time(closes)

    def __repr__(self):
        return f"<Department(id={self.id}, name='{self.name}', code='{self.department_code}')>"
