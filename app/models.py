# app/models.py
# Importing this module registers every ORM model on Base.metadata
# (create_all, Alembic autogenerate).
from app.db.base import Base
from app.modules.users.models import AuditLog, FamilyMember, User, UserRole
from app.modules.providers.models import Provider, ProviderStatus, Service
from app.modules.appointments.models import Appointment, AppointmentType

__all__ = [
    "Base",
    "AuditLog",
    "FamilyMember",
    "User",
    "UserRole",
    "Provider",
    "ProviderStatus",
    "Service",
    "Appointment",
    "AppointmentType",
]
