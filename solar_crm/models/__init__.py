"""ORM model package."""

from solar_crm.models.entities import (
    Customer,
    LeadSource,
    PaymentStatus,
    Project,
    ProjectSegment,
    ProjectStatus,
    User,
    UserRole,
)

__all__ = [
    "Customer",
    "LeadSource",
    "PaymentStatus",
    "Project",
    "ProjectSegment",
    "ProjectStatus",
    "User",
    "UserRole",
]
