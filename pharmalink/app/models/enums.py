"""
User roles enumeration.

Defines the role types for the PharmaLink dispatch system.
"""

import enum


class UserRole(str, enum.Enum):
    """
    User role enumeration.

    Roles:
        ADMIN: System-level access, facility dashboards
        DOCTOR: Issues digital prescriptions
        PATIENT: Receives and pays for medication
        PHARMACIST: Accepts and dispatches orders for their pharmacy
        DISPATCHER: Assigns drivers for their pharmacy
        DRIVER: Carries the delivery and confirms hand-over
    """
    ADMIN = "ADMIN"
    DOCTOR = "DOCTOR"
    PATIENT = "PATIENT"
    PHARMACIST = "PHARMACIST"
    DISPATCHER = "DISPATCHER"
    DRIVER = "DRIVER"


PHARMACY_ROLES = (UserRole.PHARMACIST, UserRole.DISPATCHER)
