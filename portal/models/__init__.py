"""
Models package initialization
Exports all models for easy importing
"""

# Import models in dependency order to avoid circular imports
from portal.models.user import User
from portal.models.class_model import PortalClass, Enrollment
from portal.models.schedule import Schedule
from portal.models.attendance import Attendance

# Export all models
__all__ = [
    'User',
    'PortalClass',
    'Enrollment',
    'Schedule',
    'Attendance'
]
