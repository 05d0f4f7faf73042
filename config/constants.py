"""
Portal constants
Status strings, roles and weekday numbering shared by models, services and the core
"""

# User Roles
class UserRole:
    SYSTEM_ADMIN = 'SYSTEM_ADMIN'
    TEACHER = 'TEACHER'
    STUDENT = 'STUDENT'
    
    ALL = [SYSTEM_ADMIN, TEACHER, STUDENT]
    
    # Roles allowed to manage schedules and take attendance
    STAFF = [SYSTEM_ADMIN, TEACHER]


# Attendance Status
class AttendanceStatus:
    PRESENT = 'PRESENT'
    ABSENT = 'ABSENT'
    # Fill value for a scheduled date without a stored record, never persisted
    UNMARKED = 'UNMARKED'
    
    PERSISTED = [PRESENT, ABSENT]
    ALL = [PRESENT, ABSENT, UNMARKED]


# Schedule Status
class ScheduleStatus:
    SCHEDULED = 'SCHEDULED'
    COMPLETED = 'COMPLETED'
    CANCELLED = 'CANCELLED'
    
    ALL = [SCHEDULED, COMPLETED, CANCELLED]


# Enrollment Status
class EnrollmentStatus:
    ENROLLED = 'ENROLLED'
    DROPPED = 'DROPPED'
    COMPLETED = 'COMPLETED'
    
    ALL = [ENROLLED, DROPPED, COMPLETED]


# Class Status
class ClassStatus:
    ACTIVE = 'ACTIVE'
    ARCHIVED = 'ARCHIVED'
    
    ALL = [ACTIVE, ARCHIVED]


# Days of Week
class DayOfWeek:
    SUNDAY = 0
    MONDAY = 1
    TUESDAY = 2
    WEDNESDAY = 3
    THURSDAY = 4
    FRIDAY = 5
    SATURDAY = 6
    
    ALL = [SUNDAY, MONDAY, TUESDAY, WEDNESDAY, THURSDAY, FRIDAY, SATURDAY]
    
    NAMES = {
        SUNDAY: 'Sunday',
        MONDAY: 'Monday',
        TUESDAY: 'Tuesday',
        WEDNESDAY: 'Wednesday',
        THURSDAY: 'Thursday',
        FRIDAY: 'Friday',
        SATURDAY: 'Saturday'
    }
    
    @staticmethod
    def of(value):
        """Day number of a date (0=Sunday), Python's weekday() starts at Monday"""
        return (value.weekday() + 1) % 7
