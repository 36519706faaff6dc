"""Models package with all models."""
from .base import BaseModel
from .user import User, UserRole
from .course import Course, CourseStudent
from .attendance_code import AttendanceCode
from .attendance import AttendanceRecord
from .homework import Homework, HomeworkSubmission

__all__ = [
    'BaseModel', 'User', 'UserRole',
    'Course', 'CourseStudent',
    'AttendanceCode', 'AttendanceRecord',
    'Homework', 'HomeworkSubmission'
]
