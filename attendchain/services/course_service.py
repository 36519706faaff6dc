"""Course, enrollment and homework management service."""
import logging
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Dict, List, Optional, Tuple

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from attendchain import db
from attendchain.models.course import Course, CourseStudent
from attendchain.models.homework import Homework, HomeworkSubmission
from attendchain.models.user import User
from attendchain.utils.validators import Validator

logger = logging.getLogger(__name__)


class CourseService:
    """Service for managing courses and their homework."""

    # =================== COURSES ===================

    @staticmethod
    def create_course(teacher: User, data: Dict) -> Tuple[Optional[Course], Optional[str]]:
        check = Validator.validate_required_fields(data, ['name', 'code'])
        if not check['is_valid']:
            return None, check['errors'][0]

        name_check = Validator.validate_name(data['name'])
        if not name_check['is_valid']:
            return None, name_check['errors'][0]

        course = Course(
            name=data['name'].strip(),
            code=data['code'].strip().upper(),
            description=data.get('description'),
            schedule=data.get('schedule'),
            teacher_id=teacher.id
        )
        try:
            course.save()
        except SQLAlchemyError:
            db.session.rollback()
            logger.error('Failed to create course', exc_info=True)
            return None, 'Could not create course'

        logger.info('Teacher %s created course %s', teacher.id, course.code)
        return course, None

    @staticmethod
    def teacher_courses(teacher_id: str) -> List[Course]:
        return Course.query.filter_by(teacher_id=teacher_id).order_by(Course.created_at.desc()).all()

    @staticmethod
    def available_courses() -> List[Course]:
        return Course.query.order_by(Course.name).all()

    @staticmethod
    def student_courses(student_id: str) -> List[Course]:
        return (
            Course.query
            .join(CourseStudent, CourseStudent.course_id == Course.id)
            .filter(CourseStudent.student_id == student_id)
            .order_by(Course.name)
            .all()
        )

    @staticmethod
    def enroll(course: Course, student: User) -> Tuple[Optional[CourseStudent], Optional[str]]:
        if course.has_student(student.id):
            return None, 'Already enrolled in this course'

        enrollment = CourseStudent(course_id=course.id, student_id=student.id)
        try:
            enrollment.save()
        except IntegrityError:
            db.session.rollback()
            return None, 'Already enrolled in this course'
        except SQLAlchemyError:
            db.session.rollback()
            logger.error('Failed to enroll student %s', student.id, exc_info=True)
            return None, 'Could not enroll in course'

        return enrollment, None

    # =================== HOMEWORK ===================

    @staticmethod
    def add_homework(course: Course, teacher: User, data: Dict) -> Tuple[Optional[Homework], Optional[str]]:
        check = Validator.validate_required_fields(data, ['title', 'due_date'])
        if not check['is_valid']:
            return None, check['errors'][0]

        try:
            due_date = datetime.fromisoformat(str(data['due_date']))
        except ValueError:
            return None, 'Invalid due_date format'

        homework = Homework(
            title=data['title'].strip(),
            description=data.get('description'),
            due_date=due_date.replace(tzinfo=None),
            course_id=course.id,
            teacher_id=teacher.id
        )
        try:
            homework.save()
        except SQLAlchemyError:
            db.session.rollback()
            logger.error('Failed to add homework to course %s', course.id, exc_info=True)
            return None, 'Could not add homework'

        return homework, None

    @staticmethod
    def course_homework(course_id: str) -> List[Homework]:
        return Homework.query.filter_by(course_id=course_id).order_by(Homework.due_date.asc()).all()

    @staticmethod
    def student_homework(student_id: str) -> List[Homework]:
        course_ids = [
            enrollment.course_id
            for enrollment in CourseStudent.query.filter_by(student_id=student_id).all()
        ]
        if not course_ids:
            return []
        return (
            Homework.query
            .filter(Homework.course_id.in_(course_ids))
            .order_by(Homework.due_date.asc())
            .all()
        )

    @staticmethod
    def submit_homework(homework: Homework, student: User,
                        submission_text: str) -> Tuple[Optional[HomeworkSubmission], Optional[str]]:
        if not homework.course.has_student(student.id):
            return None, 'You are not enrolled in this course'

        existing = HomeworkSubmission.query.filter_by(
            homework_id=homework.id, student_id=student.id
        ).first()
        if existing:
            return None, 'Homework already submitted'

        submission = HomeworkSubmission(
            homework_id=homework.id,
            student_id=student.id,
            submission_text=submission_text
        )
        try:
            submission.save()
        except IntegrityError:
            db.session.rollback()
            return None, 'Homework already submitted'
        except SQLAlchemyError:
            db.session.rollback()
            return None, 'Could not submit homework'

        return submission, None

    @staticmethod
    def grade_submission(submission: HomeworkSubmission, grade,
                         feedback: str = None) -> Tuple[Optional[HomeworkSubmission], Optional[str]]:
        try:
            value = Decimal(str(grade))
        except (InvalidOperation, ValueError):
            return None, 'Grade must be a number'
        if not value.is_finite():
            return None, 'Grade must be a number'
        if value < 0 or value > 100:
            return None, 'Grade must be between 0 and 100'

        try:
            submission.update(grade=value, feedback=feedback)
        except SQLAlchemyError:
            db.session.rollback()
            return None, 'Could not save grade'

        return submission, None
