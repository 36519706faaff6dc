"""Course, enrollment and homework API endpoints."""
from flask import Blueprint, g, request
from flask_jwt_extended import jwt_required

from attendchain import db
from attendchain.models.course import Course
from attendchain.models.homework import Homework, HomeworkSubmission
from attendchain.services.course_service import CourseService
from attendchain.utils.decorators import student_required, teacher_required, user_required
from attendchain.utils.helpers import error_response, success_response

courses_bp = Blueprint('courses', __name__)


def _get_course(course_id):
    return db.session.get(Course, course_id)


@courses_bp.route('/health', methods=['GET'])
def health_check():
    """Health check endpoint."""
    return success_response(message='Course service is running')


@courses_bp.route('/', methods=['POST'])
@jwt_required()
@teacher_required
def create_course():
    """Create a course owned by the current teacher."""
    data = request.get_json(silent=True) or {}

    course, error = CourseService.create_course(g.current_user, data)
    if error:
        return error_response(error, 400)

    return success_response(data=course.to_dict(), message='Course created successfully',
                            status_code=201)


@courses_bp.route('/', methods=['GET'])
@jwt_required()
@user_required
def list_courses():
    """List all courses available for enrollment."""
    courses = CourseService.available_courses()
    return success_response(data=[course.to_dict() for course in courses])


@courses_bp.route('/mine', methods=['GET'])
@jwt_required()
@user_required
def my_courses():
    """Teacher: owned courses with students. Student: enrolled courses."""
    user = g.current_user
    if user.is_teacher():
        courses = CourseService.teacher_courses(user.id)
        data = [course.to_dict(include_students=True) for course in courses]
    else:
        data = [course.to_dict() for course in CourseService.student_courses(user.id)]

    return success_response(data=data)


@courses_bp.route('/<course_id>/enroll', methods=['POST'])
@jwt_required()
@student_required
def enroll(course_id):
    """Enroll the current student in a course."""
    course = _get_course(course_id)
    if not course:
        return error_response('Course not found', 404)

    enrollment, error = CourseService.enroll(course, g.current_user)
    if error:
        return error_response(error, 409)

    return success_response(data=enrollment.to_dict(), message='Enrolled successfully',
                            status_code=201)


# =================== HOMEWORK ===================

@courses_bp.route('/<course_id>/homework', methods=['POST'])
@jwt_required()
@teacher_required
def add_homework(course_id):
    """Add homework to a course the teacher owns."""
    course = _get_course(course_id)
    if not course:
        return error_response('Course not found', 404)

    if not course.is_owned_by(g.current_user):
        return error_response('You can only add homework to your own courses', 403)

    homework, error = CourseService.add_homework(course, g.current_user,
                                                 request.get_json(silent=True) or {})
    if error:
        return error_response(error, 400)

    return success_response(data=homework.to_dict(), message='Homework added successfully',
                            status_code=201)


@courses_bp.route('/<course_id>/homework', methods=['GET'])
@jwt_required()
@user_required
def course_homework(course_id):
    """List homework for a course, soonest due first."""
    course = _get_course(course_id)
    if not course:
        return error_response('Course not found', 404)

    user = g.current_user
    if not (course.is_owned_by(user) or course.has_student(user.id)):
        return error_response('Access denied', 403)

    return success_response(data=[hw.to_dict() for hw in CourseService.course_homework(course.id)])


@courses_bp.route('/homework/mine', methods=['GET'])
@jwt_required()
@student_required
def my_homework():
    """Homework across every course the student is enrolled in."""
    homework = CourseService.student_homework(g.current_user.id)
    return success_response(data=[hw.to_dict() for hw in homework])


@courses_bp.route('/homework/<homework_id>/submissions', methods=['POST'])
@jwt_required()
@student_required
def submit_homework(homework_id):
    """Submit homework once."""
    homework = db.session.get(Homework, homework_id)
    if not homework:
        return error_response('Homework not found', 404)

    data = request.get_json(silent=True) or {}
    submission, error = CourseService.submit_homework(homework, g.current_user,
                                                      data.get('submission_text'))
    if error:
        return error_response(error, 400)

    return success_response(data=submission.to_dict(), message='Homework submitted',
                            status_code=201)


@courses_bp.route('/homework/<homework_id>/submissions', methods=['GET'])
@jwt_required()
@teacher_required
def list_submissions(homework_id):
    """List submissions for homework the teacher owns."""
    homework = db.session.get(Homework, homework_id)
    if not homework:
        return error_response('Homework not found', 404)

    if not homework.course.is_owned_by(g.current_user):
        return error_response('Access denied', 403)

    return success_response(data=[s.to_dict() for s in homework.submissions])


@courses_bp.route('/submissions/<submission_id>/grade', methods=['PUT'])
@jwt_required()
@teacher_required
def grade_submission(submission_id):
    """Grade a submission."""
    submission = db.session.get(HomeworkSubmission, submission_id)
    if not submission:
        return error_response('Submission not found', 404)

    if not submission.homework.course.is_owned_by(g.current_user):
        return error_response('Access denied', 403)

    data = request.get_json(silent=True) or {}
    if 'grade' not in data:
        return error_response('Missing required field: grade', 400)

    submission, error = CourseService.grade_submission(submission, data['grade'],
                                                       data.get('feedback'))
    if error:
        return error_response(error, 400)

    return success_response(data=submission.to_dict(), message='Submission graded')
