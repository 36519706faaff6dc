"""Course and enrollment models."""
from attendchain import db
from attendchain.models.base import BaseModel
from attendchain.models.user import UserRole


class Course(BaseModel):
    """Course owned by a teacher."""

    __tablename__ = 'courses'

    name = db.Column(db.String(255), nullable=False)
    code = db.Column(db.String(50), nullable=False, index=True)
    description = db.Column(db.Text, nullable=True)
    schedule = db.Column(db.String(255), nullable=True)
    teacher_id = db.Column(db.String(36), db.ForeignKey('users.id'), nullable=False, index=True)

    # Relationships
    teacher = db.relationship('User', backref=db.backref('courses', lazy='dynamic'))
    enrollments = db.relationship('CourseStudent', backref='course', lazy='dynamic',
                                  cascade='all, delete-orphan')

    def is_owned_by(self, user) -> bool:
        return user is not None and (self.teacher_id == user.id or user.role == UserRole.ADMIN)

    def has_student(self, student_id: str) -> bool:
        return self.enrollments.filter_by(student_id=student_id).first() is not None

    def to_dict(self, include_students: bool = False):
        """Convert to dictionary."""
        data = super().to_dict()
        data['teacher_name'] = self.teacher.full_name if self.teacher else None
        data['student_count'] = self.enrollments.count()
        if include_students:
            data['students'] = [
                {
                    'id': enrollment.student.id,
                    'first_name': enrollment.student.first_name,
                    'last_name': enrollment.student.last_name,
                    'roll_number': enrollment.student.roll_number
                }
                for enrollment in self.enrollments
            ]
        return data

    def __repr__(self):
        return f'<Course {self.code}>'


class CourseStudent(BaseModel):
    """Enrollment of a student in a course."""

    __tablename__ = 'course_students'
    __table_args__ = (
        db.UniqueConstraint('course_id', 'student_id', name='uq_course_student'),
    )

    course_id = db.Column(db.String(36), db.ForeignKey('courses.id'), nullable=False, index=True)
    student_id = db.Column(db.String(36), db.ForeignKey('users.id'), nullable=False, index=True)

    student = db.relationship('User', backref=db.backref('enrollments', lazy='dynamic'))

    def __repr__(self):
        return f'<CourseStudent {self.course_id}-{self.student_id}>'
