"""Homework and submission models."""
from attendchain import db
from attendchain.models.base import BaseModel


class Homework(BaseModel):
    """Homework assigned to a course."""

    __tablename__ = 'homework'

    title = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)
    due_date = db.Column(db.DateTime, nullable=False)
    course_id = db.Column(db.String(36), db.ForeignKey('courses.id'), nullable=False, index=True)
    teacher_id = db.Column(db.String(36), db.ForeignKey('users.id'), nullable=False)

    course = db.relationship('Course', backref=db.backref('homework', lazy='dynamic',
                                                          cascade='all, delete-orphan'))
    submissions = db.relationship('HomeworkSubmission', backref='homework', lazy='dynamic',
                                  cascade='all, delete-orphan')

    def to_dict(self):
        data = super().to_dict()
        data['course_name'] = self.course.name if self.course else None
        data['course_code'] = self.course.code if self.course else None
        return data

    def __repr__(self):
        return f'<Homework {self.title}>'


class HomeworkSubmission(BaseModel):
    """A student's submission for a piece of homework."""

    __tablename__ = 'homework_submissions'
    __table_args__ = (
        db.UniqueConstraint('homework_id', 'student_id', name='uq_submission_homework_student'),
    )

    homework_id = db.Column(db.String(36), db.ForeignKey('homework.id'), nullable=False, index=True)
    student_id = db.Column(db.String(36), db.ForeignKey('users.id'), nullable=False, index=True)
    submission_text = db.Column(db.Text, nullable=True)
    grade = db.Column(db.Numeric(5, 2), nullable=True)
    feedback = db.Column(db.Text, nullable=True)

    student = db.relationship('User')

    def to_dict(self):
        data = super().to_dict()
        data['grade'] = float(self.grade) if self.grade is not None else None
        data['student_name'] = self.student.full_name if self.student else None
        data['roll_number'] = self.student.roll_number if self.student else None
        return data

    def __repr__(self):
        return f'<HomeworkSubmission {self.homework_id}-{self.student_id}>'
