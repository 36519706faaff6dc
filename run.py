"""Application entry point."""
import os

import click
from dotenv import load_dotenv
from flask.cli import with_appcontext

# Load environment variables before the config classes read them
load_dotenv()

from attendchain import create_app, db  # noqa: E402

# Create Flask app
app = create_app(os.getenv('FLASK_ENV', 'development'))


@app.cli.command()
@with_appcontext
def seed_demo():
    """Seed a demo teacher, student and course."""
    from attendchain.models.course import Course, CourseStudent
    from attendchain.models.user import User, UserRole

    teacher = User.query.filter_by(email='teacher@example.edu').first()
    if not teacher:
        teacher = User(email='teacher@example.edu', first_name='Demo', last_name='Teacher',
                       role=UserRole.TEACHER)
        teacher.set_password('Teacher123')
        db.session.add(teacher)

    student = User.query.filter_by(email='student@example.edu').first()
    if not student:
        student = User(email='student@example.edu', first_name='Demo', last_name='Student',
                       roll_number='S0001', role=UserRole.STUDENT)
        student.set_password('Student123')
        db.session.add(student)

    db.session.flush()

    course = Course.query.filter_by(code='DEMO101').first()
    if not course:
        course = Course(name='Demo Course', code='DEMO101', teacher_id=teacher.id)
        db.session.add(course)
        db.session.flush()
        db.session.add(CourseStudent(course_id=course.id, student_id=student.id))

    db.session.commit()

    click.echo('Demo data created.')
    click.echo('Teacher: teacher@example.edu / Teacher123')
    click.echo('Student: student@example.edu / Student123')


@app.cli.command()
@with_appcontext
def reset_db():
    """Reset database completely."""
    if click.confirm('This will delete all data and recreate tables. Continue?'):
        db.drop_all()
        db.create_all()
        click.echo('Database reset complete.')


if __name__ == '__main__':
    # Development server
    port = int(os.environ.get('PORT', 5000))
    host = os.environ.get('HOST', '127.0.0.1')
    debug = os.environ.get('FLASK_ENV') == 'development'

    app.run(host=host, port=port, debug=debug)
