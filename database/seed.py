# CampusGate - seed database with sample data
import asyncio
import logging
from datetime import datetime, timedelta, timezone
from sqlalchemy import select

from auth import hash_password
from config import configure_logging, get_settings
from . import database
from .models import Assignment, Course, Enrollment, Leave, StudentProfile, User

logger = logging.getLogger(__name__)


async def seed():
    settings = get_settings()
    configure_logging(settings)
    await database.init_db(settings.database_url)
    async with database.get_sessionmaker()() as session:
        # Check if already seeded
        r = await session.execute(select(User).limit(1))
        if r.scalar_one_or_none():
            logger.info("Database already seeded. Skip.")
            return

        # Users: 1 admin, 2 faculty, 3 students (student3 still awaiting approval)
        admin = User(username="admin", password_hash=hash_password("admin123"), role="admin",
                     full_name="Admin User", status="approved")
        f1 = User(username="faculty1", password_hash=hash_password("fac1"), role="faculty",
                  full_name="Alice Faculty", status="approved")
        f2 = User(username="faculty2", password_hash=hash_password("fac2"), role="faculty",
                  full_name="Bob Faculty", status="approved")
        s1 = User(username="student1", password_hash=hash_password("stu1"), role="student",
                  full_name="Charlie Student", status="approved")
        s2 = User(username="student2", password_hash=hash_password("stu2"), role="student",
                  full_name="Diana Student", status="approved")
        s3 = User(username="student3", password_hash=hash_password("stu3"), role="student",
                  full_name="Eve Student")
        session.add_all([admin, f1, f2, s1, s2, s3])
        await session.flush()  # get IDs
        session.add_all([StudentProfile(user_id=s1.id), StudentProfile(user_id=s2.id)])

        # Courses: f1 teaches CS101 and CS102, f2 teaches MA201
        c1 = Course(code="CS101", title="Introduction to Programming", credits=4, instructor_id=f1.id)
        c2 = Course(code="CS102", title="Data Structures", credits=3, instructor_id=f1.id)
        c3 = Course(code="MA201", title="Discrete Mathematics", credits=3, instructor_id=f2.id)
        session.add_all([c1, c2, c3])
        await session.flush()

        # s1 in c1, c2; s2 in c2 and dropped c3
        session.add_all([
            Enrollment(course_id=c1.id, student_id=s1.id, status="active"),
            Enrollment(course_id=c2.id, student_id=s1.id, status="active"),
            Enrollment(course_id=c2.id, student_id=s2.id, status="active"),
            Enrollment(course_id=c3.id, student_id=s2.id, status="dropped"),
        ])

        now = datetime.now(timezone.utc).replace(tzinfo=None)
        session.add_all([
            Assignment(course_id=c1.id, title="Loops and Functions", deadline=now + timedelta(days=7),
                       max_submissions=3, created_by=f1.id),
            Assignment(course_id=c2.id, title="Linked Lists", deadline=now + timedelta(days=3),
                       max_submissions=1, allow_late_submission=False, created_by=f1.id),
        ])
        session.add(Leave(user_id=s1.id, leave_type="medical", reason="Fever",
                          from_date=now + timedelta(days=1), to_date=now + timedelta(days=2)))
        await session.commit()
    logger.info("Seed completed.")


if __name__ == "__main__":
    asyncio.run(seed())
