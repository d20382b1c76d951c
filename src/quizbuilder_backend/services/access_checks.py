"""
Server-side ownership and membership checks behind the access-check
endpoints. Tenant is always compared before ownership.
"""

from typing import Optional
from sqlalchemy import select
from sqlalchemy.orm import Session

from quizbuilder_backend.model import Classroom, ClassroomMember, QuizBlueprint
from quizbuilder_backend.permissions.principal import READ, Actor

PUBLISHED = "published"


def check_quiz_access(actor: Actor, quiz_id: str, action: str, db: Session) -> bool:
    if actor.is_super_admin:
        return True

    quiz = db.get(QuizBlueprint, quiz_id)
    if quiz is None:
        return False

    if quiz.tenant_id != actor.tenant_id:
        return False

    if actor.is_instructor:
        # Tenant colleagues may read, only the owner may change
        return action == READ or quiz.owner_user_id == actor.id

    if actor.is_student:
        return quiz.status == PUBLISHED and action == READ

    return False


def is_classroom_member(classroom_id: str, user_id: str, db: Session) -> bool:
    member = db.execute(
        select(ClassroomMember.id).where(
            ClassroomMember.classroom_id == classroom_id,
            ClassroomMember.user_id == user_id,
        )
    ).first()
    return member is not None


def check_classroom_access(actor: Actor, classroom_id: str, action: str, db: Session) -> bool:
    if actor.is_super_admin:
        return True

    classroom = db.get(Classroom, classroom_id)
    if classroom is None or classroom.tenant_id != actor.tenant_id:
        return False

    if actor.is_instructor:
        return classroom.owner_user_id == actor.id

    if actor.is_student:
        return action == READ and is_classroom_member(classroom_id, actor.id, db)

    return False


def check_student_instructor_access(actor: Actor, student_id: str, db: Session,
                                    instructor_id: Optional[str] = None) -> bool:
    """Is the student enrolled in one of the instructor's classrooms within the tenant"""
    if actor.is_super_admin:
        return True

    if not actor.is_instructor:
        return False

    instructor_id = instructor_id or actor.id
    if instructor_id != actor.id:
        return False

    row = db.execute(
        select(ClassroomMember.id)
        .join(Classroom, Classroom.id == ClassroomMember.classroom_id)
        .where(
            ClassroomMember.user_id == student_id,
            Classroom.owner_user_id == instructor_id,
            Classroom.tenant_id == actor.tenant_id,
        )
    ).first()
    return row is not None


def check_membership(actor: Actor, classroom_id: str, user_id: str, db: Session) -> bool:
    """Membership of ``user_id`` in a classroom of the actor's tenant.

    Only the member itself and the classroom owner may ask.
    """
    classroom = db.get(Classroom, classroom_id)
    if classroom is None:
        return False

    if not actor.is_super_admin:
        if classroom.tenant_id != actor.tenant_id:
            return False
        if user_id != actor.id and classroom.owner_user_id != actor.id:
            return False

    return is_classroom_member(classroom_id, user_id, db)
