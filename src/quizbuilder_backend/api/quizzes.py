import logging
from typing import Annotated
from fastapi import APIRouter, Depends
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from quizbuilder_backend.api.exceptions import ForbiddenException, access_error_to_http_exception
from quizbuilder_backend.database import get_db
from quizbuilder_backend.interface.quizzes import ClassroomGet, QuizCreate, QuizGet, QuizUpdate
from quizbuilder_backend.model import Classroom, ClassroomMember, QuizBlueprint
from quizbuilder_backend.permissions import policy
from quizbuilder_backend.permissions.auth import get_current_actor
from quizbuilder_backend.permissions.errors import SubscriptionError
from quizbuilder_backend.permissions.principal import READ, Actor
from quizbuilder_backend.permissions.query_builders import scope_statement
from quizbuilder_backend.services.access_checks import PUBLISHED, check_quiz_access

quiz_router = APIRouter()
logger = logging.getLogger(__name__)

WRITE = "write"
DELETE = "delete"
DRAFT = "draft"


def _enforce_quiz_quota(actor: Actor, tenant_id: str, db: Session):
    if actor.is_super_admin:
        return

    quiz_count = db.scalar(
        select(func.count(QuizBlueprint.id)).where(QuizBlueprint.tenant_id == tenant_id)
    )
    if not policy.can_perform_action(actor.subscription_tier, "create_quiz", quiz_count or 0):
        limit = policy.limit_for(actor.subscription_tier, "create_quiz")
        logger.info(f"Quiz quota of {limit} reached for tenant {tenant_id}")
        raise access_error_to_http_exception(SubscriptionError(
            f"Your plan allows {limit} quizzes. Upgrade your plan to continue.",
            "QUOTA_EXCEEDED",
            upgrade_required=True,
        ))


def _guarded_quiz(actor: Actor, quiz_id: str, action: str, db: Session) -> QuizBlueprint:
    """Load a quiz after checking ``action`` on it; a missing quiz is denied like a foreign one"""
    if not check_quiz_access(actor, quiz_id, action, db):
        logger.warning(f"{actor.role} {actor.id} denied {action} on quiz {quiz_id}")
        raise ForbiddenException(detail={"message": "Access denied", "code": "ACCESS_DENIED"})

    return db.get(QuizBlueprint, quiz_id)


def _refuse_students(actor: Actor, verb: str):
    if actor.is_student:
        raise ForbiddenException(detail={
            "message": f"Students cannot {verb} quizzes",
            "code": "INSUFFICIENT_PERMISSIONS",
        })


@quiz_router.get("/quizzes", response_model=list[QuizGet])
def list_quizzes(actor: Annotated[Actor, Depends(get_current_actor)], db: Session = Depends(get_db)):

    stmt = scope_statement(select(QuizBlueprint), QuizBlueprint, actor)

    if actor.is_student:
        stmt = stmt.where(QuizBlueprint.status == PUBLISHED)

    return db.scalars(stmt.order_by(QuizBlueprint.created_at.desc())).all()


@quiz_router.post("/quizzes", response_model=QuizGet, status_code=201)
def create_quiz(payload: QuizCreate, actor: Annotated[Actor, Depends(get_current_actor)], db: Session = Depends(get_db)):

    if actor.is_student:
        raise ForbiddenException(detail={"message": "Students cannot create quizzes", "code": "ACCESS_DENIED"})

    tenant_id = payload.tenant_id if actor.is_super_admin and payload.tenant_id else actor.tenant_id
    owner_user_id = payload.owner_user_id if actor.is_super_admin and payload.owner_user_id else actor.id

    _enforce_quiz_quota(actor, tenant_id, db)

    quiz = QuizBlueprint(
        tenant_id=tenant_id,
        owner_user_id=owner_user_id,
        title=payload.title,
        status=payload.status,
    )

    db.add(quiz)
    db.commit()
    db.refresh(quiz)

    return quiz


@quiz_router.get("/quizzes/{quiz_id}", response_model=QuizGet)
def get_quiz(quiz_id: str, actor: Annotated[Actor, Depends(get_current_actor)], db: Session = Depends(get_db)):
    return _guarded_quiz(actor, quiz_id, READ, db)


@quiz_router.put("/quizzes/{quiz_id}", response_model=QuizGet)
def update_quiz(quiz_id: str, payload: QuizUpdate, actor: Annotated[Actor, Depends(get_current_actor)],
                db: Session = Depends(get_db)):

    quiz = _guarded_quiz(actor, quiz_id, WRITE, db)

    # Tenant and owner are not updatable
    for field, value in payload.model_dump(exclude_unset=True, exclude_none=True).items():
        setattr(quiz, field, value)

    db.commit()
    db.refresh(quiz)

    return quiz


@quiz_router.delete("/quizzes/{quiz_id}")
def delete_quiz(quiz_id: str, actor: Annotated[Actor, Depends(get_current_actor)], db: Session = Depends(get_db)):

    quiz = _guarded_quiz(actor, quiz_id, DELETE, db)

    db.delete(quiz)
    db.commit()
    logger.info(f"Quiz {quiz_id} deleted by {actor.id}")

    return {"message": "Quiz deleted successfully"}


@quiz_router.post("/quizzes/{quiz_id}/duplicate", response_model=QuizGet, status_code=201)
def duplicate_quiz(quiz_id: str, actor: Annotated[Actor, Depends(get_current_actor)], db: Session = Depends(get_db)):

    _refuse_students(actor, "duplicate")
    original = _guarded_quiz(actor, quiz_id, READ, db)

    tenant_id = original.tenant_id if actor.is_super_admin else actor.tenant_id
    owner_user_id = original.owner_user_id if actor.is_super_admin else actor.id

    _enforce_quiz_quota(actor, tenant_id, db)

    quiz = QuizBlueprint(
        tenant_id=tenant_id,
        owner_user_id=owner_user_id,
        title=f"{original.title} (Copy)",
        status=DRAFT,
    )

    db.add(quiz)
    db.commit()
    db.refresh(quiz)

    return quiz


@quiz_router.post("/quizzes/{quiz_id}/publish", response_model=QuizGet)
def publish_quiz(quiz_id: str, actor: Annotated[Actor, Depends(get_current_actor)], db: Session = Depends(get_db)):

    _refuse_students(actor, "publish")
    quiz = _guarded_quiz(actor, quiz_id, WRITE, db)

    quiz.status = PUBLISHED
    db.commit()
    db.refresh(quiz)

    return quiz


@quiz_router.get("/classrooms", response_model=list[ClassroomGet])
def list_classrooms(actor: Annotated[Actor, Depends(get_current_actor)], db: Session = Depends(get_db)):

    stmt = scope_statement(select(Classroom), Classroom, actor)

    if actor.is_student:
        stmt = stmt.join(ClassroomMember, ClassroomMember.classroom_id == Classroom.id).where(
            ClassroomMember.user_id == actor.id
        )

    return db.scalars(stmt.order_by(Classroom.created_at.desc())).all()
