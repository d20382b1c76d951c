import logging
from typing import Annotated, Optional
from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from quizbuilder_backend.api.exceptions import ForbiddenException, NotFoundException
from quizbuilder_backend.database import get_db
from quizbuilder_backend.interface.access import (
    AccessResponse,
    AuditLogCreate,
    StudentAccessRequest,
    VerifyAccessRequest,
)
from quizbuilder_backend.model import AuditLog
from quizbuilder_backend.permissions.auth import get_current_actor
from quizbuilder_backend.permissions.principal import Actor
from quizbuilder_backend.services.access_checks import (
    check_classroom_access,
    check_membership,
    check_quiz_access,
    check_student_instructor_access,
)

access_router = APIRouter()
logger = logging.getLogger(__name__)


def _matches_caller(actor: Actor, tenant_id: Optional[str], user_id: Optional[str]) -> bool:
    """A caller may only ask about itself within its own tenant"""
    if actor.is_super_admin:
        return True
    if tenant_id is not None and tenant_id != actor.tenant_id:
        return False
    if user_id is not None and user_id != actor.id:
        return False
    return True


@access_router.post("/quizzes/{quiz_id}/verify-access", response_model=AccessResponse)
def verify_quiz_access(
    quiz_id: str,
    payload: VerifyAccessRequest,
    actor: Annotated[Actor, Depends(get_current_actor)],
    db: Session = Depends(get_db)
):
    if not _matches_caller(actor, payload.tenant_id, payload.user_id):
        logger.warning(f"Quiz access check for foreign context rejected: user {actor.id}, quiz {quiz_id}")
        return AccessResponse(has_access=False)

    return AccessResponse(has_access=check_quiz_access(actor, quiz_id, payload.action, db))


@access_router.post("/classrooms/{classroom_id}/verify-access", response_model=AccessResponse)
def verify_classroom_access(
    classroom_id: str,
    payload: VerifyAccessRequest,
    actor: Annotated[Actor, Depends(get_current_actor)],
    db: Session = Depends(get_db)
):
    if not _matches_caller(actor, payload.tenant_id, payload.user_id):
        logger.warning(f"Classroom access check for foreign context rejected: user {actor.id}, classroom {classroom_id}")
        return AccessResponse(has_access=False)

    return AccessResponse(has_access=check_classroom_access(actor, classroom_id, payload.action, db))


@access_router.post("/students/{student_id}/verify-instructor-access", response_model=AccessResponse)
def verify_student_access(
    student_id: str,
    payload: StudentAccessRequest,
    actor: Annotated[Actor, Depends(get_current_actor)],
    db: Session = Depends(get_db)
):
    if not _matches_caller(actor, payload.tenant_id, payload.instructor_id):
        return AccessResponse(has_access=False)

    has_access = check_student_instructor_access(actor, student_id, db, instructor_id=payload.instructor_id)
    return AccessResponse(has_access=has_access)


@access_router.get("/classrooms/{classroom_id}/members/{user_id}")
def get_classroom_member(
    classroom_id: str,
    user_id: str,
    actor: Annotated[Actor, Depends(get_current_actor)],
    db: Session = Depends(get_db)
):
    if not check_membership(actor, classroom_id, user_id, db):
        raise NotFoundException()

    return {"classroomId": classroom_id, "userId": user_id}


@access_router.post("/audit/log", status_code=201)
def create_audit_log(
    payload: AuditLogCreate,
    request: Request,
    actor: Annotated[Actor, Depends(get_current_actor)],
    db: Session = Depends(get_db)
):
    if not actor.is_super_admin and payload.tenant_id not in (None, actor.tenant_id):
        raise ForbiddenException()

    entry = AuditLog(
        user_id=payload.user_id,
        tenant_id=payload.tenant_id,
        resource_type=payload.resource_type,
        resource_id=payload.resource_id,
        action=payload.action,
        result=payload.result,
        timestamp=payload.timestamp,
        user_agent=payload.user_agent or request.headers.get("user-agent"),
        ip_address=request.client.host if request.client else None,
    )

    db.add(entry)
    db.commit()
    db.refresh(entry)

    return {"id": entry.id}
