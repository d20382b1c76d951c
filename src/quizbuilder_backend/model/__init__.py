from .base import Base, metadata
from .tenant import Tenant, AppUser
from .quiz import QuizBlueprint, QuizAttempt
from .classroom import Classroom, ClassroomMember
from .audit import AuditLog

__all__ = [
    'Base',
    'metadata',
    'Tenant',
    'AppUser',
    'QuizBlueprint',
    'QuizAttempt',
    'Classroom',
    'ClassroomMember',
    'AuditLog',
]
