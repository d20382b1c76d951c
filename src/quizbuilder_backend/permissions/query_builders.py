from typing import Any, Dict, List, Optional, Type
from sqlalchemy import Select

from quizbuilder_backend.permissions.principal import Actor, Role, enum_value

SENSITIVE_FIELDS: Dict[str, List[str]] = {
    "user": ["password_hash", "reset_token", "email_verified"],
    "tenant": ["settings", "api_keys"],
    "subscription": ["payment_method_token", "stripe_customer_id"],
}


def _field(row: Any, name: str) -> Any:
    if isinstance(row, dict):
        return row.get(name)
    return getattr(row, name, None)


class TenantQueryBuilder:
    """Tenant/owner constraints for outgoing requests and incoming rows.

    Query parameters and headers let the remote store pre-filter, but rows
    coming back are filtered again: the remote store may over-return.
    """

    def __init__(self, actor: Optional[Actor], tenant_id: Optional[str] = None):
        self.actor = actor
        self.tenant_id = tenant_id if tenant_id is not None else (actor.tenant_id if actor else None)

    @property
    def role(self) -> Optional[str]:
        return self.actor.role if self.actor else None

    def build_query(self, base_params: Optional[dict] = None) -> dict:
        params = dict(base_params or {})

        if self.role != Role.SUPER_ADMIN.value:
            params["tenant_id"] = self.tenant_id

        if self.role == Role.INSTRUCTOR.value:
            params["owner_user_id"] = self.actor.id

        return params

    def build_headers(self, base_headers: Optional[dict] = None) -> dict:
        headers = dict(base_headers or {})

        if self.tenant_id:
            headers["X-Tenant-ID"] = self.tenant_id

        if self.actor and self.actor.id:
            headers["X-User-ID"] = self.actor.id
            headers["X-User-Role"] = self.actor.role

        return headers

    def row_visible(self, row: Any) -> bool:
        if self.role == Role.SUPER_ADMIN.value:
            return True

        tenant_id = _field(row, "tenant_id")
        if tenant_id and tenant_id != self.tenant_id:
            return False

        user_id = self.actor.id if self.actor else None

        if self.role == Role.INSTRUCTOR.value:
            owner_user_id = _field(row, "owner_user_id")
            if owner_user_id and owner_user_id != user_id:
                return False

        elif self.role == Role.STUDENT.value:
            row_user_id = _field(row, "user_id")
            if row_user_id and row_user_id != user_id:
                return False

        return True

    def filter_results(self, rows: Any, resource_type: Optional[str] = None) -> Any:
        """Drop rows outside the actor's tenant and ownership; non-lists pass through"""
        if not isinstance(rows, list):
            return rows

        if self.role == Role.SUPER_ADMIN.value:
            return rows

        return [row for row in rows if self.row_visible(row)]

    @staticmethod
    def sanitize_response(data: Any, resource_type: Optional[str]) -> Any:
        """Remove sensitive fields for the given resource type"""
        if not data:
            return data

        fields_to_remove = SENSITIVE_FIELDS.get(enum_value(resource_type), [])

        if isinstance(data, list):
            return [_remove_fields(item, fields_to_remove) for item in data]
        return _remove_fields(data, fields_to_remove)


def _remove_fields(obj: Any, fields: List[str]) -> Any:
    if not isinstance(obj, dict):
        return obj
    return {key: value for key, value in obj.items() if key not in fields}


def scope_statement(stmt: Select, model: Type[Any], actor: Actor) -> Select:
    """Apply tenant/owner constraints to a SQLAlchemy select over ``model``"""
    if actor.is_super_admin:
        return stmt

    columns = model.__table__.columns.keys()

    if "tenant_id" in columns:
        stmt = stmt.where(model.tenant_id == actor.tenant_id)

    if actor.is_instructor and "owner_user_id" in columns:
        stmt = stmt.where(model.owner_user_id == actor.id)

    elif actor.is_student and "user_id" in columns:
        stmt = stmt.where(model.user_id == actor.id)

    return stmt
