from __future__ import annotations

from typing import Mapping, Optional, Protocol

from ..core.enums import Role
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchone


class RoleProvider(Protocol):
    """Resolves employee_id -> role for approval checks."""

    def role_of(self, employee_id: int) -> Optional[Role]:
        raise NotImplementedError


class StaticRoleProvider(RoleProvider):
    def __init__(self, roles: Optional[Mapping[int, Role]] = None):
        self._roles = {int(k): Role(v) for k, v in (roles or {}).items()}

    def role_of(self, employee_id: int) -> Optional[Role]:
        return self._roles.get(int(employee_id))

    def set_role(self, employee_id: int, role: Role) -> None:
        self._roles[int(employee_id)] = Role(role)


class MySQLRoleProvider(RoleProvider):
    """Reads the role column of the portal's employees table."""

    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def role_of(self, employee_id: int) -> Optional[Role]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT role FROM employees WHERE employee_id=%s AND is_active=1", (int(employee_id),))
            r = fetchone(cur)
            if not r or not r.get("role"):
                return None
            return Role(str(r["role"]).lower())
