"""Read-only access to the dashboard tables.

Every method opens its own session so the analytics can run several
queries at once, each on its own pooled connection.
"""

import logging
from datetime import date
from typing import Any, Dict, List, Optional

from sqlalchemy import Date, select, func, false
from sqlalchemy.orm import sessionmaker

from .config import settings
from .db import User, Project, Task, ProjectAssignment, ProjectTeamMember
from .filters import DashboardFilter

logger = logging.getLogger(__name__)


def _fetchall_dict(session, stmt) -> List[Dict[str, Any]]:
    return [dict(row) for row in session.execute(stmt).mappings().all()]


def task_conditions(flt: DashboardFilter) -> list:
    conds = []
    if flt.project_ids is not None:
        conds.append(Task.project_id.in_(flt.project_ids) if flt.project_ids else false())
    if flt.employee_ids is not None:
        conds.append(Task.assignee_id.in_(flt.employee_ids) if flt.employee_ids else false())
    if flt.restricted:
        assigned = select(ProjectAssignment.project_id).where(
            ProjectAssignment.assigned_to_user_id == flt.scope_user_id
        )
        conds.append(Task.project_id.in_(assigned))
    effective = func.date(func.coalesce(Task.due_date, Task.created_at), type_=Date)
    if flt.start_date is not None:
        conds.append(effective >= flt.start_date)
    if flt.end_date is not None:
        conds.append(effective <= flt.end_date)
    return conds


class DashboardStore:
    def __init__(self, session_factory: sessionmaker, default_available_hours: Optional[float] = None):
        self.session_factory = session_factory
        if default_available_hours is None:
            default_available_hours = settings.default_available_hours
        self.default_available_hours = default_available_hours

    def _all(self, stmt) -> List[Dict[str, Any]]:
        with self.session_factory() as session:
            return _fetchall_dict(session, stmt)

    def _scalar(self, stmt):
        with self.session_factory() as session:
            return session.execute(stmt).scalar()

    def _available_hours(self):
        return func.coalesce(User.available_hours_per_week, self.default_available_hours)

    def has_project_assignments(self, user_id: int) -> bool:
        stmt = select(func.count(ProjectAssignment.id)).where(
            ProjectAssignment.assigned_to_user_id == user_id
        )
        return (self._scalar(stmt) or 0) > 0

    def assigned_task_rows(self, flt: DashboardFilter) -> List[Dict[str, Any]]:
        """Tasks matching ``flt`` that have an existing assignee, with the assignee's weekly hours."""
        stmt = (
            select(
                Task.id,
                Task.assignee_id,
                Task.status,
                Task.planned_hours,
                Task.actual_hours,
                Task.due_date,
                Task.created_at,
                self._available_hours().label("available_hours"),
            )
            .select_from(Task)
            .join(User, Task.assignee_id == User.id)
            .where(*task_conditions(flt))
        )
        return self._all(stmt)

    def task_rows(self, flt: DashboardFilter) -> List[Dict[str, Any]]:
        stmt = select(
            Task.id, Task.planned_hours, Task.due_date, Task.created_at,
        ).where(*task_conditions(flt))
        return self._all(stmt)

    def total_available_hours(self, flt: DashboardFilter) -> float:
        """Weekly capacity of the users the filter covers."""
        stmt = select(func.coalesce(func.sum(self._available_hours()), 0)).select_from(User)
        if flt.employee_ids is not None:
            stmt = stmt.where(User.id.in_(flt.employee_ids) if flt.employee_ids else false())
        elif flt.project_ids is not None:
            members = select(ProjectTeamMember.user_id).where(
                ProjectTeamMember.project_id.in_(flt.project_ids) if flt.project_ids else false()
            )
            stmt = stmt.where(User.id.in_(members))
        if flt.restricted:
            # scoped callers only see the teams of their assigned projects
            assigned = select(ProjectAssignment.project_id).where(
                ProjectAssignment.assigned_to_user_id == flt.scope_user_id
            )
            scoped_team = select(ProjectTeamMember.user_id).where(ProjectTeamMember.project_id.in_(assigned))
            stmt = stmt.where(User.id.in_(scoped_team))
        return float(self._scalar(stmt) or 0.0)

    def status_counts(self, flt: DashboardFilter) -> Dict[str, int]:
        stmt = select(Task.status, func.count(Task.id).label("count")).where(
            *task_conditions(flt)
        ).group_by(Task.status)
        return {r["status"]: int(r["count"]) for r in self._all(stmt)}

    def list_projects(self) -> List[Dict[str, Any]]:
        return self._all(select(Project.id, Project.name, Project.status).order_by(Project.name))

    def list_employees(self) -> List[Dict[str, Any]]:
        return self._all(
            select(
                User.id, User.username, User.email, User.role, User.available_hours_per_week
            ).order_by(User.username)
        )

    def due_task_cards(self, start: date, end: date, employee_ids: Optional[List[int]] = None,
                       project_ids: Optional[List[int]] = None) -> List[Dict[str, Any]]:
        stmt = (
            select(
                Task.id,
                Task.name.label("title"),
                User.username.label("assignee"),
                Task.status,
                func.coalesce(Task.planned_hours, 0).label("estimated"),
                func.coalesce(Task.actual_hours, 0).label("logged"),
                Task.due_date,
            )
            .select_from(Task)
            .join(User, User.id == Task.assignee_id)
            .where(Task.due_date >= start, Task.due_date <= end)
            .order_by(Task.due_date.asc(), Task.created_at.desc())
        )
        if employee_ids is not None:
            stmt = stmt.where(Task.assignee_id.in_(employee_ids) if employee_ids else false())
        if project_ids is not None:
            stmt = stmt.where(Task.project_id.in_(project_ids) if project_ids else false())
        return self._all(stmt)

    def get_user(self, user_id: int) -> Optional[Dict[str, Any]]:
        rows = self._all(
            select(User.id, User.username, User.available_hours_per_week).where(User.id == user_id)
        )
        return rows[0] if rows else None

    def open_task_rows(self, assignee_id: int) -> List[Dict[str, Any]]:
        stmt = select(Task.id, Task.planned_hours, Task.due_date).where(
            Task.assignee_id == assignee_id,
            Task.status.in_(("todo", "in_progress")),
            Task.due_date.is_not(None),
        )
        return self._all(stmt)

    def allocated_hours(self, project_id: int, user_id: int) -> float:
        stmt = select(ProjectTeamMember.allocated_hours_per_week).where(
            ProjectTeamMember.project_id == project_id,
            ProjectTeamMember.user_id == user_id,
        )
        return float(self._scalar(stmt) or 0.0)

    def assignee_planned_rows(self, flt: DashboardFilter) -> List[Dict[str, Any]]:
        stmt = (
            select(
                Task.assignee_id,
                User.username,
                User.available_hours_per_week,
                Task.planned_hours,
                Task.due_date,
            )
            .select_from(Task)
            .join(User, Task.assignee_id == User.id)
            .where(Task.due_date.is_not(None), *task_conditions(flt))
        )
        return self._all(stmt)
