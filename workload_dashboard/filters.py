import enum
import logging
from dataclasses import dataclass
from datetime import date
from typing import List, Optional

logger = logging.getLogger(__name__)

SCOPED_ROLES = ("manager", "team_lead")


class AccessScope(str, enum.Enum):
    UNRESTRICTED = "unrestricted"
    PROJECTS = "projects"


@dataclass(frozen=True)
class DashboardFilter:
    """Normalized filter shared by every dashboard query.

    ``project_ids``/``employee_ids`` are ``None`` when the axis is not
    filtered. An empty list is a filter that matches no rows, which is
    what malformed ids resolve to.
    """

    project_ids: Optional[List[int]] = None
    employee_ids: Optional[List[int]] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    scope: AccessScope = AccessScope.UNRESTRICTED
    scope_user_id: Optional[int] = None

    @property
    def restricted(self) -> bool:
        return self.scope == AccessScope.PROJECTS


def parse_id(value) -> Optional[int]:
    if value is None:
        return None
    try:
        return int(str(value).strip())
    except ValueError:
        return None


def parse_id_list(value) -> Optional[List[int]]:
    """Parse ``"3"``, ``"1,2,5"`` or ``"all"``.

    Returns ``None`` for "all"/empty and drops tokens that are not ids.
    """
    if value is None:
        return None
    raw = str(value).strip()
    if raw == "" or raw == "all":
        return None
    tokens = [t.strip() for t in raw.split(",") if t.strip()]
    if not tokens:
        return None
    ids = []
    for token in tokens:
        parsed = parse_id(token)
        if parsed is None:
            logger.debug("ignoring malformed id %r", token)
            continue
        ids.append(parsed)
    return ids


def resolve_filters(store, project_id=None, employee_id=None, start_date: Optional[date] = None,
                    end_date: Optional[date] = None, user_id=None, user_role: Optional[str] = None) -> DashboardFilter:
    project_ids = parse_id_list(project_id)
    employee_ids = parse_id_list(employee_id)
    caller_id = parse_id(user_id)

    if employee_ids is None and user_role == "employee" and user_id not in (None, ""):
        # employees see their own tasks unless they ask for someone else
        employee_ids = [caller_id] if caller_id is not None else []

    scope = AccessScope.UNRESTRICTED
    if user_role in SCOPED_ROLES and caller_id is not None:
        # managers without any assignment see everything
        if store.has_project_assignments(caller_id):
            scope = AccessScope.PROJECTS

    return DashboardFilter(
        project_ids=project_ids,
        employee_ids=employee_ids,
        start_date=start_date,
        end_date=end_date,
        scope=scope,
        scope_user_id=caller_id if scope == AccessScope.PROJECTS else None,
    )
