import asyncio
import logging
import math
from datetime import date, timedelta
from typing import Any, Dict, List, Optional

from .filters import DashboardFilter, parse_id, parse_id_list
from .weeks import week_key, week_start, effective_date, reconcile_weeks

logger = logging.getLogger(__name__)

TASK_STATUSES = ("todo", "in_progress", "completed", "blocked")

STATUS_LABELS = {
    "todo": "To Do",
    "in_progress": "In Progress",
    "completed": "Completed",
    "blocked": "Blocked",
}

STATUS_COLORS = {
    "completed": "bg-green-500",
    "in_progress": "bg-cyan-500",
    "blocked": "bg-red-500",
}


class AssigneeNotFound(LookupError):
    pass


def _pct(numerator: float, denominator: float) -> Optional[float]:
    if not denominator:
        return None
    return round(numerator / denominator * 100.0, 1)


def _hours_or_default(value, default: float) -> float:
    return float(default if value is None else value)


def _row_week(row: Dict[str, Any]) -> Optional[str]:
    d = effective_date(row.get('due_date'), row.get('created_at'))
    return week_key(d) if d is not None else None


# ----- Aggregators
def utilization_by_week(rows: List[Dict[str, Any]]) -> Dict[str, Dict[str, Any]]:
    """Actual vs available hours per week.

    Rows are tasks carrying their assignee's ``available_hours``. An
    assignee's capacity is counted once per week however many tasks they
    have in it.
    """
    per_assignee = {}
    for r in rows:
        week = _row_week(r)
        if week is None:
            continue
        slot = per_assignee.setdefault((week, r['assignee_id']), {'actual': 0.0, 'available': 0.0})
        slot['actual'] += float(r.get('actual_hours') or 0.0)
        slot['available'] = max(slot['available'], float(r.get('available_hours') or 0.0))

    weeks = {}
    for (week, _), slot in per_assignee.items():
        w = weeks.setdefault(week, {'actualHours': 0.0, 'availableHours': 0.0})
        w['actualHours'] += slot['actual']
        w['availableHours'] += slot['available']

    out = {}
    for week in sorted(weeks):
        w = weeks[week]
        out[week] = {
            'week': week,
            'actualHours': w['actualHours'],
            'availableHours': w['availableHours'],
            'utilization': _pct(w['actualHours'], w['availableHours']),
        }
    return out


def productivity_by_week(rows: List[Dict[str, Any]]) -> Dict[str, Dict[str, Any]]:
    weeks = {}
    for r in rows:
        week = _row_week(r)
        if week is None:
            continue
        w = weeks.setdefault(week, {'total': 0, 'completed': 0, 'hours': 0.0, 'plannedHours': 0.0})
        w['total'] += 1
        if r.get('status') == 'completed':
            w['completed'] += 1
        w['hours'] += float(r.get('actual_hours') or 0.0)
        w['plannedHours'] += float(r.get('planned_hours') or 0.0)

    out = {}
    for week in sorted(weeks):
        w = weeks[week]
        by_hours = _pct(w['hours'], w['plannedHours'])
        by_tasks = _pct(w['completed'], w['total'])
        out[week] = {
            'week': week,
            **w,
            'productivityByHours': by_hours,
            'productivityByTasks': by_tasks,
            'productivity': by_hours if by_hours is not None else by_tasks,
        }
    return out


def availability_by_week(rows: List[Dict[str, Any]], total_available: float) -> Dict[str, Dict[str, Any]]:
    """Planned hours per week next to the scope's weekly capacity.

    Capacity does not change from week to week, so every week reports the
    full ``total_available``; planned hours are informational.
    """
    planned = {}
    for r in rows:
        week = _row_week(r)
        if week is None:
            continue
        planned[week] = planned.get(week, 0.0) + float(r.get('planned_hours') or 0.0)
    return {
        week: {'week': week, 'plannedHours': planned[week], 'availableHours': total_available}
        for week in sorted(planned)
    }


# ----- Merge
def merge_series(weeks: List[str], utilization: Dict[str, Dict[str, Any]],
                 productivity: Dict[str, Dict[str, Any]], availability: Dict[str, Dict[str, Any]],
                 total_available: float) -> List[Dict[str, Any]]:
    merged = []
    for week in weeks:
        util = utilization.get(week)
        prod = productivity.get(week)
        avail = availability.get(week)
        merged.append({
            'week': week,
            'utilization': util['utilization'] if util else None,
            'completed': prod['completed'] if prod else 0,
            'total': prod['total'] if prod else 0,
            'hours': prod['hours'] if prod else 0.0,
            'productivity': prod['productivity'] if prod else None,
            'plannedHours': prod['plannedHours'] if prod else 0.0,
            'availableHours': avail['availableHours'] if avail else total_available,
        })
    return merged


def empty_dashboard() -> Dict[str, list]:
    return {'utilizationData': [], 'productivityData': [], 'availabilityData': []}


def compute_utilization(store, flt: DashboardFilter):
    return utilization_by_week(store.assigned_task_rows(flt))


def compute_productivity(store, flt: DashboardFilter):
    return productivity_by_week(store.assigned_task_rows(flt))


def compute_planned_hours(store, flt: DashboardFilter):
    return store.task_rows(flt)


async def dashboard_data(store, flt: DashboardFilter, today: Optional[date] = None) -> Dict[str, list]:
    """Weekly utilization/productivity/availability series for ``flt``.

    The four store queries run concurrently; the first failure propagates
    and nothing is merged.
    """
    loop = asyncio.get_running_loop()
    util, prod, planned_rows, total_available = await asyncio.gather(
        loop.run_in_executor(None, compute_utilization, store, flt),
        loop.run_in_executor(None, compute_productivity, store, flt),
        loop.run_in_executor(None, compute_planned_hours, store, flt),
        loop.run_in_executor(None, store.total_available_hours, flt),
    )
    avail = availability_by_week(planned_rows, total_available)
    weeks = reconcile_weeks(flt.start_date, flt.end_date, util, prod, avail, today=today)
    merged = merge_series(weeks, util, prod, avail, total_available)
    logger.info("dashboard series: %d weeks, %.1f available hours", len(merged), total_available)
    # one list for all three charts so their week axes line up
    return {'utilizationData': merged, 'productivityData': merged, 'availabilityData': merged}


# ----- Supporting dashboard views
def task_status_overview(store, flt: DashboardFilter) -> Dict[str, int]:
    counts = store.status_counts(flt)
    return {status: counts.get(status, 0) for status in TASK_STATUSES}


def _task_card(row: Dict[str, Any]) -> Dict[str, Any]:
    status = row.get('status') or 'todo'
    return {
        'id': row['id'],
        'title': row.get('title'),
        'assignee': row.get('assignee'),
        'status': STATUS_LABELS.get(status, status.replace('_', ' ').capitalize()),
        'statusColor': STATUS_COLORS.get(status, 'bg-gray-300'),
        'estimated': float(row.get('estimated') or 0.0),
        'logged': float(row.get('logged') or 0.0),
    }


def tasks_timeline(store, role: Optional[str] = None, user_id=None, project_id=None, employee_id=None,
                   today: Optional[date] = None) -> Dict[str, List[Dict[str, Any]]]:
    """Task cards due this week and next week."""
    employee_ids = parse_id_list(employee_id)
    if employee_ids is None and role in ('employee', 'team_lead'):
        uid = parse_id(user_id)
        employee_ids = [uid] if uid is not None else []
    this_monday = week_start(today or date.today())
    next_monday = this_monday + timedelta(days=7)
    rows = store.due_task_cards(this_monday, next_monday + timedelta(days=6),
                                employee_ids=employee_ids, project_ids=parse_id_list(project_id))
    this_week = [_task_card(r) for r in rows if r['due_date'] < next_monday]
    next_week = [_task_card(r) for r in rows if r['due_date'] >= next_monday]
    return {'thisWeek': this_week, 'nextWeek': next_week}


def validate_workload(store, assignee_id: int, project_id: int, planned_hours: float, due_date: date,
                      today: Optional[date] = None) -> Dict[str, Any]:
    """Check whether assigning ``planned_hours`` due on ``due_date`` overloads the assignee.

    Raises ``AssigneeNotFound`` if the user does not exist.
    """
    user = store.get_user(assignee_id)
    if user is None:
        raise AssigneeNotFound(assignee_id)
    today = today or date.today()
    # an unset or zero capacity counts as the default week
    available = float(user.get('available_hours_per_week') or store.default_available_hours)
    weeks_until_due = math.ceil((due_date - today).days / 7.0)

    due_week = week_key(due_date)
    same_week = [r for r in store.open_task_rows(assignee_id) if week_key(r['due_date']) == due_week]
    current = sum(float(r.get('planned_hours') or 0.0) for r in same_week)
    total = current + float(planned_hours)
    utilization = (total / available) * 100.0 if available > 0 else 0.0

    allocated_total = store.allocated_hours(project_id, assignee_id) * weeks_until_due
    allocation_utilization = (total / allocated_total) * 100.0 if allocated_total > 0 else 0.0

    level = 'none'
    warnings = []
    if utilization > 100:
        level = 'critical'
        warnings.append(f"Employee will be overloaded by {round(utilization - 100)}%")
    elif utilization > 80:
        level = 'high'
        warnings.append(f"Employee utilization will be {round(utilization)}%")
    if allocation_utilization > 100:
        level = 'critical'
        warnings.append(f"Project allocation exceeded by {round(allocation_utilization - 100)}%")
    elif allocation_utilization > 80:
        if level == 'none':
            level = 'high'
        warnings.append(f"Project allocation utilization: {round(allocation_utilization)}%")
    if weeks_until_due < 1:
        level = 'critical'

    return {
        'isValid': True,
        'warningLevel': level,
        'warnings': warnings,
        'workload': {
            'currentHours': current,
            'newTaskHours': float(planned_hours),
            'totalHours': total,
            'availableHours': max(0.0, available - current),
            'utilizationPercentage': round(utilization),
            'allocatedHours': allocated_total,
            'allocationUtilization': round(allocation_utilization),
            'weeksUntilDue': weeks_until_due,
            'currentTaskCount': len(same_week),
        },
    }


def availability_breakdown(store, flt: DashboardFilter) -> List[Dict[str, Any]]:
    """Remaining hours per (week, assignee), floored at zero."""
    groups = {}
    for r in store.assignee_planned_rows(flt):
        key = (week_key(r['due_date']), r['assignee_id'])
        g = groups.setdefault(key, {
            'week': key[0],
            'assignee_id': r['assignee_id'],
            'username': r.get('username'),
            'user_available_hours': _hours_or_default(r.get('available_hours_per_week'), store.default_available_hours),
            'total_planned_hours': 0.0,
        })
        g['total_planned_hours'] += float(r.get('planned_hours') or 0.0)
    out = []
    for g in groups.values():
        g['available_hours'] = max(g['user_available_hours'] - g['total_planned_hours'], 0.0)
        out.append(g)
    out.sort(key=lambda x: (x['week'], x['username'] or ''))
    return out
