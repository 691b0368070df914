import logging
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from fastapi.concurrency import run_in_threadpool
from sqlalchemy.exc import SQLAlchemyError

from .db import SessionLocal
from .filters import resolve_filters, parse_id_list, DashboardFilter
from .store import DashboardStore
from . import analytics
from . import schemas

logger = logging.getLogger(__name__)

router = APIRouter()


def get_store() -> DashboardStore:
    return DashboardStore(SessionLocal)


@router.get('/dashboard/data', response_model=schemas.DashboardData)
async def dashboard_data(
    projectId: Optional[str] = None,
    employeeId: Optional[str] = None,
    startDate: Optional[date] = None,
    endDate: Optional[date] = None,
    userId: Optional[str] = None,
    userRole: Optional[str] = None,
    store: DashboardStore = Depends(get_store),
):
    logger.info("dashboard data request: project=%s employee=%s range=%s..%s user=%s role=%s",
                projectId, employeeId, startDate, endDate, userId, userRole)
    # a failed query yields empty charts rather than a partial dashboard
    try:
        flt = await run_in_threadpool(
            resolve_filters, store, projectId, employeeId, startDate, endDate, userId, userRole
        )
        return await analytics.dashboard_data(store, flt)
    except Exception:
        logger.exception("dashboard data query failed")
        return analytics.empty_dashboard()


@router.get('/dashboard/projects', response_model=List[schemas.ProjectOut])
def dashboard_projects(store: DashboardStore = Depends(get_store)):
    try:
        return store.list_projects()
    except SQLAlchemyError:
        logger.exception("projects filter query failed")
        raise HTTPException(status_code=500, detail="Failed to fetch projects")


@router.get('/dashboard/employees', response_model=List[schemas.EmployeeOut])
def dashboard_employees(store: DashboardStore = Depends(get_store)):
    try:
        return store.list_employees()
    except SQLAlchemyError:
        logger.exception("employees filter query failed")
        raise HTTPException(status_code=500, detail="Failed to fetch employees")


@router.get('/dashboard/task-status', response_model=schemas.TaskStatusCounts)
def dashboard_task_status(
    projectId: Optional[str] = None,
    employeeId: Optional[str] = None,
    startDate: Optional[date] = None,
    endDate: Optional[date] = None,
    userId: Optional[str] = None,
    userRole: Optional[str] = None,
    store: DashboardStore = Depends(get_store),
):
    try:
        flt = resolve_filters(store, projectId, employeeId, startDate, endDate, userId, userRole)
        return analytics.task_status_overview(store, flt)
    except SQLAlchemyError:
        logger.exception("task status query failed")
        raise HTTPException(status_code=500, detail="Failed to fetch task status data")


@router.get('/dashboard/tasks-timeline', response_model=schemas.TasksTimeline)
def dashboard_tasks_timeline(
    role: Optional[str] = None,
    userId: Optional[str] = None,
    projectId: Optional[str] = None,
    employeeId: Optional[str] = None,
    store: DashboardStore = Depends(get_store),
):
    try:
        return analytics.tasks_timeline(store, role, userId, projectId, employeeId)
    except SQLAlchemyError:
        logger.exception("tasks timeline query failed")
        raise HTTPException(status_code=500, detail="Failed to fetch tasks timeline")


@router.post('/tasks/validate-workload', response_model=schemas.WorkloadResult)
def validate_workload(body: schemas.WorkloadCheck, store: DashboardStore = Depends(get_store)):
    try:
        return analytics.validate_workload(
            store, body.assignee_id, body.project_id, body.planned_hours, body.due_date
        )
    except analytics.AssigneeNotFound:
        raise HTTPException(status_code=404, detail="Employee not found")
    except SQLAlchemyError:
        logger.exception("workload validation query failed")
        raise HTTPException(status_code=500, detail="Database error")


@router.get('/debug/availability', response_model=List[schemas.AvailabilityRow])
def debug_availability(
    projectId: Optional[str] = None,
    employeeId: Optional[str] = None,
    store: DashboardStore = Depends(get_store),
):
    flt = DashboardFilter(project_ids=parse_id_list(projectId), employee_ids=parse_id_list(employeeId))
    try:
        return analytics.availability_breakdown(store, flt)
    except SQLAlchemyError:
        logger.exception("availability breakdown query failed")
        raise HTTPException(status_code=500, detail="Database error")
