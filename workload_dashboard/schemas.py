from pydantic import BaseModel, Field
from typing import Optional, List
import datetime


class WeeklyMetric(BaseModel):
    week: str
    utilization: Optional[float]
    completed: int
    total: int
    hours: float
    productivity: Optional[float]
    plannedHours: float
    availableHours: float


class DashboardData(BaseModel):
    utilizationData: List[WeeklyMetric]
    productivityData: List[WeeklyMetric]
    availabilityData: List[WeeklyMetric]


class TaskStatusCounts(BaseModel):
    todo: int = 0
    in_progress: int = 0
    completed: int = 0
    blocked: int = 0


class ProjectOut(BaseModel):
    id: int
    name: Optional[str]
    status: Optional[str]


class EmployeeOut(BaseModel):
    id: int
    username: Optional[str]
    email: Optional[str]
    role: Optional[str]
    available_hours_per_week: Optional[float]


class TaskCard(BaseModel):
    id: int
    title: Optional[str]
    assignee: Optional[str]
    status: str
    statusColor: str
    estimated: float
    logged: float


class TasksTimeline(BaseModel):
    thisWeek: List[TaskCard]
    nextWeek: List[TaskCard]


class WorkloadCheck(BaseModel):
    assignee_id: int
    project_id: int
    planned_hours: float = Field(..., gt=0)
    due_date: datetime.date


class Workload(BaseModel):
    currentHours: float
    newTaskHours: float
    totalHours: float
    availableHours: float
    utilizationPercentage: int
    allocatedHours: float
    allocationUtilization: int
    weeksUntilDue: int
    currentTaskCount: int


class WorkloadResult(BaseModel):
    isValid: bool
    warningLevel: str
    warnings: List[str]
    workload: Workload


class AvailabilityRow(BaseModel):
    week: str
    assignee_id: int
    username: Optional[str]
    user_available_hours: float
    total_planned_hours: float
    available_hours: float
