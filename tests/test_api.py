from datetime import date

from sqlalchemy.exc import SQLAlchemyError

from workload_dashboard.api import get_store
from workload_dashboard.db import User, Project, Task
from workload_dashboard.main import app
from workload_dashboard.store import DashboardStore


def test_dashboard_data_ok(client, seed):
    seed(User(id=1, username="alice", role="employee", available_hours_per_week=40))
    seed(Task(name="a", assignee_id=1, status="completed", actual_hours=10, planned_hours=20, due_date=date(2024, 1, 9)))
    res = client.get('/api/dashboard/data', params={
        'employeeId': '1', 'startDate': '2024-01-01', 'endDate': '2024-01-21',
    })
    assert res.status_code == 200
    data = res.json()
    assert set(data) == {'utilizationData', 'productivityData', 'availabilityData'}
    assert data['utilizationData'] == data['productivityData'] == data['availabilityData']
    assert [w['week'] for w in data['utilizationData']] == ["2024-W01", "2024-W02", "2024-W03"]
    week = data['utilizationData'][1]
    assert week['utilization'] == 25.0
    assert week['productivity'] == 50.0
    assert week['availableHours'] == 40.0
    assert data['utilizationData'][0]['utilization'] is None


def test_dashboard_data_employee_role_defaults_to_self(client, seed):
    seed(User(id=1, username="alice", role="employee"), User(id=2, username="bob", role="employee"))
    seed(Task(name="a", assignee_id=1, actual_hours=4, due_date=date(2024, 1, 9)),
         Task(name="b", assignee_id=2, actual_hours=6, due_date=date(2024, 1, 9)))
    res = client.get('/api/dashboard/data', params={'userId': '2', 'userRole': 'employee'})
    week = res.json()['productivityData'][0]
    assert week['hours'] == 6.0
    assert week['total'] == 1


def test_dashboard_data_failure_returns_empty_series(client, session_factory):
    class BrokenStore(DashboardStore):
        def assigned_task_rows(self, flt):
            raise SQLAlchemyError("pool exhausted")

    app.dependency_overrides[get_store] = lambda: BrokenStore(session_factory)
    res = client.get('/api/dashboard/data', params={'startDate': '2024-01-01', 'endDate': '2024-01-21'})
    assert res.status_code == 200
    assert res.json() == {'utilizationData': [], 'productivityData': [], 'availabilityData': []}


def test_dashboard_data_rejects_bad_dates(client):
    res = client.get('/api/dashboard/data', params={'startDate': 'yesterday'})
    assert res.status_code == 422


def test_filter_option_lists(client, seed):
    seed(User(id=1, username="zed", email="z@example.com", role="manager", available_hours_per_week=None),
         User(id=2, username="amy", role="employee", available_hours_per_week=32))
    seed(Project(id=1, name="Zephyr", status="active"), Project(id=2, name="Atlas", status="planning"))
    projects = client.get('/api/dashboard/projects').json()
    assert [p['name'] for p in projects] == ["Atlas", "Zephyr"]
    employees = client.get('/api/dashboard/employees').json()
    assert [e['username'] for e in employees] == ["amy", "zed"]
    assert employees[1] == {'id': 1, 'username': "zed", 'email': "z@example.com", 'role': "manager",
                            'available_hours_per_week': None}


def test_task_status_endpoint(client, seed):
    seed(User(id=1, username="alice"))
    seed(Task(name="a", assignee_id=1, status="todo", project_id=1, due_date=date(2024, 1, 9)),
         Task(name="b", assignee_id=1, status="in_progress", project_id=2, due_date=date(2024, 1, 9)))
    res = client.get('/api/dashboard/task-status', params={'projectId': '1'})
    assert res.status_code == 200
    assert res.json() == {'todo': 1, 'in_progress': 0, 'completed': 0, 'blocked': 0}


def test_tasks_timeline_endpoint(client):
    res = client.get('/api/dashboard/tasks-timeline', params={'role': 'employee', 'userId': '1'})
    assert res.status_code == 200
    assert res.json() == {'thisWeek': [], 'nextWeek': []}


def test_validate_workload_endpoint(client, seed):
    seed(User(id=1, username="alice", available_hours_per_week=40))
    res = client.post('/api/tasks/validate-workload', json={
        'assignee_id': 1, 'project_id': 1, 'planned_hours': 8, 'due_date': '2099-01-15',
    })
    assert res.status_code == 200
    body = res.json()
    assert body['isValid'] is True
    assert body['warningLevel'] == "none"
    assert body['workload']['utilizationPercentage'] == 20


def test_validate_workload_errors(client):
    res = client.post('/api/tasks/validate-workload', json={
        'assignee_id': 42, 'project_id': 1, 'planned_hours': 8, 'due_date': '2099-01-15',
    })
    assert res.status_code == 404
    res = client.post('/api/tasks/validate-workload', json={'assignee_id': 42, 'project_id': 1})
    assert res.status_code == 422


def test_debug_availability_endpoint(client, seed):
    seed(User(id=1, username="alice", available_hours_per_week=40))
    seed(Task(name="a", assignee_id=1, planned_hours=12, due_date=date(2024, 1, 9)))
    res = client.get('/api/debug/availability', params={'employeeId': '1'})
    assert res.status_code == 200
    assert res.json() == [{'week': "2024-W02", 'assignee_id': 1, 'username': "alice",
                           'user_available_hours': 40.0, 'total_planned_hours': 12.0, 'available_hours': 28.0}]
