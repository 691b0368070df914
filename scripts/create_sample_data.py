import random
from datetime import datetime, timedelta
from workload_dashboard.db import init_db, SessionLocal, User, Project, Task, ProjectAssignment, ProjectTeamMember


def seed():
    init_db()
    db = SessionLocal()
    # users: one admin, two managers, six employees
    db.add(User(username="admin", email="admin@example.com", role="super_admin", available_hours_per_week=40))
    managers = []
    for i in range(2):
        m = User(username=f"manager{i+1}", email=f"manager{i+1}@example.com", role="manager", available_hours_per_week=40)
        db.add(m)
        managers.append(m)
    employees = []
    for i in range(6):
        hours = random.choice([None, 20, 32, 40])
        e = User(username=f"employee{i+1}", email=f"employee{i+1}@example.com", role="employee", available_hours_per_week=hours)
        db.add(e)
        employees.append(e)
    db.commit()

    projects = []
    for i in range(3):
        p = Project(name=f"Project {i+1}", status=random.choice(["active", "planning", "completed"]))
        db.add(p)
        projects.append(p)
    db.commit()

    # the first manager is assigned to one project, the second has none
    db.add(ProjectAssignment(project_id=projects[0].id, assigned_to_user_id=managers[0].id))
    for e in employees:
        for p in random.sample(projects, 2):
            db.add(ProjectTeamMember(project_id=p.id, user_id=e.id, allocated_hours_per_week=random.choice([8, 16, 20])))
    db.commit()

    today = datetime.utcnow()
    for i in range(60):
        planned = random.choice([0, 2, 4, 8, 16])
        due = (today + timedelta(days=random.randint(-35, 14))).date() if random.random() < 0.85 else None
        t = Task(
            name=f"Task {i+1}",
            project_id=random.choice(projects).id,
            assignee_id=random.choice(employees).id,
            status=random.choice(["todo", "in_progress", "completed", "blocked"]),
            planned_hours=planned,
            actual_hours=round(planned * random.uniform(0.5, 1.4), 1),
            due_date=due,
            created_at=today - timedelta(days=random.randint(0, 40)),
        )
        db.add(t)
    db.commit()

    print("Sample data created in", db.get_bind().url)
    db.close()


if __name__ == '__main__':
    seed()
