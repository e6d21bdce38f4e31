"""
Root pytest configuration and fixtures.

Each test gets its own app bound to a fresh in-memory SQLite database.
Tests that drive the HTTP API create data inside a short `app.app_context()`
block and then talk to `client`; service-level tests use `db_session`, which
keeps one app context open for the whole test.
"""
import os
import sys
from pathlib import Path
from types import SimpleNamespace

import pytest

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

# Test configuration
os.environ['FLASK_ENV'] = 'testing'
os.environ['DATABASE_URL'] = 'sqlite:///:memory:'
os.environ['SESSION_SECRET'] = 'test-secret-key-for-testing-only'

PASSWORD = 'password123'

MANAGER_EMAIL = 'maria.manager@example.com'
LEADER_EMAIL = 'leo.leader@example.com'
WORKER_EMAIL = 'wendy.worker@example.com'


@pytest.fixture(scope='function')
def app():
    """Create and configure a test Flask application."""
    from app import create_app
    from models import db

    test_app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'RATELIMIT_ENABLED': False,
    })

    yield test_app

    with test_app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create a test client for the Flask application."""
    return app.test_client()


@pytest.fixture(scope='function')
def runner(app):
    """Create a CLI test runner."""
    return app.test_cli_runner()


@pytest.fixture(scope='function')
def db_session(app):
    """Database session inside an app context held for the whole test."""
    from models import db

    with app.app_context():
        yield db.session
        db.session.rollback()
        db.session.remove()


@pytest.fixture
def make_user():
    """Factory for a User plus Profile. Needs an active app context."""
    from models import db, User, Profile, Role

    def _make_user(email, role=Role.WORKER, password=PASSWORD, first_name='', last_name='',
                   team=None, active=True):
        user = User(email=email, active=active)
        user.set_password(password)
        user.profile = Profile(
            email=email,
            first_name=first_name,
            last_name=last_name,
            role=role,
            team=team,
        )
        db.session.add(user)
        db.session.commit()
        return user.profile

    return _make_user


@pytest.fixture
def make_project():
    """Factory for a Project with tasks at positions 1..N. Needs an active app context."""
    from models import db, Project, Task, TaskStatus

    def _make_project(owner, title='Launch plan', task_titles=(), completed=()):
        project = Project(
            title=title,
            description='',
            owner_id=owner.id,
            owner_email=owner.email,
        )
        project.tasks = [
            Task(
                title=task_title,
                position=index + 1,
                status=TaskStatus.COMPLETED if task_title in completed else TaskStatus.UNCOMPLETED,
            )
            for index, task_title in enumerate(task_titles)
        ]
        db.session.add(project)
        db.session.commit()
        return project

    return _make_project


@pytest.fixture
def make_team():
    """Factory for a Team with members and an optional leader. Needs an active app context."""
    from models import db, Team

    def _make_team(name='Platform', members=(), leader=None):
        team = Team(name=name)
        db.session.add(team)
        for member in members:
            member.team = team
        if leader is not None:
            team.leader = leader
        db.session.commit()
        return team

    return _make_team


@pytest.fixture
def accounts(app, make_user):
    """One account per role; returns their profile ids."""
    from models import Role

    with app.app_context():
        manager = make_user(MANAGER_EMAIL, Role.MANAGER, first_name='Maria', last_name='Mendes')
        leader = make_user(LEADER_EMAIL, Role.LEADER, first_name='Leo', last_name='Lang')
        worker = make_user(WORKER_EMAIL, Role.WORKER, first_name='Wendy', last_name='Wu')
        return SimpleNamespace(manager=manager.id, leader=leader.id, worker=worker.id)


@pytest.fixture
def login(client):
    """Log `client` in; fails the test if the credentials are rejected."""
    def _login(email, password=PASSWORD):
        response = client.post('/auth/login', json={'email': email, 'password': password})
        assert response.status_code == 200, response.get_json()
        return response

    return _login


@pytest.fixture
def manager_client(client, accounts, login):
    login(MANAGER_EMAIL)
    return client


@pytest.fixture
def worker_client(client, accounts, login):
    login(WORKER_EMAIL)
    return client
