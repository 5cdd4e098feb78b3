"""
Shared fixtures

Every test gets a fresh app on an in-memory SQLite database with rate
limiting disabled.
"""

import pytest
from flask import template_rendered

from app import create_app
from config import TestingConfig
from models import db, User, Project, Task, Token, TaskAssignment, ROLE_CREATOR, ROLE_USER
import auth

DEFAULT_PASSWORD = 'correct-horse-battery'


@pytest.fixture
def app():
    app = create_app(TestingConfig)
    with app.app_context():
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def runner(app):
    return app.test_cli_runner()


@pytest.fixture
def captured_templates(app):
    """(template, context) pairs rendered during the test"""
    recorded = []

    def record(sender, template, context, **extra):
        recorded.append((template, context))

    template_rendered.connect(record, app)
    yield recorded
    template_rendered.disconnect(record, app)

# ============================================
# Data builders
# ============================================

@pytest.fixture
def make_user(app):
    def _make_user(login, role=ROLE_USER, password=DEFAULT_PASSWORD, registration_token=None, avatar='a.png'):
        user = User(
            login=login,
            password_hash=auth.hash_password(password),
            role=role,
            avatar=avatar,
            registration_token=registration_token
        )
        db.session.add(user)
        db.session.commit()
        return user
    return _make_user


@pytest.fixture
def make_project(app):
    def _make_project(owner, name):
        project = Project(name=name, user_id=owner.id)
        db.session.add(project)
        db.session.commit()
        return project
    return _make_project


@pytest.fixture
def make_task(app):
    def _make_task(project, name, progress=1, description=None):
        task = Task(name=name, project_id=project.id, progress=progress, description=description)
        db.session.add(task)
        db.session.commit()
        return task
    return _make_task


@pytest.fixture
def make_token(app):
    def _make_token(owner, value):
        token = Token(user_id=owner.id, token=value)
        db.session.add(token)
        db.session.commit()
        return token
    return _make_token


@pytest.fixture
def assign(app):
    def _assign(task, user):
        db.session.add(TaskAssignment(task_id=task.id, user_id=user.id))
        db.session.commit()
    return _assign


@pytest.fixture
def creator(make_user):
    return make_user('creator', role=ROLE_CREATOR, registration_token='team-code')


@pytest.fixture
def member(make_user):
    return make_user('member', registration_token='team-code')


@pytest.fixture
def login_as(client):
    """Put a user into the test client's session"""
    def _login_as(user):
        with client.session_transaction() as sess:
            sess[auth.SESSION_USER_ID] = user.id
            sess[auth.SESSION_USER_ROLE] = user.role
    return _login_as
