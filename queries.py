"""
Query layer used by the controllers

Read helpers return plain rows or eagerly loaded models. Write helpers only
stage changes on the session; callers own the commit.
"""

from sqlalchemy import func
from sqlalchemy.orm import joinedload, selectinload
from models import db, User, Project, Task, TaskAssignment, Token


def _task_rows(query):
    return [dict(row._mapping) for row in query.order_by(Project.name, Task.id).all()]


def _task_row_query():
    return db.session.query(
        Task.id.label('task_id'),
        Task.name.label('task_name'),
        Task.description.label('task_description'),
        Task.progress.label('task_progress'),
        Project.id.label('project_id'),
        Project.name.label('project_name'),
    ).join(Project, Task.project_id == Project.id)

# ============================================
# Tasks & projects
# ============================================

def get_tasks_by_user_id_with_projects(user_id):
    """Every task in the user's projects, one row per task with its project name"""
    return _task_rows(_task_row_query().filter(Project.user_id == user_id))


def get_tasks_by_progress(progress_id, user_id):
    """Rows for the user's tasks at one progress stage"""
    return _task_rows(
        _task_row_query().filter(Project.user_id == user_id, Task.progress == progress_id)
    )


def get_projects_by_user_id_with_tasks(user_id):
    """Projects owned by the user, tasks and assignees loaded up front"""
    return Project.query.options(
        selectinload(Project.tasks)
        .selectinload(Task.assignments)
        .joinedload(TaskAssignment.user)
    ).filter_by(user_id=user_id).order_by(Project.name).all()


def get_task_for_user(task_id, user_id):
    """A task, only if it lives in one of the user's projects"""
    if task_id is None:
        return None
    return Task.query.options(joinedload(Task.project)).join(Project).filter(
        Task.id == task_id,
        Project.user_id == user_id
    ).first()

# ============================================
# Users
# ============================================

def get_user_by_id(user_id):
    if user_id is None:
        return None
    return db.session.get(User, user_id)


def get_user_by_login(login):
    return User.query.filter_by(login=login).first()


def get_all_users_by_token(user):
    """Users who registered with the given creator's team code"""
    if not user or not user.registration_token:
        return []
    return User.query.filter(
        User.registration_token == user.registration_token,
        User.id != user.id
    ).order_by(User.login).all()

# ============================================
# Assignments
# ============================================

def is_user_assigned_to_task(task_id, user_id):
    return db.session.query(
        TaskAssignment.query.filter_by(task_id=task_id, user_id=user_id).exists()
    ).scalar()


def get_assigned_users_count(task_id):
    return db.session.query(func.count(TaskAssignment.id)).filter(
        TaskAssignment.task_id == task_id
    ).scalar()


def assign_task_to_user(task_id, user_id):
    assignment = TaskAssignment(task_id=task_id, user_id=user_id)
    db.session.add(assignment)
    return assignment


def remove_user_assignment_to_task(task_id, user_id):
    """Returns the number of assignments removed (0 or 1)"""
    return TaskAssignment.query.filter_by(task_id=task_id, user_id=user_id).delete()

# ============================================
# Registration tokens
# ============================================

def get_token_count_by_user_id(user_id):
    return db.session.query(func.count(Token.id)).filter(Token.user_id == user_id).scalar()


def get_tokens_by_user_id(user_id):
    return Token.query.filter_by(user_id=user_id).order_by(Token.id).all()


def set_token(user_id, value):
    token = Token(user_id=user_id, token=value)
    db.session.add(token)
    return token


def get_token_by_id(token_id, user_id=None):
    query = Token.query.filter_by(id=token_id)
    if user_id is not None:
        query = query.filter_by(user_id=user_id)
    return query.first()


def get_token_by_value(value):
    return Token.query.filter_by(token=value).first()


def delete_token(token):
    db.session.delete(token)


def get_links(user_id, base_url):
    """Registration links for each of the user's tokens"""
    return [{
        'id': token.id,
        'token': token.token,
        'url': f"{base_url}register/{token.token}"
    } for token in get_tokens_by_user_id(user_id)]
