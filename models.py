
from flask_sqlalchemy import SQLAlchemy
from datetime import datetime

db = SQLAlchemy()

# Task progress ids
PROGRESS_START = 1
PROGRESS_IN_PROGRESS = 2
PROGRESS_DONE = 3
PROGRESS_IDS = (PROGRESS_START, PROGRESS_IN_PROGRESS, PROGRESS_DONE)

ROLE_CREATOR = 'creator'
ROLE_USER = 'user'

# ============================================
# 1. User
# ============================================
class User(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    login = db.Column(db.String(50), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(225), nullable=False)
    avatar = db.Column(db.String(500))
    role = db.Column(db.String(20), nullable=False, default=ROLE_USER)  # creator or user

    # Team code: a creator's own code, copied onto users who register under them
    registration_token = db.Column(db.String(64), index=True)

    last_login = db.Column(db.DateTime)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    # Relationships
    projects = db.relationship('Project', back_populates='owner', lazy=True, cascade='all,delete-orphan')
    tokens = db.relationship('Token', back_populates='owner', lazy=True, cascade='all,delete-orphan')
    assignments = db.relationship('TaskAssignment', back_populates='user', lazy=True, cascade='all,delete-orphan')

# ============================================
# 2. Project
# ============================================
class Project(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)
    user_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    owner = db.relationship('User', back_populates='projects')
    tasks = db.relationship('Task', back_populates='project', lazy=True, cascade='all,delete-orphan',
                            order_by='Task.id')

    __table_args__ = (
        db.Index('idx_project_user', 'user_id'),
    )

# ============================================
# 3. Task
# ============================================
class Task(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)
    project_id = db.Column(db.Integer, db.ForeignKey('project.id'), nullable=False)
    progress = db.Column(db.Integer, nullable=False, default=PROGRESS_START)  # 1 start, 2 in progress, 3 done
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    project = db.relationship('Project', back_populates='tasks')
    assignments = db.relationship('TaskAssignment', back_populates='task', lazy=True, cascade='all,delete-orphan',
                                  order_by='TaskAssignment.id')

    __table_args__ = (
        db.Index('idx_task_project_progress', 'project_id', 'progress'),
    )

    @property
    def assigned_users(self):
        return [assignment.user for assignment in self.assignments]

# ============================================
# 4. TaskAssignment (task <-> user)
# ============================================
class TaskAssignment(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    task_id = db.Column(db.Integer, db.ForeignKey('task.id'), nullable=False)
    user_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False)
    assigned_at = db.Column(db.DateTime, default=datetime.utcnow)

    task = db.relationship('Task', back_populates='assignments')
    user = db.relationship('User', back_populates='assignments')

    __table_args__ = (
        db.UniqueConstraint('task_id', 'user_id', name='unique_task_assignment'),
    )

# ============================================
# 5. Token (registration invitations)
# ============================================
class Token(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    token = db.Column(db.String(64), unique=True, nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    owner = db.relationship('User', back_populates='tokens')
