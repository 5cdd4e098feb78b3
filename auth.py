from flask import current_app, session
from datetime import datetime
from models import db, User
import logging

logger = logging.getLogger(__name__)

SESSION_USER_ID = 'user_id'
SESSION_USER_ROLE = 'user_role'

# ============================================
# Helper Functions
# ============================================

def get_bcrypt():
    """Bcrypt instance from the app extensions (no global variable)"""
    bcrypt = current_app.extensions.get('bcrypt')
    if bcrypt is None:
        from flask_bcrypt import Bcrypt
        bcrypt = Bcrypt(current_app)
        current_app.extensions['bcrypt'] = bcrypt
    return bcrypt


def hash_password(password):
    return get_bcrypt().generate_password_hash(password).decode('utf-8')


def check_password(user, password):
    return get_bcrypt().check_password_hash(user.password_hash, password)

# ============================================
# Session state
# ============================================

def get_logged_in_user_id():
    return session.get(SESSION_USER_ID)


def get_user_role():
    return session.get(SESSION_USER_ROLE)


def get_login_user():
    """
    The user behind the current session

    Returns None when nobody is logged in or the account is gone.
    """
    user_id = get_logged_in_user_id()
    if not user_id:
        return None
    return db.session.get(User, user_id)


def check_role(role):
    """True when the session belongs to a logged-in user with this role"""
    return bool(get_logged_in_user_id()) and get_user_role() == role


def dashboard_url(role):
    return f"{current_app.config['BASE_URL']}{role}/dashboard"

# ============================================
# Login / logout
# ============================================

def login(username, password):
    """
    Validate credentials and open a session

    The caller never learns whether the login or the password was wrong.
    """
    user = User.query.filter_by(login=username).first()

    if not user or not check_password(user, password):
        logger.warning(f"Failed login attempt for login: {username}")
        return None

    session.clear()
    # Expires after PERMANENT_SESSION_LIFETIME
    session.permanent = True
    session[SESSION_USER_ID] = user.id
    session[SESSION_USER_ROLE] = user.role

    try:
        user.last_login = datetime.utcnow()
        db.session.commit()
    except Exception as e:
        # Login still succeeds, only log it
        db.session.rollback()
        logger.error(f"Failed to update last_login for {user.login}: {str(e)}")

    logger.info(f"User logged in: {user.login}")
    return user


def logout():
    user_id = get_logged_in_user_id()
    session.clear()
    if user_id:
        logger.info(f"User logged out: {user_id}")
