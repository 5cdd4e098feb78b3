from flask import Blueprint, request, redirect, render_template, current_app, abort
from models import db, User, ROLE_USER
from extensions import limiter
from schemas import LoginSchema, RegisterSchema, validate_request_data
import auth
import queries
import logging

login_bp = Blueprint('login', __name__)
logger = logging.getLogger(__name__)

# ============================================
# Login form
# ============================================

@login_bp.route('/login', methods=['GET'])
def index():
    """Show the login form, or send a logged-in user to their dashboard"""
    if auth.get_logged_in_user_id():
        return redirect(auth.dashboard_url(auth.get_user_role()))
    return render_template('login_form.html')


@login_bp.route('/login', methods=['POST'])
@limiter.limit("10 per minute")
def login():
    """
    Process submitted credentials

    Success redirects to BASE_URL + role + '/dashboard'; failure re-renders
    the form with a single generic error.
    """
    if auth.get_logged_in_user_id():
        return index()

    data = {
        'username': request.form.get('username', ''),
        'password': request.form.get('password', '')
    }
    is_valid, result = validate_request_data(LoginSchema, data)
    if not is_valid:
        return render_template('login_form.html', error='Invalid credentials'), 401

    user = auth.login(result['username'], result['password'])
    if not user:
        return render_template('login_form.html', error='Invalid credentials'), 401

    return redirect(auth.dashboard_url(user.role))


@login_bp.route('/logout', methods=['GET'])
def logout():
    auth.logout()
    return redirect('/login')

# ============================================
# Self-registration with a creator's token
# ============================================

@login_bp.route('/register/<string:token>', methods=['GET'])
def register_form(token):
    if not queries.get_token_by_value(token):
        abort(404)
    return render_template('register_form.html', token=token)


@login_bp.route('/register/<string:token>', methods=['POST'])
@limiter.limit("5 per hour")
def register(token):
    """
    Create a user account from a registration token

    The new user joins the token owner's team and the token is spent.
    """
    registration = queries.get_token_by_value(token)
    if not registration:
        abort(404)

    is_valid, result = validate_request_data(RegisterSchema, request.form.to_dict())
    if not is_valid:
        return render_template('register_form.html', token=token, errors=result), 400

    if queries.get_user_by_login(result['login']):
        return render_template(
            'register_form.html', token=token, errors={'login': ['Login already taken']}
        ), 409

    owner = registration.owner
    user = User(
        login=result['login'],
        password_hash=auth.hash_password(result['password']),
        avatar=result.get('avatar') or current_app.config['DEFAULT_AVATAR'],
        role=ROLE_USER,
        registration_token=owner.registration_token
    )

    try:
        db.session.add(user)
        queries.delete_token(registration)
        db.session.commit()
    except Exception as e:
        db.session.rollback()
        logger.error(f"Registration error for {result['login']}: {str(e)}", exc_info=True)
        abort(500)

    logger.info(f"New user registered: {user.login} under creator {owner.login}")
    return redirect('/login')
