from flask import Blueprint, request, jsonify, redirect, render_template, current_app, abort
from sqlalchemy.exc import IntegrityError
from models import db, ROLE_CREATOR, PROGRESS_IDS, PROGRESS_START, PROGRESS_IN_PROGRESS, PROGRESS_DONE
import auth
import queries
from schemas import AssignmentSchema, validate_request_data
import hashlib
import secrets
import time
import logging

creator_bp = Blueprint('creator', __name__)
logger = logging.getLogger(__name__)

PROGRESS_COLORS = {PROGRESS_START: 'danger', PROGRESS_IN_PROGRESS: 'warning', PROGRESS_DONE: 'success'}

PERMISSION_DENIED = 'You do not have permission to perform this operation.'

# ============================================
# Helper Functions
# ============================================

def is_creator():
    return auth.check_role(ROLE_CREATOR)


def denied_json(key='error'):
    """JSON reply for a request without the creator role"""
    logger.warning(f"Permission denied: {request.method} {request.path} from {request.remote_addr}")
    if key == 'error':
        return jsonify({'error': PERMISSION_DENIED}), 403
    return jsonify({'success': False, 'message': PERMISSION_DENIED}), 403


def group_tasks_by_project(tasks):
    """
    Group task rows by project name

    Keys keep the order the projects first appear in, entries keep row order.
    """
    grouped = {}
    for task in tasks:
        grouped.setdefault(task['project_name'], []).append({
            'task_name': task['task_name'],
            'task_description': task['task_description'],
            'project_id': task['project_id']
        })
    return grouped


def generate_token_value(seed):
    """Hex digest of the seed, the current time and a random salt"""
    material = f"{seed}{time.time()}{secrets.token_hex(8)}"
    return hashlib.md5(material.encode('utf-8')).hexdigest()


def load_assignment_payload(user_id):
    """
    Validate an assign/unassign body and resolve its task and user

    Returns:
        tuple: (error_response | None, task, user)
    """
    data = request.get_json(silent=True)
    if not data:
        return (jsonify({'error': 'Request body must be JSON'}), 400), None, None

    is_valid, result = validate_request_data(AssignmentSchema, data)
    if not is_valid:
        return (jsonify({'error': 'Validation failed', 'details': result}), 400), None, None

    task = queries.get_task_for_user(result['taskId'], user_id)
    if not task:
        return (jsonify({'error': 'Task not found.'}), 404), None, None

    user = queries.get_user_by_id(result['userId'])
    if not user:
        return (jsonify({'error': f"User with ID '{result['userId']}' not found."}), 404), None, None

    return None, task, user

# ============================================
# Pages
# ============================================

@creator_bp.route('/dashboard', methods=['GET'])
def display_dashboard():
    """Creator dashboard with task counts per progress stage"""
    if not is_creator():
        return redirect('/login')

    user_id = auth.get_logged_in_user_id()

    data = {
        'page_title': 'Dashboard',
        'tasks_count': len(queries.get_tasks_by_user_id_with_projects(user_id)),
        'tasks_start': len(queries.get_tasks_by_progress(PROGRESS_START, user_id)),
        'tasks_in_progress': len(queries.get_tasks_by_progress(PROGRESS_IN_PROGRESS, user_id)),
        'tasks_done': len(queries.get_tasks_by_progress(PROGRESS_DONE, user_id)),
    }
    return render_template('creator/creator_dashboard.html', **data)


@creator_bp.route('/tasks', methods=['GET'])
def display_all_tasks():
    if not is_creator():
        return redirect('/login')

    user_id = auth.get_logged_in_user_id()
    return render_template(
        'creator/creator_all_tasks.html',
        page_title='All tasks',
        tasks=queries.get_projects_by_user_id_with_tasks(user_id)
    )


@creator_bp.route('/tasks/progress/<int:progress_id>', methods=['GET'])
def display_tasks_by_progress(progress_id):
    """Tasks at one progress stage, grouped by project name"""
    if not is_creator():
        return redirect('/login')

    if progress_id not in PROGRESS_IDS:
        abort(404)

    tasks = queries.get_tasks_by_progress(progress_id, auth.get_logged_in_user_id())

    if tasks:
        grouped_tasks = group_tasks_by_project(tasks)
        color = PROGRESS_COLORS[progress_id]
    else:
        grouped_tasks = {}
        color = ''

    return render_template(
        'creator/creator_tasks_progress.html',
        page_title='Tasks in progress',
        grouped_tasks=grouped_tasks,
        color=color
    )


@creator_bp.route('/delegate', methods=['GET'])
def display_delegate_form():
    """Form for assigning team members to tasks"""
    if not is_creator():
        return redirect('/login')

    creator = auth.get_login_user()
    if not creator:
        return redirect('/login')

    return render_template(
        'creator/creator_delegate.html',
        page_title='Assign user',
        user_projects=queries.get_projects_by_user_id_with_tasks(creator.id),
        users=queries.get_all_users_by_token(creator)
    )


@creator_bp.route('/registration-code', methods=['GET'])
def display_registration_code():
    if not is_creator():
        return redirect('/login')

    creator = auth.get_login_user()
    if not creator:
        return redirect('/login')

    return render_template(
        'creator/creator_registration_code.html',
        page_title='Generate a user code',
        token=creator.registration_token,
        users=queries.get_all_users_by_token(creator),
        tokens=queries.get_tokens_by_user_id(creator.id)
    )

# ============================================
# AJAX: task assignments
# ============================================

@creator_bp.route('/assign', methods=['POST'])
def assign_user_to_task():
    """
    Assign a user to a task

    Rejects duplicates and tasks that already have the maximum number of
    assignees; the cap check is not isolated from concurrent requests.
    """
    if not is_creator():
        return denied_json()

    error, task, user = load_assignment_payload(auth.get_logged_in_user_id())
    if error:
        return error

    already_assigned = {
        'error': f"User '{user.login}' is already assigned to task {task.name}"
    }

    if queries.is_user_assigned_to_task(task.id, user.id):
        return jsonify(already_assigned), 409

    max_assignees = current_app.config['MAX_TASK_ASSIGNEES']
    if queries.get_assigned_users_count(task.id) >= max_assignees:
        logger.warning(f"Assignee cap reached for task {task.id}")
        return jsonify({'error': 'The maximum number of users assigned to this task has been reached.'}), 409

    try:
        queries.assign_task_to_user(task.id, user.id)
        db.session.commit()
    except IntegrityError:
        # A concurrent request got there first
        db.session.rollback()
        return jsonify(already_assigned), 409
    except Exception as e:
        db.session.rollback()
        logger.error(f"Assignment error for task {task.id}: {str(e)}", exc_info=True)
        return jsonify({'error': 'Assignment failed due to server error'}), 500

    logger.info(f"User {user.login} assigned to task {task.id}")

    return jsonify({
        'success': f'User "{user.login}" has been assigned to task "{task.name}"',
        'user': {
            'user_id': user.id,
            'user_login': user.login,
            'user_avatar': user.avatar
        }
    }), 200


@creator_bp.route('/unassign', methods=['POST'])
def unassign_user_from_task():
    if not is_creator():
        return denied_json()

    error, task, user = load_assignment_payload(auth.get_logged_in_user_id())
    if error:
        return error

    try:
        queries.remove_user_assignment_to_task(task.id, user.id)
        db.session.commit()
    except Exception as e:
        db.session.rollback()
        logger.error(f"Unassignment error for task {task.id}: {str(e)}", exc_info=True)
        return jsonify({'error': 'Unassignment failed due to server error'}), 500

    logger.info(f"User {user.login} unassigned from task {task.id}")

    return jsonify({
        'success': f'Assignment of "{task.name}" to "{user.login}" has been removed'
    }), 200

# ============================================
# AJAX: registration tokens
# ============================================

@creator_bp.route('/tokens/generate/<string:seed>', methods=['POST'])
def generate_token(seed):
    """Issue a new registration token, at most MAX_TOKENS_PER_USER per creator"""
    if not is_creator():
        return denied_json(key='message')

    user_id = auth.get_logged_in_user_id()

    if queries.get_token_count_by_user_id(user_id) >= current_app.config['MAX_TOKENS_PER_USER']:
        logger.warning(f"Token cap reached for user {user_id}")
        return jsonify({
            'success': False,
            'message': 'User already has the maximum number of tokens.'
        }), 409

    try:
        token = queries.set_token(user_id, generate_token_value(seed))
        db.session.commit()
    except Exception as e:
        db.session.rollback()
        logger.error(f"Token generation error for user {user_id}: {str(e)}", exc_info=True)
        return jsonify({'success': False, 'message': 'Token generation failed due to server error'}), 500

    logger.info(f"Token {token.id} generated for user {user_id}")

    return jsonify({
        'success': True,
        'token': {
            'id': token.id,
            'token': token.token
        },
        'message': 'Token added successfully'
    }), 201


@creator_bp.route('/tokens/<int:token_id>', methods=['DELETE'])
@creator_bp.route('/tokens/<int:token_id>/delete', methods=['POST'])
def delete_token(token_id):
    if not is_creator():
        return denied_json(key='message')

    token = queries.get_token_by_id(token_id, user_id=auth.get_logged_in_user_id())
    if not token:
        return jsonify({'message': 'Token not found'}), 404

    value = token.token
    try:
        queries.delete_token(token)
        db.session.commit()
    except Exception as e:
        db.session.rollback()
        logger.error(f"Token deletion error for token {token_id}: {str(e)}", exc_info=True)
        return jsonify({'message': 'Token deletion failed due to server error'}), 500

    logger.info(f"Token {token_id} deleted")

    return jsonify({'message': f'Token "{value}" has been deleted'}), 200


@creator_bp.route('/links', methods=['GET'])
def get_links():
    """Registration links for the creator's tokens"""
    if not is_creator():
        return denied_json(key='message')

    links = queries.get_links(auth.get_logged_in_user_id(), current_app.config['BASE_URL'])
    return jsonify({'links': links}), 200
