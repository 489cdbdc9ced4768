from functools import wraps

from flask import Blueprint, jsonify, request
from flask_login import current_user, login_required, login_user, logout_user

from app.extensions import db, login_manager
from app.models import User
from app.models.user import ROLE_VIEWER

auth_bp = Blueprint('auth', __name__, url_prefix='/auth')


def json_error(message, status):
    return jsonify({'success': False, 'message': message}), status


@login_manager.unauthorized_handler
def unauthorized():
    return json_error('Not authorized, please log in.', 401)


def admin_required(view):
    """Restrict a view to logged-in users with the admin role."""
    @wraps(view)
    @login_required
    def wrapped(*args, **kwargs):
        if not current_user.is_admin:
            return json_error('Admin access required.', 403)
        return view(*args, **kwargs)
    return wrapped


@auth_bp.route('/login', methods=['POST'])
def login():
    data = request.get_json(silent=True) or {}
    username = (data.get('username') or '').strip()
    password = data.get('password') or ''
    if not username or not password:
        return json_error('Please provide username and password.', 400)

    user = User.query.filter_by(username=username).first()
    if user is None or not user.check_password(password):
        return json_error('Invalid username or password.', 401)

    login_user(user, remember=True)
    return jsonify({'success': True, 'user': user.to_dict()})


@auth_bp.route('/register', methods=['POST'])
def register():
    data = request.get_json(silent=True) or {}
    username = (data.get('username') or '').strip()
    email = (data.get('email') or '').strip().lower()
    password = data.get('password') or ''

    if not username or not email or not password:
        return json_error('Please fill in all required fields.', 400)
    if len(password) < 6:
        return json_error('Password must be at least 6 characters.', 400)
    if User.query.filter_by(username=username).first():
        return json_error('Username already exists.', 400)
    if User.query.filter_by(email=email).first():
        return json_error('Email already registered.', 400)

    # Self-registration only ever creates viewers; admins come from seed_data.py
    user = User(username=username, email=email, role=ROLE_VIEWER)
    user.set_password(password)
    db.session.add(user)
    db.session.commit()
    return jsonify({'success': True, 'user': user.to_dict()}), 201


@auth_bp.route('/logout', methods=['POST'])
@login_required
def logout():
    logout_user()
    return jsonify({'success': True, 'message': 'Logged out.'})


@auth_bp.route('/me')
@login_required
def me():
    return jsonify({'success': True, 'user': current_user.to_dict()})
