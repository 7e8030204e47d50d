import re
from flask import Blueprint, request, jsonify
from werkzeug.security import generate_password_hash, check_password_hash
from gamenight.app import db
from gamenight.models import User, Game, GameMembership
from gamenight.auth_utils import generate_token, login_required, csrf_token_for_bearer

auth_bp = Blueprint('auth', __name__)

_EMAIL_RE = re.compile(r'^[^@\s]+@[^@\s]+\.[^@\s]+$')


def _password_complexity_error(raw_password):
    password = str(raw_password or '')
    if len(password) < 8:
        return 'Password must be at least 8 characters long'
    if not re.search(r'[A-Za-z]', password) or not re.search(r'\d', password):
        return 'Password must include at least one letter and one number'
    return None


@auth_bp.route('/register', methods=['POST'])
def register():
    data = request.get_json(silent=True)
    if not isinstance(data, dict) or not data.get('username') or not data.get('email') \
            or not data.get('password'):
        return jsonify({'error': 'Username, email, and password are required'}), 400

    username = str(data['username']).strip()
    email = str(data['email']).strip().lower()
    if not _EMAIL_RE.match(email):
        return jsonify({'error': 'Invalid email address'}), 400
    password_error = _password_complexity_error(data.get('password'))
    if password_error:
        return jsonify({'error': password_error}), 400

    if User.query.filter_by(username=username).first():
        return jsonify({'error': 'Username already taken'}), 409
    if User.query.filter_by(email=email).first():
        return jsonify({'error': 'Email already registered'}), 409

    user = User(
        username=username,
        email=email,
        password_hash=generate_password_hash(data['password']),
        name=str(data.get('name') or '').strip()[:120],
    )
    db.session.add(user)
    db.session.commit()
    token = generate_token(user.id)
    return jsonify({'token': token, 'user': user.to_dict()}), 201


@auth_bp.route('/login', methods=['POST'])
def login():
    data = request.get_json(silent=True)
    if not isinstance(data, dict) or not data.get('email') or not data.get('password'):
        return jsonify({'error': 'Email and password are required'}), 400

    email = str(data['email']).strip().lower()
    user = User.query.filter_by(email=email).first()
    if not user or not check_password_hash(user.password_hash, data['password']):
        return jsonify({'error': 'Invalid email or password'}), 401

    token = generate_token(user.id)
    return jsonify({'token': token, 'user': user.to_dict()})


@auth_bp.route('/csrf', methods=['GET'])
@login_required
def get_csrf_token():
    auth_header = request.headers.get('Authorization', '')
    token = csrf_token_for_bearer(auth_header)
    if not token:
        return jsonify({'error': 'Unable to generate CSRF token'}), 400
    return jsonify({'csrf_token': token})


@auth_bp.route('/profile', methods=['GET'])
@login_required
def get_profile():
    user = request.current_user
    profile = user.to_dict()
    profile['games_run'] = Game.query.filter_by(gm_id=user.id).count()
    profile['games_joined'] = GameMembership.query.filter_by(user_id=user.id).count()
    return jsonify({'user': profile})


@auth_bp.route('/profile', methods=['PUT'])
@login_required
def update_profile():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return jsonify({'error': 'Invalid JSON payload'}), 400

    user = request.current_user
    text_fields = {
        'name': 120,
        'avatar_url': 500,
    }
    for field, max_len in text_fields.items():
        if field not in data:
            continue
        raw_value = data.get(field)
        if raw_value is None:
            setattr(user, field, '')
            continue
        setattr(user, field, str(raw_value).strip()[:max_len])

    db.session.commit()
    return jsonify({'user': user.to_dict()})
