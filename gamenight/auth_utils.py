import hashlib
import hmac
from datetime import datetime, timedelta, timezone
from functools import wraps
from flask import request, jsonify, current_app
import jwt
from gamenight.app import db
from gamenight.models import User, Game, GameMembership


def generate_token(user_id):
    """Generate a JWT token for a user."""
    payload = {
        'user_id': user_id,
        'exp': datetime.now(timezone.utc) + timedelta(
            hours=current_app.config.get('JWT_EXPIRATION_HOURS', 24)
        ),
    }
    return jwt.encode(payload, current_app.config['SECRET_KEY'], algorithm='HS256')


def _normalize_bearer_token(raw_token):
    token = str(raw_token or '').strip()
    if token.startswith('Bearer '):
        token = token.split(' ', 1)[1].strip()
    return token


def _decode_user_from_token(token):
    normalized = _normalize_bearer_token(token)
    if not normalized:
        return None, 'Authentication required'
    try:
        payload = jwt.decode(
            normalized, current_app.config['SECRET_KEY'], algorithms=['HS256']
        )
        user = db.session.get(User, payload['user_id'])
        if not user:
            return None, 'User not found'
        return user, None
    except jwt.ExpiredSignatureError:
        return None, 'Token expired'
    except jwt.InvalidTokenError:
        return None, 'Invalid token'


def csrf_token_for_bearer(token):
    """Build deterministic CSRF token tied to bearer token."""
    normalized = _normalize_bearer_token(token)
    if not normalized:
        return ''
    secret = str(current_app.config.get('SECRET_KEY') or '')
    if not secret:
        return ''
    return hmac.new(
        secret.encode('utf-8'),
        normalized.encode('utf-8'),
        hashlib.sha256,
    ).hexdigest()


def csrf_token_matches(token, candidate):
    expected = csrf_token_for_bearer(token)
    provided = str(candidate or '').strip()
    if not expected or not provided:
        return False
    return hmac.compare_digest(expected, provided)


def login_required(f):
    """Decorator to require authentication on a route."""
    @wraps(f)
    def decorated(*args, **kwargs):
        auth_header = request.headers.get('Authorization', '')
        user, error = _decode_user_from_token(auth_header)
        if error:
            return jsonify({'error': error}), 401
        request.current_user = user
        return f(*args, **kwargs)
    return decorated


# ── Game roles ────────────────────────────────────────────────────────

ROLE_MEMBER = 'member'
ROLE_CO_GM = 'co_gm'
ROLE_GM = 'gm'

_ROLE_RANK = {None: 0, ROLE_MEMBER: 1, ROLE_CO_GM: 2, ROLE_GM: 3}


def game_role(game, user_id):
    """Return the user's role in ``game`` or ``None`` for outsiders."""
    if game.gm_id == user_id:
        return ROLE_GM
    membership = GameMembership.query.filter_by(game_id=game.id, user_id=user_id).first()
    if not membership:
        return None
    return ROLE_CO_GM if membership.is_co_gm else ROLE_MEMBER


def game_role_required(min_role=ROLE_MEMBER):
    """Require login plus at least ``min_role`` in the ``game_id`` route arg.

    Sets ``request.current_game`` and ``request.current_role``.
    """
    def decorator(f):
        @wraps(f)
        @login_required
        def decorated(game_id, *args, **kwargs):
            game = db.session.get(Game, game_id)
            if not game:
                return jsonify({'error': 'Game not found'}), 404
            role = game_role(game, request.current_user.id)
            if role is None:
                return jsonify({'error': 'You are not a member of this game'}), 403
            if _ROLE_RANK[role] < _ROLE_RANK[min_role]:
                return jsonify({'error': 'Insufficient permissions for this game'}), 403
            request.current_game = game
            request.current_role = role
            return f(game_id, *args, **kwargs)
        return decorated
    return decorator
