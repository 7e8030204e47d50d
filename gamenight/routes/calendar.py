"""Public iCalendar subscription feed, keyed by invite code.

Calendar clients subscribe to ``webcal://<host>/api/games/calendar/<code>``.
"""
from flask import Blueprint, Response, current_app, request
from gamenight.models import Game
from gamenight.services.ics import (
    DEFAULT_PRODID, DEFAULT_UID_DOMAIN, feed_filename, generate_calendar,
)
from gamenight.services.snapshots import load_confirmed_sessions

calendar_bp = Blueprint('calendar', __name__)


@calendar_bp.route('/<code>', methods=['GET'])
def calendar_feed(code):
    game = Game.query.filter_by(invite_code=code).first()
    if not game:
        return Response('Game not found', status=404, mimetype='text/plain')

    body = generate_calendar(
        game, load_confirmed_sessions(game),
        prodid=current_app.config.get('CALENDAR_PRODID') or DEFAULT_PRODID,
        uid_domain=current_app.config.get('CALENDAR_UID_DOMAIN') or DEFAULT_UID_DOMAIN,
    )
    max_age = current_app.config.get('CALENDAR_CACHE_SECONDS', 300)
    response = Response(body, status=200, headers={
        'Content-Type': 'text/calendar; charset=utf-8',
        'Content-Disposition': f'attachment; filename="{feed_filename(game.name)}"',
        'Cache-Control': f'public, max-age={max_age}',
    })
    response.add_etag()
    return response.make_conditional(request)
