"""Load the read-only snapshots the scheduling core works on."""
from gamenight.models import Availability, GameMembership, GameSession, User
from gamenight.services.suggestions import RosterMember


def load_roster(game):
    """GM plus every member of ``game`` as ``RosterMember`` values."""
    roster = []
    gm = game.gm
    if gm is not None:
        roster.append(RosterMember(
            user_id=gm.id, name=gm.display_name, is_gm=True,
            profile=gm.public_dict(),
        ))
    memberships = (
        GameMembership.query.filter_by(game_id=game.id)
        .join(User, GameMembership.user_id == User.id)
        .all()
    )
    for membership in memberships:
        if membership.user_id == game.gm_id:
            continue
        user = membership.user
        roster.append(RosterMember(
            user_id=user.id, name=user.display_name,
            is_co_gm=bool(membership.is_co_gm), profile=user.public_dict(),
        ))
    return roster


def load_availability(game, user_id=None):
    query = Availability.query.filter_by(game_id=game.id)
    if user_id is not None:
        query = query.filter_by(user_id=user_id)
    return query.order_by(Availability.date.asc(), Availability.id.asc()).all()


def load_confirmed_sessions(game):
    return (
        GameSession.query.filter_by(game_id=game.id, status='confirmed')
        .order_by(GameSession.date.asc(), GameSession.id.asc())
        .all()
    )


def roster_size(game):
    members = GameMembership.query.filter(
        GameMembership.game_id == game.id,
        GameMembership.user_id != game.gm_id,
    ).count()
    return members + 1
