"""How much of the scheduling window each player has filled in."""
from gamenight.services.play_dates import parse_iso_date


def calculate_player_completion(player_ids, play_dates, availability):
    """Map each player id to the rounded percentage of ``play_dates`` answered.

    Returns ``{}`` when the window has no dates. Entries outside the window
    do not count.
    """
    window = set(play_dates)
    total = len(window)
    if total == 0:
        return {}

    answered = {}
    for row in availability or []:
        user_id = row['user_id'] if isinstance(row, dict) else row.user_id
        raw_date = row['date'] if isinstance(row, dict) else row.date
        try:
            day = parse_iso_date(raw_date)
        except (TypeError, ValueError):
            continue
        if day in window:
            answered.setdefault(user_id, set()).add(day)

    return {
        player_id: int(len(answered.get(player_id, ())) * 100 / total + 0.5)
        for player_id in player_ids
    }
