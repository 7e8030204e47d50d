"""Validate and normalize game create/update payloads."""
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from gamenight.services.formatting import parse_time
from gamenight.services.play_dates import parse_iso_date

MAX_NAME_LENGTH = 120
MAX_DESCRIPTION_LENGTH = 3000
MIN_WINDOW_MONTHS = 1
MAX_WINDOW_MONTHS = 12
DEFAULT_WINDOW_MONTHS = 2


def _clean_text(value, max_len):
    if value is None:
        return ''
    text = str(value).strip()
    return text[:max_len]


def _validate_play_days(raw, errors):
    if not isinstance(raw, (list, tuple)) or not raw:
        errors.append('Please select at least one play day')
        return None
    days = set()
    for item in raw:
        try:
            day = int(item)
        except (TypeError, ValueError):
            errors.append(f'Invalid play day: {item!r}')
            return None
        if isinstance(item, bool) or not 0 <= day <= 6:
            errors.append(f'Invalid play day: {item!r}')
            return None
        days.add(day)
    return sorted(days)


def _validate_special_dates(raw, errors):
    if raw is None:
        return []
    if not isinstance(raw, (list, tuple)):
        errors.append('Special play dates must be a list')
        return None
    dates = set()
    for item in raw:
        try:
            dates.add(parse_iso_date(item))
        except (TypeError, ValueError):
            errors.append(f'Invalid special play date: {item!r}')
            return None
    return [d.isoformat() for d in sorted(dates)]


def _validate_window(raw, errors):
    try:
        months = int(raw)
    except (TypeError, ValueError):
        errors.append('Scheduling window must be a whole number of months')
        return None
    if not MIN_WINDOW_MONTHS <= months <= MAX_WINDOW_MONTHS:
        errors.append(
            f'Scheduling window must be between {MIN_WINDOW_MONTHS} and {MAX_WINDOW_MONTHS} months'
        )
        return None
    return months


def _validate_optional_time(raw, label, errors):
    if raw is None or raw == '':
        return None
    try:
        return parse_time(raw)
    except ValueError:
        errors.append(f'Invalid {label}')
        return None


def is_valid_timezone(value):
    try:
        ZoneInfo(str(value))
    except (ZoneInfoNotFoundError, ValueError):
        return False
    return True


def validate_game_payload(data, partial=False):
    """Return ``(cleaned, errors)`` for a game payload.

    With ``partial=True`` only the keys present in ``data`` are checked,
    which is how updates are applied.
    """
    errors = []
    cleaned = {}
    if not isinstance(data, dict):
        return {}, ['Invalid JSON payload']

    if not partial or 'name' in data:
        name = _clean_text(data.get('name'), MAX_NAME_LENGTH)
        if not name:
            errors.append('Please enter a game name')
        cleaned['name'] = name

    if 'description' in data:
        cleaned['description'] = _clean_text(data.get('description'), MAX_DESCRIPTION_LENGTH) or None

    if not partial or 'play_days' in data:
        play_days = _validate_play_days(data.get('play_days'), errors)
        if play_days is not None:
            cleaned['play_days'] = play_days

    if 'special_play_dates' in data:
        special = _validate_special_dates(data.get('special_play_dates'), errors)
        if special is not None:
            cleaned['special_play_dates'] = special

    if 'scheduling_window_months' in data or not partial:
        months = _validate_window(
            data.get('scheduling_window_months', DEFAULT_WINDOW_MONTHS), errors
        )
        if months is not None:
            cleaned['scheduling_window_months'] = months

    for key, label in (('default_start_time', 'default start time'),
                       ('default_end_time', 'default end time')):
        if key in data:
            cleaned[key] = _validate_optional_time(data.get(key), label, errors)

    if 'timezone' in data:
        tz = _clean_text(data.get('timezone'), 64) or None
        if tz and not is_valid_timezone(tz):
            errors.append(f'Unknown timezone: {tz}')
        else:
            cleaned['timezone'] = tz

    return cleaned, errors
