"""Display helpers for weekdays and 24-hour time values."""
from datetime import time

DAY_LABELS = {
    'full': ['Sunday', 'Monday', 'Tuesday', 'Wednesday', 'Thursday', 'Friday', 'Saturday'],
    'short': ['Sun', 'Mon', 'Tue', 'Wed', 'Thu', 'Fri', 'Sat'],
    'abbrev': ['S', 'M', 'T', 'W', 'T', 'F', 'S'],
}


def day_of_week(day):
    """Weekday index with 0=Sunday .. 6=Saturday."""
    return (day.weekday() + 1) % 7


def parse_time(value):
    """Parse ``HH:MM`` / ``HH:MM:SS`` (or pass through a ``time``).

    Raises ``ValueError`` for anything else.
    """
    if isinstance(value, time):
        return value
    text = str(value or '').strip()
    parts = text.split(':')
    if len(parts) not in (2, 3) or not all(p.isdigit() for p in parts):
        raise ValueError(f'Invalid time: {value!r}')
    hour, minute = int(parts[0]), int(parts[1])
    second = int(parts[2]) if len(parts) == 3 else 0
    return time(hour, minute, second)


def format_time(value):
    """Format a 24-hour time as ``2:30 PM``.

    Empty or unparseable input gives ``''``.
    """
    if value is None or value == '':
        return ''
    if isinstance(value, time):
        hour, minutes = value.hour, f'{value.minute:02d}'
    else:
        try:
            parsed = parse_time(value)
        except ValueError:
            return ''
        hour, minutes = parsed.hour, f'{parsed.minute:02d}'
    ampm = 'PM' if hour >= 12 else 'AM'
    hour12 = hour % 12 or 12
    return f'{hour12}:{minutes} {ampm}'


def format_time_range(start, end):
    start_label = format_time(start)
    end_label = format_time(end)
    if start_label and end_label:
        return f'{start_label} - {end_label}'
    if start_label:
        return f'After {start_label}'
    if end_label:
        return f'Until {end_label}'
    return ''


def serialize_time(value):
    """``time`` -> ``HH:MM:SS`` for JSON payloads."""
    return value.strftime('%H:%M:%S') if value else None
