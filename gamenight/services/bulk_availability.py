"""Pick the dates a bulk "mark all" action applies to."""
from gamenight.services.formatting import day_of_week
from gamenight.services.play_dates import is_play_date

REMAINING_FILTER = 'remaining'


def parse_bulk_filter(raw_value):
    """Return ``'remaining'`` or a weekday int; ``ValueError`` otherwise."""
    text = str(raw_value or '').strip().lower()
    if text == REMAINING_FILTER:
        return REMAINING_FILTER
    if text.isdigit() and 0 <= int(text) <= 6:
        return int(text)
    raise ValueError(f'Invalid bulk filter: {raw_value!r}')


def filter_dates_for_bulk_set(filter_value, dates, play_days, special_play_dates,
                              existing_dates, today):
    """Dates from ``dates`` the bulk action should write.

    ``filter_value`` is ``'remaining'`` (dates without an entry yet) or a
    weekday index. Past dates and non-play dates are never included.
    """
    selected_filter = parse_bulk_filter(filter_value)
    existing = set(existing_dates or ())
    selected = []
    for day in dates:
        if day < today:
            continue
        if not is_play_date(day, play_days, special_play_dates):
            continue
        if selected_filter == REMAINING_FILTER:
            if day in existing:
                continue
        elif day_of_week(day) != selected_filter:
            continue
        selected.append(day)
    return selected
