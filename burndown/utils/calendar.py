from datetime import date, datetime, timedelta

SATURDAY = 5


def as_date(value):
    """Normalise a date, datetime or ISO 'YYYY-MM-DD' string to a date."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        return date.fromisoformat(value[:10])
    raise TypeError(f"Cannot interpret {value!r} as a date")


def date_key(day):
    """Format a day as YYYY-MM-DD"""
    return as_date(day).strftime("%Y-%m-%d")


def is_working_day(day):
    """Saturdays and Sundays are the only non-working days."""
    return as_date(day).weekday() < SATURDAY


def add_working_days(day, working_days):
    """
    Advance one calendar day at a time until `working_days` weekdays were counted.

    The result is the n-th weekday strictly after `day`; n <= 0 returns `day`.
    """
    result = as_date(day)
    days_added = 0
    while days_added < working_days:
        result += timedelta(days=1)
        if is_working_day(result):
            days_added += 1
    return result


def skip_to_next_weekday(day):
    """Move forward to the first weekday, leaving weekdays untouched."""
    result = as_date(day)
    while not is_working_day(result):
        result += timedelta(days=1)
    return result


def count_working_days(start, end):
    """Count weekdays in the half-open range [start, end)."""
    count = 0
    current = as_date(start)
    end = as_date(end)
    while current < end:
        if is_working_day(current):
            count += 1
        current += timedelta(days=1)
    return count


def each_day(start, end):
    """All calendar days from start to end, both inclusive."""
    current = as_date(start)
    end = as_date(end)
    days = []
    while current <= end:
        days.append(current)
        current += timedelta(days=1)
    return days
