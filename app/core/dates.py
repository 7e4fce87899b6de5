from datetime import date, datetime, time, timedelta


def utcnow() -> datetime:
    """Naive UTC timestamp, matching how every DateTime column is stored."""
    return datetime.utcnow()


def day_bounds(moment: datetime | date) -> tuple[datetime, datetime]:
    """Return the [start, end) pair covering the calendar day of ``moment``."""
    day = moment.date() if isinstance(moment, datetime) else moment
    start = datetime.combine(day, time.min)
    return start, start + timedelta(days=1)


def start_of_day(moment: datetime | date) -> datetime:
    return day_bounds(moment)[0]
