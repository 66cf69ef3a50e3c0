"""
Date and class helpers for TeacherDash.

Natural-language due dates ("tmrw", "next fri", "3/14"), fuzzy class
lookup for quick task entry, and the school-week arithmetic used by the
batch generator, bump route and class history.
"""
import re
from datetime import date, datetime, timedelta

ISO_DATE_RE = re.compile(r'^\d{4}-\d{2}-\d{2}$')
MONTH_DAY_RE = re.compile(r'^(\d{1,2})[/-](\d{1,2})$')
NEXT_DAY_RE = re.compile(r'^next\s+(\w+)$')
ABBREVIATION_RE = re.compile(r'^([a-z])(\d+)$')

# Sunday-first numbering
DAY_NUMBERS = {
    'sun': 0, 'sunday': 0,
    'mon': 1, 'monday': 1,
    'tue': 2, 'tues': 2, 'tuesday': 2,
    'wed': 3, 'wednesday': 3,
    'thu': 4, 'thur': 4, 'thurs': 4, 'thursday': 4,
    'fri': 5, 'friday': 5,
    'sat': 6, 'saturday': 6,
}

GENERAL_NAMES = ('', 'general', 'gen', 'g')

WEEKDAY_NAMES = ['Monday', 'Tuesday', 'Wednesday', 'Thursday', 'Friday']


def local_date_str(d=None):
    """YYYY-MM-DD for a date (defaults to today, local time)."""
    d = d or date.today()
    return d.strftime('%Y-%m-%d')


def parse_iso_date(value):
    """Parse YYYY-MM-DD into a date, or None if it isn't one."""
    if not value or not ISO_DATE_RE.match(str(value)):
        return None
    try:
        return datetime.strptime(value, '%Y-%m-%d').date()
    except ValueError:
        return None


def _day_number(d):
    # date.weekday() is Monday=0; convert to Sunday=0
    return (d.weekday() + 1) % 7


def resolve_date(text, today=None):
    """Turn a natural-language due date into YYYY-MM-DD.

    Returns None for anything unrecognised; callers store that as
    "no due date" rather than rejecting the request.
    """
    if not text:
        return None
    s = str(text).strip().lower()
    today = today or date.today()

    if ISO_DATE_RE.match(s):
        return s

    if s in ('today', 'tod'):
        return local_date_str(today)

    if s in ('tomorrow', 'tmrw', 'tmr'):
        return local_date_str(today + timedelta(days=1))

    next_match = NEXT_DAY_RE.match(s)
    if next_match and next_match.group(1) in DAY_NUMBERS:
        # one week past the bare weekday
        diff = (DAY_NUMBERS[next_match.group(1)] - _day_number(today)) % 7 + 7
        return local_date_str(today + timedelta(days=diff))

    if s in DAY_NUMBERS:
        diff = DAY_NUMBERS[s] - _day_number(today)
        if diff < 0:
            diff += 7
        return local_date_str(today + timedelta(days=diff))

    md_match = MONTH_DAY_RE.match(s)
    if md_match:
        month, day = int(md_match.group(1)), int(md_match.group(2))
        try:
            candidate = date(today.year, month, day)
            if candidate < today:
                candidate = date(today.year + 1, month, day)
        except ValueError:
            return None
        return local_date_str(candidate)

    return None


def resolve_class(text, classes):
    """Fuzzy-match quick-entry text to a class id. None means "general"."""
    s = (text or '').strip().lower()
    if s in GENERAL_NAMES:
        return None

    names = [(c['id'], c['name'].lower()) for c in classes]

    for class_id, name in names:
        if name == s:
            return class_id

    for class_id, name in names:
        if name.startswith(s):
            return class_id

    # "e1" -> English-1, "f1" -> French-1
    abbr = ABBREVIATION_RE.match(s)
    if abbr:
        letter, digits = abbr.groups()
        for class_id, name in names:
            if name.startswith(letter) and digits in name:
                return class_id

    for class_id, name in names:
        if s in name:
            return class_id

    return None


def match_class_name(parsed_name, classes):
    """Match a class name pulled out of an AI-parsed document.

    Looser than ``resolve_class``: handles "English 1", "Eng-1", "French",
    and period references. Returns the class dict or None.
    """
    if not parsed_name:
        return None
    lower = parsed_name.lower().strip()

    for c in classes:
        if c['name'].lower() == lower:
            return c

    for c in classes:
        if c['name'].lower() in lower:
            return c

    for c in classes:
        if lower in c['name'].lower():
            return c

    if 'french' in lower or 'fran' in lower:
        for c in classes:
            if 'french' in c['name'].lower():
                return c

    if 'english' in lower or 'eng' in lower:
        num = re.search(r'(\d+)', lower)
        if num:
            for c in classes:
                if 'english' in c['name'].lower() and num.group(1) in c['name']:
                    return c
        for c in classes:
            if 'english' in c['name'].lower():
                return c

    # Period numbers from the teacher's schedule
    if any(p in lower for p in ('1st', '3rd', '5th')):
        for c in classes:
            if 'english-2' in c['name'].lower():
                return c
    if any(p in lower for p in ('4th', '6th')):
        for c in classes:
            if 'english-1' in c['name'].lower():
                return c

    return None


def format_short_date(date_str, today=None):
    """Compact label: "Fri 3/14" within a week, "Mar 14" this year, else with year."""
    d = parse_iso_date(date_str)
    if d is None:
        return ''
    today = today or date.today()

    diff = (d - today).days
    if 0 <= diff <= 6:
        return f"{d.strftime('%a')} {d.month}/{d.day}"
    if d.year == today.year:
        return f"{d.strftime('%b')} {d.day}"
    return f"{d.strftime('%b')} {d.day}, {d.year}"


def format_week_label(week_of):
    """"Feb 23" style label for a week start date."""
    d = parse_iso_date(week_of)
    if d is None:
        return week_of or ''
    return f"{d.strftime('%b')} {d.day}"


def monday_of(d):
    """Monday of the week containing ``d`` (Sunday belongs to the week before)."""
    return d - timedelta(days=d.weekday())


def upcoming_school_monday(d):
    """Monday the batch generator should fill for a given day.

    Weekend dates roll forward to the coming week.
    """
    day = _day_number(d)
    if day == 0:
        return d + timedelta(days=1)
    if day == 6:
        return d + timedelta(days=2)
    return d - timedelta(days=day - 1)


def week_dates(start):
    """Mon-Fri ISO dates starting from a Monday."""
    return [local_date_str(start + timedelta(days=i)) for i in range(5)]


def week_day_map(week_of):
    """``[(day_name, YYYY-MM-DD), ...]`` for the school week containing ``week_of``."""
    d = parse_iso_date(week_of)
    if d is None:
        return []
    return list(zip(WEEKDAY_NAMES, week_dates(monday_of(d))))


def next_school_day(d):
    """Next weekday after ``d``, skipping Saturday and Sunday."""
    nxt = d + timedelta(days=1)
    while nxt.weekday() >= 5:
        nxt += timedelta(days=1)
    return nxt
