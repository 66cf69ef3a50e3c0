"""
Calendar imports: CSV rows, AI-parsed school calendar PDFs, and the bundled
school-year seed file.
"""
import io
import csv
import json
import logging

from ..config import DATA_DIR
from ..errors import GenerationError
from .ai_service import GenerationOptions, RetryPolicy, generate_json, clean_json_array
from .task_helpers import parse_iso_date

logger = logging.getLogger(__name__)

CALENDAR_SEED_FILE = DATA_DIR / "calendar_seed.json"

PDF_OPTIONS = GenerationOptions(temperature=0.2, max_output_tokens=8000)
PDF_RETRY = RetryPolicy(max_attempts=3, temperature_step=0.05, min_temperature=0.1)

PDF_USER_PROMPT = "Parse this school calendar PDF. Extract all dates with events. Return ONLY a valid JSON array."

CALENDAR_PARSE_SYSTEM_PROMPT = """You read school calendar documents and list every dated event.

Respond with a JSON array only:
[
  {"date": "YYYY-MM-DD", "event_type": "holiday|break|testing|assembly|school_day|custom", "title": "Event name"}
]

Event types:
- holiday: a single day with no school (Thanksgiving, MLK Day)
- break: several days with no school (Fall Break, Spring Break); one entry per day
- testing: standardized testing days
- assembly: assemblies and pep rallies
- school_day: first and last day of school, or regular days when listed
- custom: anything else (conferences, early release)

Use the current or upcoming school year when the year is unclear, skip entries without a concrete date, and keep titles short."""


# ══════════════════════════════════════════════════════════════
# CSV
# ══════════════════════════════════════════════════════════════

def parse_csv_events(text):
    """Calendar rows from CSV text with columns date, type/event_type, title, notes.

    Rows need a date and at least one of title / event_type / type.
    """
    reader = csv.DictReader(io.StringIO(text.strip()))
    events = []
    for raw in reader:
        row = {
            (key or '').strip().lower(): (value or '').strip()
            for key, value in raw.items()
            if isinstance(value, str) or value is None
        }
        if not row.get('date') or not (row.get('title') or row.get('event_type') or row.get('type')):
            continue
        events.append({
            "date": row['date'],
            "event_type": row.get('event_type') or row.get('type') or 'event',
            "title": row.get('title') or '',
            "notes": row.get('notes') or None,
        })
    return events


# ══════════════════════════════════════════════════════════════
# PDF
# ══════════════════════════════════════════════════════════════

def normalize_event_type(event_type):
    lower = (event_type or '').lower().strip()
    if 'holiday' in lower:
        return 'holiday'
    if 'break' in lower:
        return 'break'
    if 'test' in lower:
        return 'testing'
    if 'assembl' in lower or 'rally' in lower:
        return 'assembly'
    if lower in ('school_day', 'school day'):
        return 'school_day'
    return 'custom'


def parse_events_from_text(text):
    """Valid events from a model reply; raises ValueError when there are none."""
    events = clean_json_array(text, key='events')
    valid = [
        {
            "date": e['date'],
            "event_type": normalize_event_type(e.get('event_type')),
            "title": str(e['title']).strip(),
        }
        for e in events
        if isinstance(e, dict) and e.get('date') and e.get('title') and parse_iso_date(e['date'])
    ]
    if not valid:
        raise ValueError("No valid events found in the parsed output")
    return valid


def parse_calendar_pdf(provider, pdf_bytes):
    """Events read from a calendar PDF, retried at 0.2, 0.15, then 0.1."""
    try:
        return generate_json(
            provider, CALENDAR_PARSE_SYSTEM_PROMPT, PDF_USER_PROMPT, PDF_OPTIONS,
            policy=PDF_RETRY,
            parser=parse_events_from_text,
            attachment=(pdf_bytes, 'application/pdf'),
        )
    except GenerationError as e:
        raise GenerationError(f"Failed to parse calendar PDF: {e.message}")


# ══════════════════════════════════════════════════════════════
# SEED
# ══════════════════════════════════════════════════════════════

def load_calendar_seed(path=None):
    with open(path or CALENDAR_SEED_FILE, 'r', encoding='utf-8') as f:
        return json.load(f)


def new_seed_events(seed, existing):
    """Seed events whose ``date::title`` isn't already on the calendar."""
    seen = {f"{e['date']}::{e['title']}" for e in existing}
    return [
        {
            "date": e['date'],
            "event_type": e['event_type'],
            "title": e['title'],
            "notes": e.get('notes') or None,
        }
        for e in seed
        if f"{e['date']}::{e['title']}" not in seen
    ]
