"""
Standards library: load the bundled state standards, parse pasted
standards text with the AI provider, and save either into ``standards``
keyed by code.
"""
import json
import logging

from ..config import DATA_DIR
from ..errors import GenerationError
from .ai_service import GenerationOptions, generate_json

logger = logging.getLogger(__name__)

STANDARDS_FILE = DATA_DIR / "oklahoma_standards.json"

# JSON section name -> (subject, grade_band)
SUBJECT_MAP = {
    'English 9': ('English', '9'),
    'English 10': ('English', '10'),
    'French 1 (World Languages - Novice)': ('French', '1'),
}

INSERT_BATCH_SIZE = 100

UPLOAD_OPTIONS = GenerationOptions(temperature=0.2, max_output_tokens=4000)

PARSE_SYSTEM_PROMPT = """You pull academic standards out of pasted text (from a document, PDF or spreadsheet) and return them as structured data.

Rules:
- Take the standard code or identifier (e.g. "9.3.R.1", "FL.1.C.2")
- Take the full description text
- Note the strand or category when one is given (e.g. "Reading", "Writing", "Communication")
- When codes aren't clearly formatted, infer a sensible code pattern
- Skip headers, section labels and anything that isn't a standard
- Return EVERY standard in the text

Respond with ONLY valid JSON:
{"standards": [{"code": "9.3.R.1", "description": "Full description text", "strand": "Reading"}]}"""


def load_standards_file(path=None):
    with open(path or STANDARDS_FILE, 'r', encoding='utf-8') as f:
        return json.load(f)


def seed_rows(data):
    """Standards rows from the bundled JSON; unknown sections are ignored."""
    rows = []
    for section, entries in data.items():
        mapping = SUBJECT_MAP.get(section)
        if not mapping:
            continue
        subject, grade_band = mapping
        for entry in entries:
            rows.append({
                "subject": subject,
                "grade_band": grade_band,
                "code": entry['id'],
                "description": entry['description'],
                "strand": entry.get('category') or None,
            })
    return rows


def parse_standards_text(provider, text, subject, grade_band):
    """Standards rows parsed from free text, tagged with ``subject`` and ``grade_band``."""
    user_prompt = f"""Extract every academic standard from the text below. Subject: "{subject}". Grade band: "{grade_band}".

TEXT:
{text}

Respond with ONLY valid JSON."""

    try:
        result = generate_json(provider, PARSE_SYSTEM_PROMPT, user_prompt, UPLOAD_OPTIONS)
    except GenerationError as e:
        raise GenerationError(f"Failed to parse standards: {e.message}")

    parsed = result.get('standards') if isinstance(result, dict) else None
    return [
        {
            "code": str(s['code']).strip(),
            "description": s.get('description') or '',
            "strand": s.get('strand') or None,
            "subject": subject,
            "grade_band": grade_band,
        }
        for s in parsed or []
        if isinstance(s, dict) and s.get('code')
    ]


def save_standards(db, rows):
    """Insert new codes in batches and update existing ones. Returns ``(inserted, updated)``."""
    existing = db.table('standards').select('code').in_(
        'code', [r['code'] for r in rows]
    ).execute().data or []
    existing_codes = {r['code'] for r in existing}

    to_insert = [r for r in rows if r['code'] not in existing_codes]
    to_update = [r for r in rows if r['code'] in existing_codes]

    inserted = 0
    for i in range(0, len(to_insert), INSERT_BATCH_SIZE):
        batch = to_insert[i:i + INSERT_BATCH_SIZE]
        result = db.table('standards').insert(batch).execute()
        inserted += len(result.data or batch)

    for row in to_update:
        db.table('standards').update({
            "subject": row['subject'],
            "grade_band": row['grade_band'],
            "description": row['description'],
            "strand": row['strand'],
        }).eq('code', row['code']).execute()

    logger.info("Saved standards: %d inserted, %d updated", inserted, len(to_update))
    return inserted, len(to_update)
