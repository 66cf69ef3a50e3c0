"""
AI standards tagging: pick 1-3 state standards for an activity and store
the tags in ``activity_standards``.
"""
import re
import logging

from ..errors import GenerationError
from .ai_service import GenerationOptions, generate_json

logger = logging.getLogger(__name__)

DEFAULT_CLASS_NAME = 'English-1'

TAG_OPTIONS = GenerationOptions(temperature=0.3, max_output_tokens=1024)

SYSTEM_PROMPT = """You tag classroom activities with Oklahoma academic standards. Given an activity and the list of available standards, choose the 1-3 codes that fit it best.

- Only use codes from the list
- One short sentence of reasoning

Respond with JSON only, for example:
{"codes": ["9.3.R.1"], "reasoning": "Literary analysis of a short story"}"""


def class_to_subject(class_name):
    return 'French' if 'french' in class_name.lower() else 'English'


def class_to_grade_band(class_name):
    lower = class_name.lower()
    if 'french' in lower:
        return '1'
    if any(name in lower for name in ('english-1', 'english 1', 'eng 1')):
        return '9'
    if any(name in lower for name in ('english-2', 'english 2', 'eng 2')):
        return '10'
    match = re.search(r'(\d+)', class_name)
    if match:
        num = int(match.group(1))
        if num <= 2:
            return '9' if num == 1 else '10'
        return str(num)
    return None


def tag_activity(provider, db, title, description, class_name):
    """Return ``(codes, reasoning)`` for an activity.

    Codes the model invents are dropped; if every code it returned was
    invented, that is an error.
    """
    subject = class_to_subject(class_name)
    grade_band = class_to_grade_band(class_name)

    query = db.table('standards').select('code, description, strand').eq('subject', subject)
    if grade_band:
        query = query.eq('grade_band', grade_band)
    standards = query.order('code').execute().data or []

    if not standards:
        raise GenerationError(
            f'No standards found for subject "{subject}" grade band "{grade_band}". '
            'Run /api/standards/seed first.'
        )

    standards_list = "\n".join(
        f"{s['code']} [{s.get('strand') or 'General'}]: {s['description']}" for s in standards
    )
    user_prompt = f"""ACTIVITY:
Title: {title}
Description: {description or '(no description)'}
Class: {class_name}

AVAILABLE STANDARDS ({subject} - Grade {grade_band}):
{standards_list}

Select the 1-3 most relevant standard codes. Respond with ONLY valid JSON."""

    try:
        result = generate_json(provider, SYSTEM_PROMPT, user_prompt, TAG_OPTIONS)
    except GenerationError as e:
        raise GenerationError(f"Standards tagging failed: {e.message}")

    if not isinstance(result, dict):
        result = {}
    codes = result.get('codes') or []
    reasoning = result.get('reasoning') or ''

    valid = {s['code'] for s in standards}
    filtered = [c for c in codes if c in valid]
    if codes and not filtered:
        raise GenerationError(
            f"AI returned codes that don't match any known standards: {', '.join(codes)}"
        )
    return filtered, reasoning


def store_tags(db, activity_id, codes, tagged_by='ai'):
    """Upsert tags for the given codes. Returns the matched standard rows."""
    if not codes:
        return []
    matched = db.table('standards').select('id, code, description, strand').in_(
        'code', list(codes)
    ).execute().data or []
    if matched:
        rows = [
            {"activity_id": activity_id, "standard_id": s['id'], "tagged_by": tagged_by}
            for s in matched
        ]
        db.table('activity_standards').upsert(
            rows, on_conflict='activity_id,standard_id', ignore_duplicates=True
        ).execute()
    return matched


def tag_and_store(provider, db, activity, class_name=None):
    """Tag one activity row and save the tags.

    Returns ``{activity_id, codes, tagged, reasoning}``.
    """
    class_name = class_name or DEFAULT_CLASS_NAME
    codes, reasoning = tag_activity(
        provider, db, activity['title'], activity.get('description'), class_name
    )
    matched = store_tags(db, activity['id'], codes)
    return {
        "activity_id": activity['id'],
        "codes": [s['code'] for s in matched],
        "tagged": matched,
        "reasoning": reasoning,
    }


def tag_many(provider, db, activities, classes):
    """Tag a batch of activities. Failures are reported per activity."""
    results = []
    for act in activities:
        cls = classes.get(act.get('class_id'))
        try:
            outcome = tag_and_store(provider, db, act, cls['name'] if cls else None)
            results.append({
                "activity_id": act['id'],
                "codes": outcome['codes'],
                "reasoning": outcome['reasoning'],
                "error": None,
            })
        except GenerationError as e:
            logger.warning("Tagging activity %s failed: %s", act['id'], e.message)
            results.append({"activity_id": act['id'], "codes": [], "reasoning": '', "error": e.message})
    return results
