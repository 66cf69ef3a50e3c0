"""
SubDash snapshot: everything a substitute needs for one day, frozen into a
JSON document when the plan is created.
"""
import json
import logging

from ..db import get_profile, get_settings, find_bellringer, load_prompts, now_iso

logger = logging.getLogger(__name__)


def parse_json_list(value):
    """A profile value holding a JSON list; anything unparseable is empty."""
    if not value:
        return []
    try:
        parsed = json.loads(value)
    except ValueError:
        logger.warning("Ignoring malformed profile JSON: %.60s", value)
        return []
    return parsed if isinstance(parsed, list) else []


def _bellringer_section(db, date_str, origin):
    bellringer = find_bellringer(db, date_str)
    if not bellringer:
        return None

    prompts = [
        {"type": p.get('journal_type') or 'prompt', "prompt": p.get('journal_prompt') or ''}
        for p in load_prompts(db, bellringer['id'])
    ]
    prompts = [p for p in prompts if p['prompt']]
    if not prompts and bellringer.get('journal_prompt'):
        prompts = [{"type": bellringer.get('journal_type') or 'prompt', "prompt": bellringer['journal_prompt']}]

    return {
        "display_url": f"{origin}/display/{date_str}",
        "prompts": prompts,
        "act_question": bellringer.get('act_question'),
        "act_choices": [
            c for c in (
                bellringer.get('act_choice_a'),
                bellringer.get('act_choice_b'),
                bellringer.get('act_choice_c'),
                bellringer.get('act_choice_d'),
            ) if c
        ],
        "act_correct": bellringer.get('act_correct_answer'),
        "act_explanation": bellringer.get('act_explanation'),
    }


def generate_snapshot(db, date_str, custom_notes=None, media_ids=None, origin=''):
    profile = get_profile(db)
    settings = get_settings(db, ['teacher_name', 'school_name'])

    activities = db.table('activities').select('*').eq('date', date_str).order(
        'class_id'
    ).order('sort_order').execute().data or []
    by_class = {}
    for act in activities:
        by_class.setdefault(act['class_id'], []).append({
            "title": act['title'],
            "description": act.get('description'),
            "activity_type": act.get('activity_type'),
            "material_file_path": act.get('material_file_path'),
        })

    media = []
    if media_ids:
        rows = db.table('media_library').select('*').in_('id', list(media_ids)).execute().data or []
        media = [
            {"name": m['name'], "file_path": m.get('file_path'), "url": m.get('url'), "media_type": m.get('media_type')}
            for m in rows
        ]

    schedule = parse_json_list(profile.get('schedule_json'))
    periods = [
        {
            "period": entry.get('period'),
            "time": entry.get('time'),
            "class_name": entry.get('class_name'),
            "instructions": by_class.get(entry.get('class_id'), []) if entry.get('class_id') else [],
        }
        for entry in schedule
    ]

    return {
        "date": date_str,
        "teacher_name": settings.get('teacher_name') or 'Teacher',
        "school_name": settings.get('school_name') or 'School',
        "room_number": profile.get('room_number') or '',
        "office_phone": profile.get('office_phone') or '',
        "sub_name": None,
        "sub_contact": None,
        "custom_notes": custom_notes,
        "schedule": schedule,
        "periods": periods,
        "bellringer": _bellringer_section(db, date_str, origin),
        "management_notes": profile.get('management_notes') or '',
        "behavior_policy": profile.get('behavior_policy') or '',
        "seating_chart_urls": parse_json_list(profile.get('seating_chart_urls')),
        "emergency_contacts": profile.get('emergency_contacts') or '',
        "standing_instructions": profile.get('standing_instructions') or '',
        "backup_activities": parse_json_list(profile.get('default_backup_activities')),
        "media": media,
        "generated_at": now_iso(),
    }
