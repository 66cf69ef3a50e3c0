"""
Planning context for AI prompts.

``build_recent_context`` is the small bellringer context (what was asked
lately, so the model can vary it). ``build_full_context`` gathers the
week's calendar, class history, recent plans and stale standards so the
brainstorm assistant knows where the teacher stands.
"""
import logging
from datetime import date, timedelta

from ..config import STALE_AFTER_DAYS
from ..db import load_tag_rows, class_map
from .task_helpers import local_date_str, parse_iso_date, monday_of

logger = logging.getLogger(__name__)

DAY_NAMES = ['Monday', 'Tuesday', 'Wednesday', 'Thursday', 'Friday', 'Saturday', 'Sunday']

BELLRINGER_CONTEXT_COLUMNS = 'id, date, journal_type, journal_prompt, act_skill, act_skill_category, is_approved'


def _today(date_str=None):
    return parse_iso_date(date_str) or date.today()


def build_recent_context(db, today=None):
    """Today, its weekday, and the ACT skills / journal types of the last 10 bellringers."""
    today = today or date.today()
    recent = db.table('bellringers').select(
        'journal_type, journal_prompt, act_skill'
    ).order('date', desc=True).limit(10).execute().data or []

    return {
        "today": local_date_str(today),
        "day_of_week": DAY_NAMES[today.weekday()],
        "recent_act_skills": [r['act_skill'] for r in recent if r.get('act_skill')],
        "recent_journal_types": [r['journal_type'] for r in recent if r.get('journal_type')],
    }


def find_standards_gaps(db, today):
    """Standards with no dated activity in the last four weeks, across all classes."""
    standards = db.table('standards').select('id, code, description').order('code').execute().data or []
    if not standards:
        return []

    last_used = {}
    for tag in load_tag_rows(db):
        activity = tag.get('activity')
        if not activity or not activity.get('date') or activity['date'] > local_date_str(today):
            continue
        current = last_used.get(tag['standard_id'])
        if current is None or activity['date'] > current:
            last_used[tag['standard_id']] = activity['date']

    gaps = []
    for std in standards:
        used = last_used.get(std['id'])
        days_since = (today - parse_iso_date(used)).days if used else None
        if days_since is None or days_since >= STALE_AFTER_DAYS:
            gaps.append({
                "standard_id": std['id'],
                "code": std['code'],
                "description": std['description'],
                "last_used": used,
                "days_since_used": days_since,
            })
    return gaps


def build_full_context(db, class_id=None, date_str=None):
    """Everything the planning assistant should know about the teacher's week."""
    today = _today(date_str)
    today_str = local_date_str(today)
    monday = monday_of(today)
    friday = monday + timedelta(days=4)

    school_days = db.table('calendar_events').select('id', count='exact').eq(
        'event_type', 'school_day'
    ).lte('date', today_str).execute()

    week_events = db.table('calendar_events').select('*').gte(
        'date', local_date_str(monday)
    ).lte('date', local_date_str(friday)).order('date').execute().data or []

    upcoming_events = db.table('calendar_events').select('*').gte(
        'date', today_str
    ).lte('date', local_date_str(today + timedelta(days=7))).order('date').execute().data or []

    approved = db.table('bellringers').select(BELLRINGER_CONTEXT_COLUMNS).eq(
        'is_approved', True
    ).order('date', desc=True).limit(20).execute().data or []

    recent = db.table('bellringers').select(BELLRINGER_CONTEXT_COLUMNS).order(
        'date', desc=True
    ).limit(10).execute().data or []

    classes = list(class_map(db).values())
    if class_id is not None:
        classes = [c for c in classes if c['id'] == class_id]

    class_history = []
    for cls in classes:
        activities = db.table('activities').select(
            'date, title, description, activity_type, is_done'
        ).eq('class_id', cls['id']).order('date', desc=True).limit(10).execute().data or []
        class_history.append({
            "class_id": cls['id'],
            "class_name": cls['name'],
            "recent_activities": activities,
        })

    plans = db.table('lesson_plans').select('id, week_of, status, created_at').order(
        'created_at', desc=True
    ).limit(2).execute().data or []
    for plan in plans:
        plan['activities'] = db.table('activities').select(
            'id, class_id, date, title, description, activity_type, is_done'
        ).eq('lesson_plan_id', plan['id']).order('date').order('sort_order').execute().data or []

    return {
        "today": today_str,
        "day_of_week": DAY_NAMES[today.weekday()],
        "school_day_number": school_days.count,
        "calendar_events_this_week": week_events,
        "approved_bellringers": approved,
        "recent_bellringers": recent,
        "recent_act_skills": [b['act_skill'] for b in recent if b.get('act_skill')],
        "recent_journal_types": [b['journal_type'] for b in recent if b.get('journal_type')],
        "class_history": class_history,
        "standards_gaps": find_standards_gaps(db, today),
        "upcoming_events": upcoming_events,
        "recent_lesson_plans": plans,
    }


def summarize_context(context, max_gaps=10):
    """Short plain-text digest of ``build_full_context`` for a system prompt."""
    lines = [f"Today is {context['day_of_week']}, {context['today']}."]
    if context.get('school_day_number'):
        lines.append(f"School day #{context['school_day_number']}.")

    if context['upcoming_events']:
        events = ", ".join(
            f"{e['date']} {e['title']} ({e['event_type']})" for e in context['upcoming_events']
        )
        lines.append(f"Upcoming events: {events}")

    for history in context['class_history']:
        titles = [a['title'] for a in history['recent_activities'][:5]]
        if titles:
            lines.append(f"Recently in {history['class_name']}: {'; '.join(titles)}")

    gaps = context['standards_gaps']
    if gaps:
        codes = ", ".join(g['code'] for g in gaps[:max_gaps])
        more = f" (+{len(gaps) - max_gaps} more)" if len(gaps) > max_gaps else ""
        lines.append(f"Standards not taught in the last 4 weeks: {codes}{more}")

    return "\n".join(lines)
