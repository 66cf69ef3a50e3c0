"""
Supabase access for TeacherDash.

The client is built once per application by ``create_supabase_client`` and
kept in ``app.extensions['supabase']``; request code reaches it through
``get_db()``. Tests hand ``create_app`` their own client instead.

Joins are done here in Python rather than through PostgREST embedded
resources so every query stays a flat ``table().select()`` call.
"""
import os
import logging
from datetime import datetime, timezone

from flask import current_app
from supabase import create_client, Client

from .config import config, DEFAULT_JOURNAL_SUBPROMPT, STORAGE_BUCKET
from .errors import UpstreamError

logger = logging.getLogger(__name__)

EXTENSION_KEY = 'supabase'


def create_supabase_client(url=None, key=None) -> Client:
    """Create a Supabase client from explicit credentials or the environment."""
    url = url or config.supabase_url or os.getenv("SUPABASE_URL")
    key = key or config.supabase_service_key or os.getenv("SUPABASE_SERVICE_KEY")
    if not url or not key:
        raise UpstreamError(
            "Supabase credentials not configured. Check SUPABASE_URL and SUPABASE_SERVICE_KEY in .env"
        )
    return create_client(url, key)


def init_db(app, client=None):
    """Attach a client to the app. Without one, it is created on first use."""
    app.extensions[EXTENSION_KEY] = client


def get_db():
    """Return the app's Supabase client, creating it on first use."""
    client = current_app.extensions.get(EXTENSION_KEY)
    if client is None:
        client = create_supabase_client()
        current_app.extensions[EXTENSION_KEY] = client
    return client


def now_iso():
    return datetime.now(timezone.utc).isoformat()


def first_row(result):
    """First row of a query result, or None."""
    if result is None or not result.data:
        return None
    return result.data[0]


def get_by_id(db, table, row_id, columns='*'):
    result = db.table(table).select(columns).eq('id', row_id).limit(1).execute()
    return first_row(result)


def key_value_map(rows):
    """Turn ``[{key, value}, ...]`` rows into a dict."""
    return {row['key']: row['value'] for row in rows or []}


def get_settings(db, keys=None):
    query = db.table('settings').select('key, value')
    if keys:
        query = query.in_('key', list(keys))
    return key_value_map(query.execute().data)


def get_profile(db):
    return key_value_map(db.table('classroom_profiles').select('key, value').execute().data)


# ---------------------------------------------------------------------------
# Python-side joins
# ---------------------------------------------------------------------------

def class_map(db):
    rows = db.table('classes').select('id, name, periods, color').order('id').execute().data
    return {c['id']: c for c in rows or []}


def attach_classes(db, activities, classes=None):
    """Add a ``classes`` dict (name, periods, color) to each activity row."""
    classes = classes if classes is not None else class_map(db)
    for act in activities:
        cls = classes.get(act.get('class_id'))
        act['classes'] = (
            {"name": cls['name'], "periods": cls.get('periods'), "color": cls.get('color')}
            if cls else None
        )
    return activities


def attach_standards(db, activities):
    """Add ``activity_standards`` (standard_id, tagged_by, standards{code, description, strand})."""
    ids = [a['id'] for a in activities]
    if not ids:
        return activities

    tags = db.table('activity_standards').select(
        'activity_id, standard_id, tagged_by'
    ).in_('activity_id', ids).execute().data or []

    std_ids = list({t['standard_id'] for t in tags})
    standards = {}
    if std_ids:
        rows = db.table('standards').select('id, code, description, strand').in_('id', std_ids).execute().data
        standards = {s['id']: s for s in rows or []}

    by_activity = {}
    for tag in tags:
        std = standards.get(tag['standard_id'])
        by_activity.setdefault(tag['activity_id'], []).append({
            "standard_id": tag['standard_id'],
            "tagged_by": tag.get('tagged_by'),
            "standards": (
                {"code": std['code'], "description": std['description'], "strand": std.get('strand')}
                if std else None
            ),
        })

    for act in activities:
        act['activity_standards'] = by_activity.get(act['id'], [])
    return activities


def load_tag_rows(db, standard_id=None):
    """Tag rows joined to their activity's date/class_id.

    Rows whose activity no longer exists get ``activity = None``.
    """
    query = db.table('activity_standards').select('activity_id, standard_id, tagged_by')
    if standard_id is not None:
        query = query.eq('standard_id', standard_id)
    tags = query.execute().data or []

    act_ids = list({t['activity_id'] for t in tags})
    activities = {}
    if act_ids:
        rows = db.table('activities').select(
            'id, title, date, class_id, lesson_plan_id'
        ).in_('id', act_ids).execute().data
        activities = {a['id']: a for a in rows or []}

    for tag in tags:
        tag['activity'] = activities.get(tag['activity_id'])
    return tags


# ---------------------------------------------------------------------------
# Bellringer helpers
# ---------------------------------------------------------------------------

def find_bellringer(db, date_str, columns='*'):
    result = db.table('bellringers').select(columns).eq('date', date_str).order(
        'id', desc=True
    ).limit(1).execute()
    return first_row(result)


def get_or_create_bellringer(db, date_str):
    """Return ``(id, is_new)`` for the bellringer on a date."""
    existing = find_bellringer(db, date_str, 'id')
    if existing:
        return existing['id'], False

    created = first_row(db.table('bellringers').insert({
        "date": date_str,
        "status": "draft",
        "is_approved": False,
    }).execute())
    if not created:
        raise UpstreamError(f"Failed to create bellringer for {date_str}")
    return created['id'], True


def load_prompts(db, bellringer_id):
    return db.table('bellringer_prompts').select('*').eq(
        'bellringer_id', bellringer_id
    ).order('slot').execute().data or []


def upsert_prompt(db, bellringer_id, slot, fields):
    row = {"bellringer_id": bellringer_id, "slot": slot}
    row.update(fields)
    if 'journal_subprompt' in row and not row['journal_subprompt']:
        row['journal_subprompt'] = DEFAULT_JOURNAL_SUBPROMPT
    result = db.table('bellringer_prompts').upsert(row, on_conflict='bellringer_id,slot').execute()
    return first_row(result)


# ---------------------------------------------------------------------------
# Storage
# ---------------------------------------------------------------------------

def upload_file(db, path, data, content_type, bucket=None):
    """Upload bytes to Supabase Storage and return the public URL."""
    bucket = bucket or STORAGE_BUCKET
    db.storage.from_(bucket).upload(path, data, {"content-type": content_type, "upsert": "true"})
    return db.storage.from_(bucket).get_public_url(path)


def remove_public_file(db, public_url, bucket=None):
    """Best-effort removal of a file referenced by its public URL."""
    bucket = bucket or STORAGE_BUCKET
    marker = f"/{bucket}/"
    if not public_url or marker not in public_url:
        return
    path = public_url.split(marker, 1)[1].split('?', 1)[0]
    try:
        db.storage.from_(bucket).remove([path])
    except Exception as e:
        logger.warning("Storage cleanup failed for %s: %s", path, e)
