"""
Substitute dashboard (SubDash) routes for TeacherDash.

Plans freeze a snapshot of the day when they are created; the classroom
profile and media library feed that snapshot.
"""
import re
import json
import time
import uuid
import logging
from flask import Blueprint, request, jsonify

from ..db import (
    get_db, get_by_id, first_row, now_iso, get_profile, upload_file, remove_public_file,
)
from ..errors import TeacherDashError
from ..services.subdash_generator import generate_snapshot, parse_json_list
from ..services.task_helpers import parse_iso_date

logger = logging.getLogger(__name__)

sub_bp = Blueprint('sub', __name__)

PLAN_LIST_COLUMNS = (
    'id, date, share_token, custom_notes, sub_name, sub_contact, status, mode, created_at, updated_at'
)
SUB_MEDIA_DIR = 'sub-media'
SEATING_CHART_KEY = 'seating_chart_urls'
LINK_MEDIA_TYPES = ('link', 'video')
UNSAFE_FILENAME_RE = re.compile(r'[^a-zA-Z0-9._-]')


def request_origin():
    return request.headers.get('Origin') or request.host_url.rstrip('/')


def profile_value(value):
    return value if isinstance(value, str) else json.dumps(value)


# ══════════════════════════════════════════════════════════════
# PLANS
# ══════════════════════════════════════════════════════════════

@sub_bp.route('/api/sub/plans', methods=['GET'])
def list_plans():
    try:
        plans = get_db().table('subdash_plans').select(PLAN_LIST_COLUMNS).order(
            'created_at', desc=True
        ).execute().data or []
        return jsonify(plans)
    except TeacherDashError:
        raise
    except Exception as e:
        logger.error("Error listing sub plans: %s", e)
        return jsonify({"error": str(e)}), 500


@sub_bp.route('/api/sub/plans', methods=['POST'])
def create_plan():
    """Snapshot the day for a substitute.

    Emergency plans are shared immediately; planned ones start as drafts.
    """
    data = request.get_json(silent=True) or {}
    date = data.get('date')
    if not parse_iso_date(date):
        return jsonify({"error": "Valid date (YYYY-MM-DD) is required"}), 400

    mode = data.get('mode') or 'planned'
    media_ids = data.get('media_ids') or []
    origin = request_origin()

    try:
        db = get_db()
        snapshot = generate_snapshot(db, date, data.get('custom_notes'), media_ids, origin)
        snapshot['sub_name'] = data.get('sub_name')
        snapshot['sub_contact'] = data.get('sub_contact')

        share_token = str(uuid.uuid4())
        plan = first_row(db.table('subdash_plans').insert({
            "date": date,
            "share_token": share_token,
            "custom_notes": data.get('custom_notes'),
            "sub_name": data.get('sub_name'),
            "sub_contact": data.get('sub_contact'),
            "status": 'shared' if mode == 'emergency' else 'draft',
            "mode": mode,
            "snapshot": snapshot,
        }).execute())

        if media_ids:
            db.table('subdash_media').insert([
                {"subdash_plan_id": plan['id'], "media_library_id": media_id}
                for media_id in media_ids
            ]).execute()

        plan['share_url'] = f"{origin}/subdash/{share_token}"
        logger.info("Created %s sub plan for %s", mode, date)
        return jsonify(plan), 201
    except TeacherDashError:
        raise
    except Exception as e:
        logger.error("Error creating sub plan for %s: %s", date, e)
        return jsonify({"error": str(e)}), 500


@sub_bp.route('/api/sub/plans/preview', methods=['POST'])
def preview_plan():
    data = request.get_json(silent=True) or {}
    date = data.get('date')
    if not parse_iso_date(date):
        return jsonify({"error": "Valid date (YYYY-MM-DD) is required"}), 400

    try:
        snapshot = generate_snapshot(
            get_db(), date, data.get('custom_notes'), data.get('media_ids') or [], request_origin()
        )
        return jsonify(snapshot)
    except TeacherDashError:
        raise
    except Exception as e:
        logger.error("Error previewing sub plan for %s: %s", date, e)
        return jsonify({"error": str(e)}), 500


@sub_bp.route('/api/sub/plans/<int:plan_id>', methods=['GET'])
def get_plan(plan_id):
    try:
        plan = get_by_id(get_db(), 'subdash_plans', plan_id)
        if not plan:
            return jsonify({"error": "Not found"}), 404
        return jsonify(plan)
    except TeacherDashError:
        raise
    except Exception as e:
        logger.error("Error loading sub plan %s: %s", plan_id, e)
        return jsonify({"error": str(e)}), 500


@sub_bp.route('/api/sub/plans/<int:plan_id>', methods=['PATCH'])
def update_plan(plan_id):
    """Edit notes, substitute details or status; the snapshot follows the edits."""
    data = request.get_json(silent=True) or {}
    updates = {k: data[k] for k in ('custom_notes', 'sub_name', 'sub_contact', 'status') if k in data}
    updates['updated_at'] = now_iso()

    try:
        db = get_db()
        existing = get_by_id(db, 'subdash_plans', plan_id, 'id, snapshot')
        if not existing:
            return jsonify({"error": "Not found"}), 404

        if existing.get('snapshot'):
            snapshot = dict(existing['snapshot'])
            for key in ('sub_name', 'sub_contact', 'custom_notes'):
                if key in data:
                    snapshot[key] = data[key]
            updates['snapshot'] = snapshot

        plan = first_row(db.table('subdash_plans').update(updates).eq('id', plan_id).execute())
        return jsonify(plan)
    except TeacherDashError:
        raise
    except Exception as e:
        logger.error("Error updating sub plan %s: %s", plan_id, e)
        return jsonify({"error": str(e)}), 500


@sub_bp.route('/api/sub/plans/<int:plan_id>', methods=['DELETE'])
def delete_plan(plan_id):
    try:
        db = get_db()
        db.table('subdash_media').delete().eq('subdash_plan_id', plan_id).execute()
        db.table('subdash_plans').delete().eq('id', plan_id).execute()
        return jsonify({"success": True})
    except TeacherDashError:
        raise
    except Exception as e:
        logger.error("Error deleting sub plan %s: %s", plan_id, e)
        return jsonify({"error": str(e)}), 500


# ══════════════════════════════════════════════════════════════
# CLASSROOM PROFILE
# ══════════════════════════════════════════════════════════════

@sub_bp.route('/api/sub/profile', methods=['GET'])
def load_profile():
    try:
        return jsonify(get_profile(get_db()))
    except TeacherDashError:
        raise
    except Exception as e:
        logger.error("Error loading classroom profile: %s", e)
        return jsonify({"error": str(e)}), 500


@sub_bp.route('/api/sub/profile', methods=['POST'])
def save_profile():
    """Upsert profile keys. Non-string values are stored as JSON."""
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return jsonify({"error": "Body must be a key-value object"}), 400
    if not data:
        return jsonify({"error": "No profile data provided"}), 400

    try:
        db = get_db()
        rows = [{"key": key, "value": profile_value(value)} for key, value in data.items()]
        db.table('classroom_profiles').upsert(rows, on_conflict='key').execute()
        return jsonify(get_profile(db))
    except TeacherDashError:
        raise
    except Exception as e:
        logger.error("Error saving classroom profile: %s", e)
        return jsonify({"error": str(e)}), 500


def _save_seating_charts(db, urls):
    db.table('classroom_profiles').upsert(
        {"key": SEATING_CHART_KEY, "value": json.dumps(urls)}, on_conflict='key'
    ).execute()


@sub_bp.route('/api/sub/profile/seating-chart', methods=['POST'])
def add_seating_chart():
    image = request.files.get('image')
    if not image:
        return jsonify({"error": "image is required"}), 400

    mime_type = image.mimetype or 'image/png'
    ext = mime_type.split('/')[-1] or 'png'
    path = f"{SUB_MEDIA_DIR}/seating_chart_{int(time.time() * 1000)}.{ext}"

    try:
        db = get_db()
        public_url = upload_file(db, path, image.read(), mime_type)

        urls = parse_json_list(get_profile(db).get(SEATING_CHART_KEY))
        urls.append(public_url)
        _save_seating_charts(db, urls)

        return jsonify({"url": public_url, "urls": urls})
    except TeacherDashError:
        raise
    except Exception as e:
        logger.error("Seating chart upload failed: %s", e)
        return jsonify({"error": str(e)}), 500


@sub_bp.route('/api/sub/profile/seating-chart', methods=['DELETE'])
def remove_seating_chart():
    data = request.get_json(silent=True) or {}
    url = data.get('url')
    if not url:
        return jsonify({"error": "url is required"}), 400

    try:
        db = get_db()
        urls = [u for u in parse_json_list(get_profile(db).get(SEATING_CHART_KEY)) if u != url]
        _save_seating_charts(db, urls)
        remove_public_file(db, url)
        return jsonify({"urls": urls})
    except TeacherDashError:
        raise
    except Exception as e:
        logger.error("Error removing seating chart: %s", e)
        return jsonify({"error": str(e)}), 500


# ══════════════════════════════════════════════════════════════
# MEDIA LIBRARY
# ══════════════════════════════════════════════════════════════

@sub_bp.route('/api/sub/media', methods=['GET'])
def list_media():
    try:
        media = get_db().table('media_library').select('*').order(
            'uploaded_at', desc=True
        ).execute().data or []
        return jsonify(media)
    except TeacherDashError:
        raise
    except Exception as e:
        logger.error("Error listing media: %s", e)
        return jsonify({"error": str(e)}), 500


def _file_media_row(db):
    upload = request.files.get('file')
    if not upload:
        return None
    filename = upload.filename or 'upload.bin'
    path = f"{SUB_MEDIA_DIR}/{int(time.time() * 1000)}_{UNSAFE_FILENAME_RE.sub('_', filename)}"
    public_url = upload_file(db, path, upload.read(), upload.mimetype or 'application/octet-stream')

    class_id = request.form.get('class_id', type=int)
    tags = [t.strip() for t in (request.form.get('tags') or '').split(',') if t.strip()]
    return {
        "name": request.form.get('name') or filename or 'Untitled',
        "file_path": public_url,
        "media_type": "file",
        "class_id": class_id,
        "tags": tags,
    }


@sub_bp.route('/api/sub/media', methods=['POST'])
def add_media():
    """Add a media item: a multipart ``file`` upload, or a JSON link/video."""
    try:
        db = get_db()

        if request.mimetype == 'multipart/form-data':
            row = _file_media_row(db)
            if row is None:
                return jsonify({"error": "file is required"}), 400
        else:
            data = request.get_json(silent=True) or {}
            if not data.get('name') or not data.get('url'):
                return jsonify({"error": "name and url are required"}), 400
            if data.get('media_type') not in LINK_MEDIA_TYPES:
                return jsonify({"error": "media_type must be link or video"}), 400
            row = {
                "name": data['name'],
                "url": data['url'],
                "media_type": data['media_type'],
                "class_id": data.get('class_id') or None,
                "tags": data.get('tags') or [],
            }

        created = first_row(db.table('media_library').insert(row).execute())
        return jsonify(created), 201
    except TeacherDashError:
        raise
    except Exception as e:
        logger.error("Error adding media: %s", e)
        return jsonify({"error": str(e)}), 500


@sub_bp.route('/api/sub/media/<int:media_id>', methods=['PATCH'])
def update_media(media_id):
    data = request.get_json(silent=True) or {}
    updates = {k: data[k] for k in ('name', 'url', 'tags') if k in data}
    if 'class_id' in data:
        updates['class_id'] = data['class_id'] or None
    if not updates:
        return jsonify({"error": "No updates provided"}), 400

    try:
        item = first_row(get_db().table('media_library').update(updates).eq('id', media_id).execute())
        if not item:
            return jsonify({"error": "Not found"}), 404
        return jsonify(item)
    except TeacherDashError:
        raise
    except Exception as e:
        logger.error("Error updating media %s: %s", media_id, e)
        return jsonify({"error": str(e)}), 500


@sub_bp.route('/api/sub/media/<int:media_id>', methods=['DELETE'])
def delete_media(media_id):
    try:
        db = get_db()
        item = get_by_id(db, 'media_library', media_id)
        if not item:
            return jsonify({"error": "Not found"}), 404

        db.table('subdash_media').delete().eq('media_library_id', media_id).execute()
        db.table('media_library').delete().eq('id', media_id).execute()
        if item.get('media_type') == 'file':
            remove_public_file(db, item.get('file_path'))
        return jsonify({"success": True})
    except TeacherDashError:
        raise
    except Exception as e:
        logger.error("Error deleting media %s: %s", media_id, e)
        return jsonify({"error": str(e)}), 500
