"""
Bellringer API routes for TeacherDash.

A bellringer is one row per date (ACT question + first prompt mirrored for
older views) plus up to four ``bellringer_prompts`` slots.
"""
import time
import logging
from datetime import date as Date
from flask import Blueprint, request, jsonify

from ..config import DEFAULT_JOURNAL_SUBPROMPT
from ..db import (
    get_db, get_by_id, first_row, now_iso, find_bellringer, get_or_create_bellringer,
    load_prompts, upsert_prompt, upload_file,
)
from ..errors import TeacherDashError, GenerationError, UpstreamError
from ..services.ai_service import load_provider
from ..services.bellringer_generator import (
    generate_full_bellringer, generate_single_prompt, generate_from_image, generate_act_question,
)
from ..services.context_engine import build_recent_context
from ..services.display_helpers import build_display_payload
from ..services.task_helpers import (
    parse_iso_date, local_date_str, upcoming_school_monday, week_dates,
)

logger = logging.getLogger(__name__)

bellringer_bp = Blueprint('bellringers', __name__)

ACT_FIELDS = [
    'act_skill_category', 'act_skill', 'act_question',
    'act_choice_a', 'act_choice_b', 'act_choice_c', 'act_choice_d',
    'act_correct_answer', 'act_explanation', 'act_rule',
]

JOURNAL_FIELDS = ['journal_type', 'journal_prompt', 'journal_subprompt']

COPY_FIELDS = JOURNAL_FIELDS + ['journal_image_path'] + ACT_FIELDS

PROMPT_EDIT_FIELDS = ['journal_type', 'journal_prompt', 'journal_subprompt']


def act_updates(result):
    return {field: result.get(field) or None for field in ACT_FIELDS}


def prompt_fields(p):
    return {
        "journal_type": p.get('journal_type') or None,
        "journal_prompt": p.get('journal_prompt') or None,
        "journal_subprompt": p.get('journal_subprompt') or DEFAULT_JOURNAL_SUBPROMPT,
    }


def bellringer_with_prompts(db, bellringer_id):
    return {
        "bellringer": get_by_id(db, 'bellringers', bellringer_id),
        "prompts": load_prompts(db, bellringer_id),
    }


def parse_slot(value):
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


# ══════════════════════════════════════════════════════════════
# READ / APPROVE
# ══════════════════════════════════════════════════════════════

@bellringer_bp.route('/api/bellringers/<date>', methods=['GET'])
def get_bellringer(date):
    try:
        db = get_db()
        bellringer = find_bellringer(db, date)
        if not bellringer:
            return jsonify({"bellringer": None, "prompts": []})
        return jsonify({"bellringer": bellringer, "prompts": load_prompts(db, bellringer['id'])})
    except TeacherDashError:
        raise
    except Exception as e:
        logger.error("Error loading bellringer for %s: %s", date, e)
        return jsonify({"error": str(e)}), 500


@bellringer_bp.route('/api/bellringers/approve', methods=['POST'])
def approve_bellringer():
    data = request.get_json(silent=True) or {}
    date = data.get('date')
    if not date:
        return jsonify({"error": "date is required"}), 400

    try:
        db = get_db()
        existing = find_bellringer(db, date, 'id')
        if not existing:
            return jsonify({"error": "No bellringer found for this date"}), 404

        bellringer = first_row(db.table('bellringers').update({
            "is_approved": True,
            "status": "approved",
            "updated_at": now_iso(),
        }).eq('id', existing['id']).execute())
        return jsonify({"bellringer": bellringer})
    except TeacherDashError:
        raise
    except Exception as e:
        logger.error("Error approving bellringer for %s: %s", date, e)
        return jsonify({"error": str(e)}), 500


@bellringer_bp.route('/api/display/<date>', methods=['GET'])
def display_payload(date):
    """Everything the classroom display shows for a date."""
    if not parse_iso_date(date):
        return jsonify({"error": "Invalid date format. Use YYYY-MM-DD"}), 400

    try:
        db = get_db()
        bellringer = find_bellringer(db, date)
        if not bellringer:
            return jsonify({"error": "No bellringer for this date"}), 404
        return jsonify(build_display_payload(date, bellringer, load_prompts(db, bellringer['id'])))
    except TeacherDashError:
        raise
    except Exception as e:
        logger.error("Error building display for %s: %s", date, e)
        return jsonify({"error": str(e)}), 500


# ══════════════════════════════════════════════════════════════
# GENERATION
# ══════════════════════════════════════════════════════════════

@bellringer_bp.route('/api/bellringers/generate', methods=['POST'])
def generate():
    """Generate four prompts and an ACT question for a date.

    With ``promptsOnly`` the ACT columns are left alone so a separate
    ACT generation for the same date is not overwritten.
    """
    data = request.get_json(silent=True) or {}
    date = data.get('date')
    if not date:
        return jsonify({"error": "date is required"}), 400

    try:
        db = get_db()
        result = generate_full_bellringer(
            load_provider(db), build_recent_context(db), data.get('notes') or '',
            with_act=not data.get('promptsOnly'),
        )

        bellringer_id, _ = get_or_create_bellringer(db, date)

        updates = prompt_fields(result)
        updates.update({"status": "draft", "updated_at": now_iso()})
        if not data.get('promptsOnly'):
            updates.update(act_updates(result))
        db.table('bellringers').update(updates).eq('id', bellringer_id).execute()

        for slot, p in enumerate(result.get('prompts') or []):
            upsert_prompt(db, bellringer_id, slot, prompt_fields(p))

        return jsonify(bellringer_with_prompts(db, bellringer_id))
    except TeacherDashError:
        raise
    except Exception as e:
        logger.error("Bellringer generation failed for %s: %s", date, e)
        return jsonify({"error": str(e)}), 500


@bellringer_bp.route('/api/bellringers/generate-prompt', methods=['POST'])
def generate_prompt():
    data = request.get_json(silent=True) or {}
    date = data.get('date')
    slot = parse_slot(data.get('slot'))
    if not date or slot is None:
        return jsonify({"error": "date and slot are required"}), 400

    try:
        db = get_db()
        result = generate_single_prompt(
            load_provider(db), data.get('prompt_type'), data.get('notes') or ''
        )
        bellringer_id, _ = get_or_create_bellringer(db, date)
        prompt = upsert_prompt(db, bellringer_id, slot, prompt_fields(result))
        return jsonify({"prompt": prompt})
    except TeacherDashError:
        raise
    except Exception as e:
        logger.error("Prompt generation failed for %s slot %s: %s", date, slot, e)
        return jsonify({"error": str(e)}), 500


@bellringer_bp.route('/api/bellringers/generate-act', methods=['POST'])
def generate_act():
    data = request.get_json(silent=True) or {}
    date = data.get('date')
    if not date:
        return jsonify({"error": "date is required"}), 400

    try:
        db = get_db()
        result = generate_act_question(
            load_provider(db), build_recent_context(db), data.get('notes') or ''
        )
        bellringer_id, _ = get_or_create_bellringer(db, date)

        updates = act_updates(result)
        updates['updated_at'] = now_iso()
        bellringer = first_row(
            db.table('bellringers').update(updates).eq('id', bellringer_id).execute()
        )
        return jsonify({"bellringer": bellringer})
    except TeacherDashError:
        raise
    except Exception as e:
        logger.error("ACT generation failed for %s: %s", date, e)
        return jsonify({"error": str(e)}), 500


def _generate_day(db, provider, date_str, notes):
    """Create one day's bellringer. Returns the new bellringer id."""
    result = generate_full_bellringer(provider, build_recent_context(db), notes)

    row = {"date": date_str, "status": "draft", "is_approved": False}
    row.update(prompt_fields(result))
    row.update(act_updates(result))
    created = first_row(db.table('bellringers').insert(row).execute())
    if not created:
        raise UpstreamError(f"Failed to save bellringer for {date_str}")

    prompts = result.get('prompts') or []
    if prompts:
        db.table('bellringer_prompts').insert([
            dict(prompt_fields(p), bellringer_id=created['id'], slot=slot)
            for slot, p in enumerate(prompts)
        ]).execute()
    return created['id']


@bellringer_bp.route('/api/bellringers/generate-batch', methods=['POST'])
def generate_batch():
    """Generate bellringers for Monday to Friday of a week.

    Days that already have one are skipped unless ``skip_existing`` is
    false. One failing day does not stop the rest.
    """
    data = request.get_json(silent=True) or {}
    week_of = data.get('week_of') or local_date_str(upcoming_school_monday(Date.today()))
    notes = data.get('notes') or ''
    skip_existing = data.get('skip_existing') is not False

    monday = parse_iso_date(week_of)
    if monday is None:
        return jsonify({"error": "week_of must be YYYY-MM-DD"}), 400

    try:
        db = get_db()
        provider = load_provider(db)
    except TeacherDashError:
        raise
    except Exception as e:
        logger.error("Batch generation setup failed: %s", e)
        return jsonify({"error": str(e)}), 500

    results = []
    for date_str in week_dates(monday):
        if skip_existing:
            existing = find_bellringer(db, date_str, 'id')
            if existing:
                results.append({
                    "date": date_str, "success": True,
                    "bellringer_id": existing['id'], "skipped": True,
                })
                continue

        try:
            bellringer_id = _generate_day(db, provider, date_str, notes)
            results.append({"date": date_str, "success": True, "bellringer_id": bellringer_id})
        except GenerationError as e:
            logger.warning("Batch generation failed for %s: %s", date_str, e.message)
            results.append({"date": date_str, "success": False, "error": e.message})
        except Exception as e:
            logger.warning("Batch generation failed for %s: %s", date_str, e)
            results.append({"date": date_str, "success": False, "error": str(e)})

    return jsonify({
        "week_of": week_of,
        "results": results,
        "summary": {
            "generated": sum(1 for r in results if r['success'] and not r.get('skipped')),
            "skipped": sum(1 for r in results if r.get('skipped')),
            "failed": sum(1 for r in results if not r['success']),
        },
    })


# ══════════════════════════════════════════════════════════════
# EDITING
# ══════════════════════════════════════════════════════════════

@bellringer_bp.route('/api/bellringers/save', methods=['POST'])
def save_bellringer():
    """Save edited prompts and ACT fields for a date."""
    data = request.get_json(silent=True) or {}
    date = data.get('date')
    if not date:
        return jsonify({"error": "date is required"}), 400

    prompts = data.get('prompts') or []
    if not isinstance(prompts, list):
        return jsonify({"error": "prompts must be a list"}), 400

    try:
        db = get_db()
        bellringer_id, _ = get_or_create_bellringer(db, date)

        updates = {field: data[field] for field in ACT_FIELDS if field in data}
        updates['updated_at'] = now_iso()
        if prompts:
            first = next((p for p in prompts if p.get('slot') == 0), prompts[0])
            updates.update(prompt_fields(first))
        db.table('bellringers').update(updates).eq('id', bellringer_id).execute()

        for p in prompts:
            upsert_prompt(db, bellringer_id, p.get('slot', 0), prompt_fields(p))

        return jsonify(bellringer_with_prompts(db, bellringer_id))
    except TeacherDashError:
        raise
    except Exception as e:
        logger.error("Error saving bellringer for %s: %s", date, e)
        return jsonify({"error": str(e)}), 500


@bellringer_bp.route('/api/bellringers/reuse', methods=['POST'])
def reuse_bellringer():
    """Copy a past bellringer and all its prompts onto another date as a draft."""
    data = request.get_json(silent=True) or {}
    source_id = data.get('source_id')
    target_date = data.get('target_date')
    if not source_id or not target_date:
        return jsonify({"error": "source_id and target_date are required"}), 400

    try:
        db = get_db()
        source = get_by_id(db, 'bellringers', source_id)
        if not source:
            return jsonify({"error": "Source bellringer not found"}), 404

        source_prompts = load_prompts(db, source_id)
        target_id, _ = get_or_create_bellringer(db, target_date)

        updates = {field: source.get(field) for field in COPY_FIELDS}
        updates.update({"status": "draft", "is_approved": False, "updated_at": now_iso()})
        db.table('bellringers').update(updates).eq('id', target_id).execute()

        for p in source_prompts:
            upsert_prompt(db, target_id, p['slot'], {
                "journal_type": p.get('journal_type'),
                "journal_prompt": p.get('journal_prompt'),
                "journal_subprompt": p.get('journal_subprompt'),
                "image_path": p.get('image_path'),
            })

        return jsonify(bellringer_with_prompts(db, target_id))
    except TeacherDashError:
        raise
    except Exception as e:
        logger.error("Error reusing bellringer %s: %s", source_id, e)
        return jsonify({"error": str(e)}), 500


@bellringer_bp.route('/api/bellringers/send-to-slot', methods=['POST'])
def send_to_slot():
    """Copy one library prompt into a slot on another date."""
    data = request.get_json(silent=True) or {}
    prompt_id = data.get('prompt_id')
    target_date = data.get('target_date')
    slot = parse_slot(data.get('slot'))
    if not prompt_id or not target_date or slot is None:
        return jsonify({"error": "prompt_id, target_date, and slot are required"}), 400

    try:
        db = get_db()
        source = get_by_id(db, 'bellringer_prompts', prompt_id)
        if not source:
            return jsonify({"error": "Source prompt not found"}), 404

        target_id, _ = get_or_create_bellringer(db, target_date)
        prompt = upsert_prompt(db, target_id, slot, {
            "journal_type": source.get('journal_type'),
            "journal_prompt": source.get('journal_prompt'),
            "journal_subprompt": source.get('journal_subprompt'),
            "image_path": source.get('image_path'),
        })
        return jsonify({"prompt": prompt})
    except TeacherDashError:
        raise
    except Exception as e:
        logger.error("Error sending prompt %s to %s: %s", prompt_id, target_date, e)
        return jsonify({"error": str(e)}), 500


# ══════════════════════════════════════════════════════════════
# IMAGES
# ══════════════════════════════════════════════════════════════

@bellringer_bp.route('/api/bellringers/upload-image', methods=['POST'])
def upload_image():
    """Attach an image to a prompt slot, optionally writing a prompt about it."""
    image = request.files.get('image')
    date = request.form.get('date')
    slot = parse_slot(request.form.get('slot'))
    if not image or not date or slot is None:
        return jsonify({"error": "image, date, and slot are required"}), 400

    data = image.read()
    mime_type = image.mimetype or 'image/png'
    ext = mime_type.split('/')[-1] or 'png'
    path = f"bellringers/bellringer_{date}_slot{slot}_{int(time.time() * 1000)}.{ext}"

    try:
        db = get_db()
        public_url = upload_file(db, path, data, mime_type)

        bellringer_id, _ = get_or_create_bellringer(db, date)
        upsert_prompt(db, bellringer_id, slot, {"image_path": public_url})

        generated = None
        if request.form.get('generate_prompt') in ('true', '1'):
            try:
                result = generate_from_image(
                    load_provider(db), data, mime_type, request.form.get('notes') or ''
                )
                fields = prompt_fields(result)
                fields['journal_type'] = fields['journal_type'] or 'image'
                fields['image_path'] = public_url
                upsert_prompt(db, bellringer_id, slot, fields)
                generated = result
            except GenerationError as e:
                logger.warning("Image prompt generation failed for %s: %s", date, e.message)

        return jsonify({"path": public_url, "prompt": generated})
    except TeacherDashError:
        raise
    except Exception as e:
        logger.error("Image upload failed for %s slot %s: %s", date, slot, e)
        return jsonify({"error": str(e)}), 500


@bellringer_bp.route('/api/bellringers/remove-image', methods=['POST'])
def remove_image():
    data = request.get_json(silent=True) or {}
    date = data.get('date')
    slot = parse_slot(data.get('slot'))
    if not date or slot is None:
        return jsonify({"error": "date and slot are required"}), 400

    try:
        db = get_db()
        bellringer_id, _ = get_or_create_bellringer(db, date)
        prompt = first_row(db.table('bellringer_prompts').update({"image_path": None}).eq(
            'bellringer_id', bellringer_id
        ).eq('slot', slot).execute())
        return jsonify({"ok": True, "prompt": prompt})
    except TeacherDashError:
        raise
    except Exception as e:
        logger.error("Error removing image for %s slot %s: %s", date, slot, e)
        return jsonify({"error": str(e)}), 500


# ══════════════════════════════════════════════════════════════
# LIBRARY
# ══════════════════════════════════════════════════════════════

@bellringer_bp.route('/api/bellringers/library', methods=['GET'])
def library():
    """Every saved prompt, newest first, with its bellringer's date and status."""
    try:
        db = get_db()
        prompts = db.table('bellringer_prompts').select('*').order('id', desc=True).execute().data or []

        ids = list({p['bellringer_id'] for p in prompts})
        bellringers = {}
        if ids:
            rows = db.table('bellringers').select('id, date, status, is_approved').in_('id', ids).execute().data
            bellringers = {b['id']: b for b in rows or []}

        flattened = []
        for p in prompts:
            parent = bellringers.get(p['bellringer_id'])
            if not parent:
                continue
            flattened.append({
                "id": p['id'],
                "bellringer_id": p['bellringer_id'],
                "slot": p['slot'],
                "journal_type": p.get('journal_type'),
                "journal_prompt": p.get('journal_prompt'),
                "journal_subprompt": p.get('journal_subprompt'),
                "image_path": p.get('image_path'),
                "date": parent.get('date'),
                "status": parent.get('status'),
                "is_approved": bool(parent.get('is_approved')),
            })
        return jsonify({"prompts": flattened})
    except TeacherDashError:
        raise
    except Exception as e:
        logger.error("Error loading prompt library: %s", e)
        return jsonify({"error": str(e)}), 500


@bellringer_bp.route('/api/bellringers/library/<int:prompt_id>', methods=['PATCH'])
def update_library_prompt(prompt_id):
    data = request.get_json(silent=True) or {}
    updates = {k: data[k] for k in PROMPT_EDIT_FIELDS if k in data}
    if not updates:
        return jsonify({"error": "No fields to update"}), 400

    try:
        prompt = first_row(
            get_db().table('bellringer_prompts').update(updates).eq('id', prompt_id).execute()
        )
        if not prompt:
            return jsonify({"error": "Prompt not found"}), 404
        return jsonify({"prompt": prompt})
    except TeacherDashError:
        raise
    except Exception as e:
        logger.error("Error updating prompt %s: %s", prompt_id, e)
        return jsonify({"error": str(e)}), 500


@bellringer_bp.route('/api/bellringers/library/<int:prompt_id>', methods=['DELETE'])
def delete_library_prompt(prompt_id):
    try:
        get_db().table('bellringer_prompts').delete().eq('id', prompt_id).execute()
        return jsonify({"ok": True})
    except TeacherDashError:
        raise
    except Exception as e:
        logger.error("Error deleting prompt %s: %s", prompt_id, e)
        return jsonify({"error": str(e)}), 500
