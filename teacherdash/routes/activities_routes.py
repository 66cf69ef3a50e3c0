"""
Activity API routes for TeacherDash.
CRUD plus bump-to-next-day, standards tagging and AI regeneration.
"""
import logging
from flask import Blueprint, request, jsonify

from ..db import (
    get_db, get_by_id, first_row, attach_classes, attach_standards,
)
from ..errors import TeacherDashError
from ..services.ai_service import load_provider
from ..services.lesson_plan_generator import regenerate_activity, summarize_history
from ..services.standards_tagger import tag_and_store, tag_activity, store_tags
from ..services.task_helpers import parse_iso_date, next_school_day, local_date_str

logger = logging.getLogger(__name__)

activities_bp = Blueprint('activities', __name__)

ACTIVITY_FIELDS = (
    'class_id', 'lesson_plan_id', 'date', 'title', 'description', 'activity_type',
    'sort_order', 'material_status', 'material_content', 'material_file_path',
    'is_done', 'is_graded', 'moved_to_date',
)


def load_activity(db, activity_id, with_standards=False):
    activity = get_by_id(db, 'activities', activity_id)
    if not activity:
        return None
    attach_classes(db, [activity])
    if with_standards:
        attach_standards(db, [activity])
    return activity


@activities_bp.route('/api/activities', methods=['GET'])
def list_activities():
    """Activities filtered by ``date`` and/or ``class_id``, with class and standards."""
    date = request.args.get('date')
    class_id = request.args.get('class_id', type=int)

    try:
        db = get_db()
        query = db.table('activities').select('*')
        if date:
            query = query.eq('date', date)
        if class_id is not None:
            query = query.eq('class_id', class_id)
        activities = query.order('sort_order').order('created_at').execute().data or []

        attach_classes(db, activities)
        attach_standards(db, activities)
        return jsonify(activities)
    except TeacherDashError:
        raise
    except Exception as e:
        logger.error("Error listing activities: %s", e)
        return jsonify({"error": str(e)}), 500


@activities_bp.route('/api/activities', methods=['POST'])
def create_activity():
    data = request.get_json(silent=True) or {}
    title = (data.get('title') or '').strip()
    if not data.get('class_id') or not title:
        return jsonify({"error": "class_id and title are required"}), 400

    try:
        db = get_db()
        created = first_row(db.table('activities').insert({
            "class_id": data['class_id'],
            "date": data.get('date') or None,
            "title": title,
            "description": data.get('description') or None,
            "activity_type": data.get('activity_type') or 'lesson',
            "lesson_plan_id": data.get('lesson_plan_id') or None,
            "material_status": data.get('material_status') or 'not_needed',
            "sort_order": data.get('sort_order') or 0,
        }).execute())
        attach_classes(db, [created])
        return jsonify(created), 201
    except TeacherDashError:
        raise
    except Exception as e:
        logger.error("Error creating activity: %s", e)
        return jsonify({"error": str(e)}), 500


@activities_bp.route('/api/activities/<int:activity_id>', methods=['PATCH'])
def update_activity(activity_id):
    data = request.get_json(silent=True) or {}
    updates = {k: data[k] for k in ACTIVITY_FIELDS if k in data}
    if not updates:
        return jsonify({"error": "No fields to update"}), 400
    if 'title' in updates and not (updates['title'] or '').strip():
        return jsonify({"error": "title cannot be empty"}), 400

    try:
        db = get_db()
        updated = first_row(db.table('activities').update(updates).eq('id', activity_id).execute())
        if not updated:
            return jsonify({"error": "Activity not found"}), 404
        attach_classes(db, [updated])
        return jsonify(updated)
    except TeacherDashError:
        raise
    except Exception as e:
        logger.error("Error updating activity %s: %s", activity_id, e)
        return jsonify({"error": str(e)}), 500


@activities_bp.route('/api/activities/<int:activity_id>', methods=['DELETE'])
def delete_activity(activity_id):
    try:
        db = get_db()
        db.table('activity_standards').delete().eq('activity_id', activity_id).execute()
        deleted = db.table('activities').delete().eq('id', activity_id).execute().data
        if not deleted:
            return jsonify({"error": "Activity not found"}), 404
        return jsonify({"success": True})
    except TeacherDashError:
        raise
    except Exception as e:
        logger.error("Error deleting activity %s: %s", activity_id, e)
        return jsonify({"error": str(e)}), 500


@activities_bp.route('/api/activities/<int:activity_id>/bump', methods=['POST'])
def bump_activity(activity_id):
    """Move an activity to the next weekday."""
    try:
        db = get_db()
        activity = get_by_id(db, 'activities', activity_id)
        if not activity:
            return jsonify({"error": "Activity not found"}), 404

        current = parse_iso_date(activity.get('date'))
        if current is None:
            return jsonify({"error": "Activity has no date to bump from"}), 400

        next_day = local_date_str(next_school_day(current))
        updated = first_row(db.table('activities').update({
            "date": next_day,
            "moved_to_date": next_day,
        }).eq('id', activity_id).execute())
        attach_classes(db, [updated])

        return jsonify({
            "activity": updated,
            "bumped_from": activity['date'],
            "bumped_to": next_day,
        })
    except TeacherDashError:
        raise
    except Exception as e:
        logger.error("Error bumping activity %s: %s", activity_id, e)
        return jsonify({"error": str(e)}), 500


@activities_bp.route('/api/activities/<int:activity_id>/tag-standards', methods=['POST'])
def tag_activity_standards(activity_id):
    try:
        db = get_db()
        activity = load_activity(db, activity_id)
        if not activity:
            return jsonify({"error": "Activity not found"}), 404

        class_name = (activity.get('classes') or {}).get('name')
        result = tag_and_store(load_provider(db), db, activity, class_name)
        return jsonify({
            "activity_id": activity_id,
            "tagged": result['tagged'],
            "reasoning": result['reasoning'],
        })
    except TeacherDashError:
        raise
    except Exception as e:
        logger.error("Error tagging activity %s: %s", activity_id, e)
        return jsonify({"error": str(e)}), 500


@activities_bp.route('/api/activities/<int:activity_id>/regenerate', methods=['POST'])
def regenerate(activity_id):
    """Replace an activity with an AI alternative and retag it."""
    try:
        db = get_db()
        activity = load_activity(db, activity_id)
        if not activity:
            return jsonify({"error": "Activity not found"}), 404

        summary = ''
        if activity.get('lesson_plan_id'):
            plan = get_by_id(db, 'lesson_plans', activity['lesson_plan_id'], 'brainstorm_history')
            if plan:
                summary = summarize_history(plan.get('brainstorm_history'))

        class_name = (activity.get('classes') or {}).get('name') or 'Unknown Class'
        provider = load_provider(db)
        replacement = regenerate_activity(provider, activity, class_name, summary)

        db.table('activities').update(replacement).eq('id', activity_id).execute()

        try:
            codes, _ = tag_activity(
                provider, db, replacement['title'], replacement['description'], class_name
            )
            db.table('activity_standards').delete().eq('activity_id', activity_id).execute()
            store_tags(db, activity_id, codes)
        except TeacherDashError as e:
            logger.warning("Retagging activity %s failed: %s", activity_id, e.message)

        return jsonify(load_activity(db, activity_id, with_standards=True))
    except TeacherDashError:
        raise
    except Exception as e:
        logger.error("Error regenerating activity %s: %s", activity_id, e)
        return jsonify({"error": str(e)}), 500
