"""
Class API routes for TeacherDash.
"""
import logging
from flask import Blueprint, request, jsonify

from ..db import get_db, get_by_id, first_row
from ..errors import TeacherDashError
from ..services.task_helpers import parse_iso_date, monday_of, local_date_str

logger = logging.getLogger(__name__)

classes_bp = Blueprint('classes', __name__)


@classes_bp.route('/api/classes', methods=['GET'])
def list_classes():
    try:
        rows = get_db().table('classes').select('*').order('id').execute().data
        return jsonify(rows or [])
    except TeacherDashError:
        raise
    except Exception as e:
        logger.error("Error listing classes: %s", e)
        return jsonify({"error": str(e)}), 500


@classes_bp.route('/api/classes', methods=['POST'])
def create_class():
    data = request.get_json(silent=True) or {}
    name = (data.get('name') or '').strip()
    if not name:
        return jsonify({"error": "name is required"}), 400

    try:
        created = first_row(get_db().table('classes').insert({
            "name": name,
            "periods": data.get('periods') or None,
            "color": data.get('color') or None,
        }).execute())
        return jsonify(created), 201
    except TeacherDashError:
        raise
    except Exception as e:
        logger.error("Error creating class: %s", e)
        return jsonify({"error": str(e)}), 500


def group_by_week(activities):
    """Dated activities keyed by the Monday of their week."""
    weeks = {}
    for act in activities:
        d = parse_iso_date(act.get('date'))
        if d is None:
            continue
        weeks.setdefault(local_date_str(monday_of(d)), []).append(act)
    return weeks


def history_stats(activities):
    return {
        "total": len(activities),
        "done": sum(1 for a in activities if a.get('is_done')),
        "ready": sum(1 for a in activities if a.get('material_status') in ('ready', 'not_needed')),
        "recent_titles": [a['title'] for a in activities[:5]],
    }


@classes_bp.route('/api/classes/<int:class_id>/history', methods=['GET'])
def class_history(class_id):
    """Dated activities for a class, newest first, grouped into weeks."""
    limit = request.args.get('limit', 50, type=int)

    try:
        db = get_db()
        class_info = get_by_id(db, 'classes', class_id)
        if not class_info:
            return jsonify({"error": "Class not found"}), 404

        activities = db.table('activities').select('*').eq('class_id', class_id).not_.is_(
            'date', 'null'
        ).order('date', desc=True).order('sort_order').limit(limit).execute().data or []

        return jsonify({
            "class": class_info,
            "activities": activities,
            "weeks": group_by_week(activities),
            "stats": history_stats(activities),
        })
    except TeacherDashError:
        raise
    except Exception as e:
        logger.error("Error loading history for class %s: %s", class_id, e)
        return jsonify({"error": str(e)}), 500
