"""
Day view API route for TeacherDash.
"""
import logging
from flask import Blueprint, jsonify

from ..db import get_db, find_bellringer, load_prompts, attach_classes
from ..errors import TeacherDashError
from ..services.task_helpers import parse_iso_date

logger = logging.getLogger(__name__)

day_bp = Blueprint('day', __name__)


@day_bp.route('/api/day/<date>', methods=['GET'])
def get_day(date):
    """Events, due tasks, the bellringer and activities for one date."""
    if not parse_iso_date(date):
        return jsonify({"error": "Invalid date format. Use YYYY-MM-DD"}), 400

    try:
        db = get_db()

        events = db.table('calendar_events').select('*').eq('date', date).execute().data or []

        tasks = db.table('tasks').select('*').eq('due_date', date).order(
            'created_at'
        ).execute().data or []

        unscheduled = db.table('tasks').select('*').is_('due_date', 'null').eq(
            'is_done', False
        ).order('created_at').execute().data or []

        bellringer = find_bellringer(db, date)
        if bellringer:
            bellringer['prompts'] = load_prompts(db, bellringer['id'])

        activities = db.table('activities').select('*').eq('date', date).order(
            'sort_order'
        ).execute().data or []
        attach_classes(db, activities)

        return jsonify({
            "date": date,
            "events": events,
            "tasks": tasks,
            "unscheduled_tasks": unscheduled,
            "bellringer": bellringer,
            "activities": activities,
        })
    except TeacherDashError:
        raise
    except Exception as e:
        logger.error("Error loading day %s: %s", date, e)
        return jsonify({"error": str(e)}), 500
