"""
Task list API routes for TeacherDash.
Quick-entry tasks with natural-language due dates and optional class.
"""
import logging
from flask import Blueprint, request, jsonify

from ..db import get_db, first_row, class_map, now_iso
from ..errors import TeacherDashError
from ..services.task_helpers import resolve_date, resolve_class

logger = logging.getLogger(__name__)

tasks_bp = Blueprint('tasks', __name__)

TASK_FIELDS = ('text', 'due_date', 'is_done', 'class_id')


@tasks_bp.route('/api/tasks', methods=['GET'])
def list_tasks():
    """Open tasks by due date (undated last, then newest), plus the last 10 finished."""
    try:
        db = get_db()
        todo = db.table('tasks').select('*').eq('is_done', False).order(
            'due_date'
        ).order('created_at', desc=True).execute().data or []

        done = db.table('tasks').select('*').eq('is_done', True).order(
            'completed_at', desc=True
        ).limit(10).execute().data or []

        return jsonify({"todo": todo, "done": done})
    except TeacherDashError:
        raise
    except Exception as e:
        logger.error("Error listing tasks: %s", e)
        return jsonify({"error": str(e)}), 500


@tasks_bp.route('/api/tasks', methods=['POST'])
def create_task():
    data = request.get_json(silent=True) or {}
    text = data.get('text')
    if not isinstance(text, str) or not text.strip():
        return jsonify({"error": "text is required"}), 400

    try:
        db = get_db()
        row = {"text": text.strip(), "is_done": False}

        if data.get('due_date'):
            # Unrecognised phrases mean "no due date"
            row['due_date'] = resolve_date(data['due_date'])

        if data.get('class'):
            row['class_id'] = resolve_class(data['class'], list(class_map(db).values()))
        elif data.get('class_id') is not None:
            row['class_id'] = data['class_id']

        created = first_row(db.table('tasks').insert(row).execute())
        return jsonify(created), 201
    except TeacherDashError:
        raise
    except Exception as e:
        logger.error("Error creating task: %s", e)
        return jsonify({"error": str(e)}), 500


@tasks_bp.route('/api/tasks/<int:task_id>', methods=['PATCH'])
def update_task(task_id):
    data = request.get_json(silent=True) or {}
    updates = {k: data[k] for k in TASK_FIELDS if k in data}
    if not updates:
        return jsonify({"error": "No fields to update"}), 400

    if 'text' in updates:
        if not isinstance(updates['text'], str) or not updates['text'].strip():
            return jsonify({"error": "text cannot be empty"}), 400
        updates['text'] = updates['text'].strip()

    if 'due_date' in updates:
        updates['due_date'] = resolve_date(updates['due_date']) if updates['due_date'] else None

    if 'is_done' in updates:
        updates['is_done'] = bool(updates['is_done'])
        updates['completed_at'] = now_iso() if updates['is_done'] else None

    try:
        updated = first_row(get_db().table('tasks').update(updates).eq('id', task_id).execute())
        if not updated:
            return jsonify({"error": "Task not found"}), 404
        return jsonify(updated)
    except TeacherDashError:
        raise
    except Exception as e:
        logger.error("Error updating task %s: %s", task_id, e)
        return jsonify({"error": str(e)}), 500


@tasks_bp.route('/api/tasks/<int:task_id>', methods=['DELETE'])
def delete_task(task_id):
    try:
        deleted = get_db().table('tasks').delete().eq('id', task_id).execute().data
        if not deleted:
            return jsonify({"error": "Task not found"}), 404
        return jsonify({"success": True})
    except TeacherDashError:
        raise
    except Exception as e:
        logger.error("Error deleting task %s: %s", task_id, e)
        return jsonify({"error": str(e)}), 500
