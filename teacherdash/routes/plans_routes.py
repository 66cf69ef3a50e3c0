"""
Published lesson plan routes (public, token-addressed).
The principal reads the plan and leaves threaded comments.
"""
import logging
from flask import Blueprint, request, jsonify

from ..db import get_db, first_row, get_settings, attach_classes, attach_standards
from ..errors import TeacherDashError, NotFoundError

logger = logging.getLogger(__name__)

plans_bp = Blueprint('plans', __name__)

COMMENT_COLUMNS = 'id, parent_id, author_role, author_name, content, created_at'


def published_plan(db, token, columns='*'):
    plan = first_row(db.table('lesson_plans').select(columns).eq(
        'publish_token', token
    ).eq('status', 'published').limit(1).execute())
    if not plan:
        raise NotFoundError('Published lesson plan not found')
    return plan


def plan_comments(db, lesson_plan_id):
    return db.table('lesson_plan_comments').select(COMMENT_COLUMNS).eq(
        'lesson_plan_id', lesson_plan_id
    ).order('created_at').execute().data or []


@plans_bp.route('/api/plans/<token>', methods=['GET'])
def get_published_plan(token):
    try:
        db = get_db()
        plan = published_plan(db, token)

        activities = db.table('activities').select(
            'id, class_id, date, title, description, activity_type, sort_order, '
            'material_status, material_content, is_done, is_graded'
        ).eq('lesson_plan_id', plan['id']).order('date').order('sort_order').execute().data or []
        attach_classes(db, activities)
        attach_standards(db, activities)
        for act in activities:
            act['standards'] = [
                {"code": t['standards']['code'], "description": t['standards']['description']}
                for t in act.pop('activity_standards') if t.get('standards')
            ]

        settings = get_settings(db, ['school_name', 'teacher_name'])
        return jsonify({
            "plan": plan,
            "activities": activities,
            "comments": plan_comments(db, plan['id']),
            "school_name": settings.get('school_name') or '',
            "teacher_name": settings.get('teacher_name') or '',
        })
    except TeacherDashError:
        raise
    except Exception as e:
        logger.error("Error loading published plan: %s", e)
        return jsonify({"error": str(e)}), 500


@plans_bp.route('/api/plans/<token>/comments', methods=['GET'])
def list_comments(token):
    try:
        db = get_db()
        plan = published_plan(db, token, 'id')
        return jsonify(plan_comments(db, plan['id']))
    except TeacherDashError:
        raise
    except Exception as e:
        logger.error("Error listing comments: %s", e)
        return jsonify({"error": str(e)}), 500


@plans_bp.route('/api/plans/<token>/comments', methods=['POST'])
def add_comment(token):
    data = request.get_json(silent=True) or {}
    author_name = (data.get('author_name') or '').strip()
    content = (data.get('content') or '').strip()
    if not author_name or not content:
        return jsonify({"error": "author_name and content are required"}), 400

    try:
        db = get_db()
        plan = published_plan(db, token, 'id')
        comment = first_row(db.table('lesson_plan_comments').insert({
            "lesson_plan_id": plan['id'],
            "author_name": author_name,
            "author_role": (data.get('author_role') or '').strip() or 'principal',
            "content": content,
            "parent_id": data.get('parent_id') or None,
        }).execute())
        return jsonify(comment), 201
    except TeacherDashError:
        raise
    except Exception as e:
        logger.error("Error adding comment: %s", e)
        return jsonify({"error": str(e)}), 500


@plans_bp.route('/api/plans/<token>/comments', methods=['PATCH'])
def edit_comment(token):
    data = request.get_json(silent=True) or {}
    comment_id = data.get('comment_id')
    content = (data.get('content') or '').strip()
    if not comment_id or not content:
        return jsonify({"error": "comment_id and content are required"}), 400

    try:
        db = get_db()
        plan = published_plan(db, token, 'id')
        comment = first_row(db.table('lesson_plan_comments').update({"content": content}).eq(
            'id', comment_id
        ).eq('lesson_plan_id', plan['id']).execute())
        if not comment:
            return jsonify({"error": "Comment not found"}), 404
        return jsonify(comment)
    except TeacherDashError:
        raise
    except Exception as e:
        logger.error("Error editing comment %s: %s", comment_id, e)
        return jsonify({"error": str(e)}), 500


@plans_bp.route('/api/plans/<token>/comments', methods=['DELETE'])
def delete_comment(token):
    comment_id = request.args.get('comment_id', type=int)
    if comment_id is None:
        return jsonify({"error": "comment_id query param is required"}), 400

    try:
        db = get_db()
        plan = published_plan(db, token, 'id')
        db.table('lesson_plan_comments').delete().eq('id', comment_id).eq(
            'lesson_plan_id', plan['id']
        ).execute()
        return jsonify({"success": True})
    except TeacherDashError:
        raise
    except Exception as e:
        logger.error("Error deleting comment %s: %s", comment_id, e)
        return jsonify({"error": str(e)}), 500
