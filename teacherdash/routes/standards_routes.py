"""
Standards API routes for TeacherDash.
Library management plus the coverage / gap report.
"""
import logging
from flask import Blueprint, request, jsonify

from ..db import get_db, first_row, class_map, load_tag_rows
from ..errors import TeacherDashError
from ..services.ai_service import load_provider
from ..services.coverage import compute_coverage
from ..services.standards_library import (
    SUBJECT_MAP, load_standards_file, seed_rows, parse_standards_text, save_standards,
)

logger = logging.getLogger(__name__)

standards_bp = Blueprint('standards', __name__)


def ordered_standards(query):
    return query.order('subject').order('grade_band').order('code').execute().data or []


@standards_bp.route('/api/standards', methods=['GET'])
def list_standards():
    """Standards (optionally one subject) with how many activities each is tagged on."""
    subject = request.args.get('subject')

    try:
        db = get_db()
        query = db.table('standards').select('*')
        if subject:
            query = query.ilike('subject', subject)
        standards = ordered_standards(query)

        counts = {}
        for tag in db.table('activity_standards').select('standard_id').execute().data or []:
            counts[tag['standard_id']] = counts.get(tag['standard_id'], 0) + 1
        for std in standards:
            std['activity_count'] = counts.get(std['id'], 0)

        return jsonify(standards)
    except TeacherDashError:
        raise
    except Exception as e:
        logger.error("Error listing standards: %s", e)
        return jsonify({"error": str(e)}), 500


@standards_bp.route('/api/standards', methods=['DELETE'])
def delete_standards():
    """Remove every tag, then every standard."""
    try:
        db = get_db()
        db.table('activity_standards').delete().neq('standard_id', 0).execute()
        db.table('standards').delete().neq('id', 0).execute()
        logger.info("Deleted all standards and tags")
        return jsonify({"success": True})
    except TeacherDashError:
        raise
    except Exception as e:
        logger.error("Error deleting standards: %s", e)
        return jsonify({"error": str(e)}), 500


@standards_bp.route('/api/standards/coverage', methods=['GET'])
def coverage():
    """Per-class coverage of every standard, recomputed from the tags."""
    try:
        db = get_db()
        classes = db.table('classes').select('*').order('id').execute().data or []
        standards = ordered_standards(db.table('standards').select('*'))
        result = compute_coverage(load_tag_rows(db), standards, classes)
        return jsonify({"classes": result})
    except TeacherDashError:
        raise
    except Exception as e:
        logger.error("Error computing coverage: %s", e)
        return jsonify({"error": str(e)}), 500


@standards_bp.route('/api/standards/detail', methods=['GET'])
def standard_detail():
    """One standard and every activity tagged with it, newest first, undated last."""
    code = request.args.get('code')
    if not code:
        return jsonify({"error": "code parameter is required"}), 400

    try:
        db = get_db()
        standard = first_row(db.table('standards').select(
            'id, code, description, strand, subject, grade_band'
        ).eq('code', code).limit(1).execute())
        if not standard:
            return jsonify({"error": "Standard not found"}), 404

        classes = class_map(db)
        activities = []
        for tag in load_tag_rows(db, standard['id']):
            act = tag['activity']
            if not act:
                continue
            cls = classes.get(act.get('class_id'))
            activities.append({
                "id": act['id'],
                "title": act['title'],
                "date": act.get('date'),
                "className": cls['name'] if cls else 'Unknown',
                "lesson_plan_id": act.get('lesson_plan_id'),
            })

        dated = sorted((a for a in activities if a['date']), key=lambda a: a['date'], reverse=True)
        undated = [a for a in activities if not a['date']]

        standard.update({"hit_count": len(activities), "activities": dated + undated})
        return jsonify(standard)
    except TeacherDashError:
        raise
    except Exception as e:
        logger.error("Error loading standard %s: %s", code, e)
        return jsonify({"error": str(e)}), 500


@standards_bp.route('/api/standards/upload', methods=['POST'])
def upload_standards():
    """Parse pasted standards text with the AI provider and save it."""
    data = request.get_json(silent=True) or {}
    text = (data.get('text') or '').strip()
    subject = (data.get('subject') or '').strip()
    grade_band = (data.get('grade_band') or '').strip()
    if not text:
        return jsonify({"error": "text is required"}), 400
    if not subject:
        return jsonify({"error": "subject is required"}), 400
    if not grade_band:
        return jsonify({"error": "grade_band is required"}), 400

    try:
        db = get_db()
        parsed = parse_standards_text(load_provider(db), text, subject, grade_band)
        if not parsed:
            return jsonify({"error": "No standards could be parsed from the text"}), 400

        inserted, updated = save_standards(db, parsed)
        return jsonify({
            "success": True,
            "parsed": len(parsed),
            "inserted": inserted,
            "updated": updated,
            "standards": parsed,
        })
    except TeacherDashError:
        raise
    except Exception as e:
        logger.error("Standards upload failed: %s", e)
        return jsonify({"error": str(e)}), 500


@standards_bp.route('/api/standards/seed', methods=['POST'])
def seed_standards():
    """Load the bundled Oklahoma standards."""
    try:
        rows = seed_rows(load_standards_file())
        if not rows:
            return jsonify({"error": "No standards found in data file"}), 400

        inserted, updated = save_standards(get_db(), rows)
        return jsonify({
            "success": True,
            "count": inserted + updated,
            "inserted": inserted,
            "updated": updated,
            "subjects": list(SUBJECT_MAP),
        })
    except TeacherDashError:
        raise
    except Exception as e:
        logger.error("Standards seed failed: %s", e)
        return jsonify({"error": str(e)}), 500
