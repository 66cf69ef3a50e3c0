"""
Classroom material generation route for TeacherDash.
"""
import logging
from flask import Blueprint, request, jsonify

from ..db import get_db, get_by_id, attach_classes
from ..errors import TeacherDashError
from ..services.ai_service import load_provider
from ..services.material_generator import MATERIAL_TYPES, generate_material

logger = logging.getLogger(__name__)

materials_bp = Blueprint('materials', __name__)


@materials_bp.route('/api/materials/generate', methods=['POST'])
def generate():
    """Generate a worksheet, quiz, etc. for an activity and store it on the row."""
    data = request.get_json(silent=True) or {}
    activity_id = data.get('activity_id')
    material_type = data.get('material_type')
    if not activity_id or not material_type:
        return jsonify({"error": "activity_id and material_type are required"}), 400
    if material_type not in MATERIAL_TYPES:
        return jsonify({"error": f"Unknown material_type: {material_type}"}), 400

    try:
        db = get_db()
        activity = get_by_id(db, 'activities', activity_id)
        if not activity:
            return jsonify({"error": "Activity not found"}), 404
        attach_classes(db, [activity])

        class_name = (activity.get('classes') or {}).get('name') or 'Unknown Class'
        material = generate_material(
            load_provider(db), class_name, activity['title'], material_type,
            description=activity.get('description'),
            teacher_notes=data.get('teacher_notes'),
        )

        db.table('activities').update({
            "material_content": material,
            "material_status": "ready",
        }).eq('id', activity_id).execute()

        return jsonify({
            "material": material,
            "activity_id": activity_id,
            "material_type": material_type,
        })
    except TeacherDashError:
        raise
    except Exception as e:
        logger.error("Material generation failed for activity %s: %s", activity_id, e)
        return jsonify({"error": str(e)}), 500
