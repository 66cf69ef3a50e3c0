"""
Settings API routes for TeacherDash.
Settings are free-form key/value strings (teacher name, principal email, AI keys...).
"""
import logging
from flask import Blueprint, request, jsonify

from ..db import get_db, get_settings
from ..errors import TeacherDashError

logger = logging.getLogger(__name__)

settings_bp = Blueprint('settings', __name__)


def setting_value(value):
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


@settings_bp.route('/api/settings', methods=['GET'])
def load_settings():
    try:
        return jsonify(get_settings(get_db()))
    except TeacherDashError:
        raise
    except Exception as e:
        logger.error("Error loading settings: %s", e)
        return jsonify({"error": str(e)}), 500


@settings_bp.route('/api/settings', methods=['POST'])
def save_settings():
    """Upsert every key in the body; values are stored as strings."""
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return jsonify({"error": "Body must be a key-value object"}), 400
    if not data:
        return jsonify({"error": "No settings provided"}), 400

    try:
        db = get_db()
        rows = [{"key": key, "value": setting_value(value)} for key, value in data.items()]
        db.table('settings').upsert(rows, on_conflict='key').execute()
        return jsonify(get_settings(db))
    except TeacherDashError:
        raise
    except Exception as e:
        logger.error("Error saving settings: %s", e)
        return jsonify({"error": str(e)}), 500
