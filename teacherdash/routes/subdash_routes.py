"""
Public SubDash route: the frozen snapshot behind a share link.
"""
import logging
from flask import Blueprint, jsonify

from ..db import get_db, first_row
from ..errors import TeacherDashError

logger = logging.getLogger(__name__)

subdash_bp = Blueprint('subdash', __name__)


@subdash_bp.route('/api/subdash/<token>', methods=['GET'])
def get_subdash(token):
    """Snapshot for a shared plan. Drafts and unknown tokens are 404."""
    try:
        plan = first_row(get_db().table('subdash_plans').select('snapshot').eq(
            'share_token', token
        ).eq('status', 'shared').limit(1).execute())
        if not plan:
            return jsonify({"error": "SubDash not found or not shared"}), 404
        return jsonify(plan['snapshot'])
    except TeacherDashError:
        raise
    except Exception as e:
        logger.error("Error loading SubDash: %s", e)
        return jsonify({"error": str(e)}), 500
