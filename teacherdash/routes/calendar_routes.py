"""
Calendar API routes for TeacherDash.
Manual events plus CSV, PDF and bundled-seed imports.
"""
import logging
from flask import Blueprint, request, jsonify

from ..db import get_db, first_row
from ..errors import TeacherDashError
from ..services.ai_service import load_provider
from ..services.calendar_importer import (
    parse_csv_events, parse_calendar_pdf, load_calendar_seed, new_seed_events,
)
from ..services.task_helpers import parse_iso_date

logger = logging.getLogger(__name__)

calendar_bp = Blueprint('calendar', __name__)


@calendar_bp.route('/api/calendar/events', methods=['GET'])
def list_events():
    start = request.args.get('start')
    end = request.args.get('end')

    try:
        query = get_db().table('calendar_events').select('*')
        if start:
            query = query.gte('date', start)
        if end:
            query = query.lte('date', end)
        return jsonify(query.order('date').execute().data or [])
    except TeacherDashError:
        raise
    except Exception as e:
        logger.error("Error listing calendar events: %s", e)
        return jsonify({"error": str(e)}), 500


@calendar_bp.route('/api/calendar/events', methods=['POST'])
def create_event():
    data = request.get_json(silent=True) or {}
    if not data.get('date') or not data.get('event_type') or not data.get('title'):
        return jsonify({"error": "date, event_type, and title are required"}), 400
    if not parse_iso_date(data['date']):
        return jsonify({"error": "date must be YYYY-MM-DD"}), 400

    try:
        created = first_row(get_db().table('calendar_events').insert({
            "date": data['date'],
            "event_type": data['event_type'],
            "title": data['title'],
            "notes": data.get('notes') or None,
        }).execute())
        return jsonify(created), 201
    except TeacherDashError:
        raise
    except Exception as e:
        logger.error("Error creating calendar event: %s", e)
        return jsonify({"error": str(e)}), 500


@calendar_bp.route('/api/calendar/import-csv', methods=['POST'])
def import_csv():
    """Import events from an uploaded CSV (date, type, title, notes)."""
    upload = request.files.get('file')
    if not upload:
        return jsonify({"error": "No file provided"}), 400

    try:
        text = upload.read().decode('utf-8-sig')
    except UnicodeDecodeError:
        return jsonify({"error": "CSV must be UTF-8 text"}), 400

    events = parse_csv_events(text)
    if not events:
        return jsonify({"error": "No valid events found in CSV"}), 400

    try:
        inserted = get_db().table('calendar_events').insert(events).execute().data or []
        logger.info("Imported %d calendar events from CSV", len(inserted))
        return jsonify({"imported": len(inserted)}), 201
    except TeacherDashError:
        raise
    except Exception as e:
        logger.error("CSV import failed: %s", e)
        return jsonify({"error": str(e)}), 500


@calendar_bp.route('/api/calendar/import-pdf', methods=['POST'])
def import_pdf():
    """Read a district calendar PDF with the AI provider and store its events."""
    upload = request.files.get('file')
    if not upload:
        return jsonify({"error": "No file provided"}), 400

    filename = (upload.filename or '').lower()
    if not filename.endswith('.pdf') and upload.mimetype != 'application/pdf':
        return jsonify({"error": "File must be a PDF"}), 400

    pdf_bytes = upload.read()
    if not pdf_bytes:
        return jsonify({"error": "Uploaded file is empty"}), 400

    try:
        db = get_db()
        events = parse_calendar_pdf(load_provider(db), pdf_bytes)
        inserted = db.table('calendar_events').insert(events).execute().data or []
        logger.info("Imported %d calendar events from PDF", len(inserted))
        return jsonify({"events_created": len(inserted), "events": inserted}), 201
    except TeacherDashError:
        raise
    except Exception as e:
        logger.error("PDF import failed: %s", e)
        return jsonify({"error": str(e)}), 500


@calendar_bp.route('/api/calendar/seed', methods=['POST'])
def seed_calendar():
    """Add the bundled school-year events that aren't already on the calendar."""
    try:
        db = get_db()
        existing = db.table('calendar_events').select('date, title').execute().data or []
        to_insert = new_seed_events(load_calendar_seed(), existing)

        if not to_insert:
            return jsonify({"message": "Calendar already seeded", "inserted": 0})

        db.table('calendar_events').insert(to_insert).execute()
        logger.info("Seeded %d calendar events", len(to_insert))
        return jsonify({"message": f"Seeded {len(to_insert)} calendar events", "inserted": len(to_insert)})
    except TeacherDashError:
        raise
    except Exception as e:
        logger.error("Calendar seed failed: %s", e)
        return jsonify({"error": str(e)}), 500
