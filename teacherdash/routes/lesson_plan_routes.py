"""
Lesson plan API routes for TeacherDash.

Brainstorm a week with the assistant, parse the conversation into
activities, then publish a read-only link for the principal.
"""
import uuid
import logging
from flask import Blueprint, request, jsonify, current_app, Response

from ..db import (
    get_db, get_by_id, first_row, now_iso, get_settings, class_map,
    attach_classes, attach_standards, load_tag_rows,
)
from ..errors import TeacherDashError
from ..services.ai_service import load_provider
from ..services.context_engine import build_full_context, summarize_context
from ..services.coverage import compute_coverage, gap_lines
from ..services.email_service import PrincipalNotifier
from ..services.export_service import export_lesson_plan_html
from ..services.lesson_plan_generator import (
    brainstorm_with_ai, parse_brainstorm, suggest_standards,
)
from ..services.lesson_plan_importer import import_lesson_plan_docx
from ..services.standards_tagger import tag_many
from ..services.task_helpers import parse_iso_date, monday_of, week_dates, match_class_name

logger = logging.getLogger(__name__)

lesson_plan_bp = Blueprint('lesson_plans', __name__)


def history_of(plan):
    history = plan.get('brainstorm_history')
    return list(history) if isinstance(history, list) else []


def compact_plan(plan):
    return {
        "id": plan['id'],
        "week_of": plan['week_of'],
        "status": plan.get('status'),
        "message_count": len(history_of(plan)),
        "created_at": plan.get('created_at'),
    }


def public_base_url():
    """Origin for share links: the caller's Origin, a forwarded host, or the configured default."""
    origin = request.headers.get('Origin') or request.headers.get('X-Forwarded-Host')
    if not origin:
        return current_app.config['PUBLIC_BASE_URL'].rstrip('/')
    return origin if origin.startswith('http') else f"https://{origin}"


def insert_day_activities(db, lesson_plan_id, days, resolve_class_id):
    """Insert parsed ``days`` as activity rows. ``resolve_class_id`` may return None to skip one."""
    rows = []
    for day in days:
        for i, act in enumerate(day.get('activities') or []):
            class_id = resolve_class_id(act)
            if class_id is None or not act.get('title'):
                continue
            rows.append({
                "class_id": class_id,
                "lesson_plan_id": lesson_plan_id,
                "date": day.get('date') or None,
                "title": act['title'],
                "description": act.get('description') or None,
                "activity_type": act.get('activity_type') or 'lesson',
                "material_status": act.get('material_status') or 'not_needed',
                "sort_order": i,
            })
    if not rows:
        return []
    return db.table('activities').insert(rows).execute().data or []


# ══════════════════════════════════════════════════════════════
# PLANS
# ══════════════════════════════════════════════════════════════

@lesson_plan_bp.route('/api/lesson-plans', methods=['GET'])
def list_lesson_plans():
    """Lesson plans.

    ``list=true`` returns a compact listing (20 newest weeks, or every week
    with activity counts when ``all=true``); otherwise full rows filtered by
    ``week_of`` and ``status``.
    """
    try:
        db = get_db()

        if request.args.get('list') == 'true':
            show_all = request.args.get('all') == 'true'
            query = db.table('lesson_plans').select(
                'id, week_of, status, brainstorm_history, created_at'
            ).order('week_of', desc=True)
            if not show_all:
                query = query.limit(20)
            plans = query.execute().data or []

            compact = [compact_plan(p) for p in plans]
            if show_all and plans:
                rows = db.table('activities').select('lesson_plan_id').in_(
                    'lesson_plan_id', [p['id'] for p in plans]
                ).execute().data or []
                counts = {}
                for row in rows:
                    counts[row['lesson_plan_id']] = counts.get(row['lesson_plan_id'], 0) + 1
                for item in compact:
                    item['activity_count'] = counts.get(item['id'], 0)
            return jsonify(compact)

        query = db.table('lesson_plans').select('*')
        if request.args.get('week_of'):
            query = query.eq('week_of', request.args['week_of'])
        if request.args.get('status'):
            query = query.eq('status', request.args['status'])
        return jsonify(query.order('created_at', desc=True).execute().data or [])
    except TeacherDashError:
        raise
    except Exception as e:
        logger.error("Error listing lesson plans: %s", e)
        return jsonify({"error": str(e)}), 500


@lesson_plan_bp.route('/api/lesson-plans', methods=['POST'])
def create_lesson_plan():
    data = request.get_json(silent=True) or {}
    week_of = data.get('week_of')
    if not week_of:
        return jsonify({"error": "week_of is required"}), 400

    try:
        created = first_row(get_db().table('lesson_plans').insert({
            "week_of": week_of,
            "status": "draft",
            "brainstorm_history": [],
        }).execute())
        return jsonify(created), 201
    except TeacherDashError:
        raise
    except Exception as e:
        logger.error("Error creating lesson plan: %s", e)
        return jsonify({"error": str(e)}), 500


# ══════════════════════════════════════════════════════════════
# BRAINSTORM → ACTIVITIES
# ══════════════════════════════════════════════════════════════

@lesson_plan_bp.route('/api/lesson-plans/brainstorm', methods=['POST'])
def brainstorm():
    """Add the teacher's message to the plan's conversation and reply."""
    data = request.get_json(silent=True) or {}
    lesson_plan_id = data.get('lesson_plan_id')
    message = (data.get('message') or '').strip()
    if not lesson_plan_id or not message:
        return jsonify({"error": "lesson_plan_id and message are required"}), 400

    try:
        db = get_db()
        plan = get_by_id(db, 'lesson_plans', lesson_plan_id)
        if not plan:
            return jsonify({"error": "Lesson plan not found"}), 404

        history = history_of(plan)
        history.append({"role": "user", "content": message})

        classes = list(class_map(db).values())
        existing = db.table('activities').select('class_id, date, title').eq(
            'lesson_plan_id', lesson_plan_id
        ).order('date').execute().data or []
        existing_titles = [f"{a.get('date') or 'unscheduled'}: {a['title']}" for a in existing]
        settings = get_settings(db, ['teacher_name', 'school_name'])
        summary = summarize_context(build_full_context(db, date_str=plan['week_of']))

        response = brainstorm_with_ai(
            load_provider(db), history,
            classes=classes,
            week_of=plan['week_of'],
            existing_activities=existing_titles,
            teacher_name=settings.get('teacher_name'),
            school_name=settings.get('school_name'),
            summary=summary,
        )
        history.append({"role": "assistant", "content": response})

        db.table('lesson_plans').update({
            "brainstorm_history": history,
            "updated_at": now_iso(),
        }).eq('id', lesson_plan_id).execute()

        return jsonify({"response": response, "history": history})
    except TeacherDashError:
        raise
    except Exception as e:
        logger.error("Brainstorm failed for plan %s: %s", lesson_plan_id, e)
        return jsonify({"error": str(e)}), 500


@lesson_plan_bp.route('/api/lesson-plans/parse', methods=['POST'])
def parse_plan():
    """Replace the plan's activities with ones parsed from its conversation, then tag them."""
    data = request.get_json(silent=True) or {}
    lesson_plan_id = data.get('lesson_plan_id')
    if not lesson_plan_id:
        return jsonify({"error": "lesson_plan_id is required"}), 400

    try:
        db = get_db()
        plan = get_by_id(db, 'lesson_plans', lesson_plan_id)
        if not plan:
            return jsonify({"error": "Lesson plan not found"}), 404

        history = history_of(plan)
        if not history:
            return jsonify({"error": "No brainstorm history to parse. Chat with the AI first!"}), 400

        classes = class_map(db)
        if not classes:
            return jsonify({"error": "No classes found. Create classes in Settings first."}), 400

        week_start = parse_iso_date(plan['week_of'])
        if week_start is None:
            return jsonify({"error": "Lesson plan has an invalid week_of"}), 400

        provider = load_provider(db)
        result = parse_brainstorm(
            provider, history, list(classes.values()), week_dates(monday_of(week_start))
        )

        db.table('activities').delete().eq('lesson_plan_id', lesson_plan_id).execute()
        created = insert_day_activities(
            db, lesson_plan_id, result['days'],
            lambda act: act.get('class_id') if act.get('class_id') in classes else None,
        )
        attach_classes(db, created, classes)

        tagging = tag_many(provider, db, created, classes)
        logger.info("Parsed plan %s into %d activities", lesson_plan_id, len(created))

        return jsonify({"activities": created, "days": result['days'], "tagging": tagging})
    except TeacherDashError:
        raise
    except Exception as e:
        logger.error("Parse failed for plan %s: %s", lesson_plan_id, e)
        return jsonify({"error": str(e)}), 500


@lesson_plan_bp.route('/api/lesson-plans/import', methods=['POST'])
def import_plan():
    """Create a plan from an uploaded Word document."""
    upload = request.files.get('file')
    week_of = request.form.get('week_of')
    if not upload:
        return jsonify({"error": "A .docx file is required"}), 400
    if not week_of or not parse_iso_date(week_of):
        return jsonify({"error": "week_of is required (YYYY-MM-DD format)"}), 400

    filename = upload.filename or ''
    if not filename.lower().endswith('.docx') and 'wordprocessingml' not in (upload.mimetype or ''):
        return jsonify({"error": "Only .docx files are supported"}), 400

    try:
        db = get_db()
        classes = list(class_map(db).values())
        if not classes:
            return jsonify({"error": "No classes found. Create classes in Settings first."}), 400

        result = import_lesson_plan_docx(load_provider(db), upload.read(), week_of)

        plan = first_row(db.table('lesson_plans').insert({
            "week_of": week_of,
            "status": "imported",
            "raw_input": f"Imported from: {filename}",
            "brainstorm_history": [],
        }).execute())

        def matched_id(act):
            cls = match_class_name(act.get('class_name'), classes)
            return cls['id'] if cls else None

        created = insert_day_activities(db, plan['id'], result['days'], matched_id)
        logger.info("Imported %s: %d activities", filename, len(created))

        return jsonify({
            "lesson_plan_id": plan['id'],
            "activities_created": len(created),
            "days": result['days'],
        }), 201
    except TeacherDashError:
        raise
    except Exception as e:
        logger.error("Lesson plan import failed: %s", e)
        return jsonify({"error": str(e)}), 500


# ══════════════════════════════════════════════════════════════
# STANDARDS
# ══════════════════════════════════════════════════════════════

@lesson_plan_bp.route('/api/lesson-plans/tag-standards', methods=['POST'])
def tag_plan_standards():
    data = request.get_json(silent=True) or {}
    lesson_plan_id = data.get('lesson_plan_id')
    if not lesson_plan_id:
        return jsonify({"error": "lesson_plan_id is required"}), 400

    try:
        db = get_db()
        activities = db.table('activities').select('id, title, description, class_id').eq(
            'lesson_plan_id', lesson_plan_id
        ).execute().data or []
        if not activities:
            return jsonify({"results": [], "message": "No activities found for this plan"})

        results = tag_many(load_provider(db), db, activities, class_map(db))
        return jsonify({"results": results})
    except TeacherDashError:
        raise
    except Exception as e:
        logger.error("Tagging plan %s failed: %s", lesson_plan_id, e)
        return jsonify({"error": str(e)}), 500


@lesson_plan_bp.route('/api/lesson-plans/suggest-standards', methods=['POST'])
def suggest_plan_standards():
    """Ask the assistant how this week could cover each class's gap standards."""
    data = request.get_json(silent=True) or {}
    lesson_plan_id = data.get('lesson_plan_id')
    if not lesson_plan_id:
        return jsonify({"error": "lesson_plan_id is required"}), 400

    try:
        db = get_db()
        plan = get_by_id(db, 'lesson_plans', lesson_plan_id, 'id, week_of')
        if not plan:
            return jsonify({"error": "Lesson plan not found"}), 404

        activities = db.table('activities').select(
            'id, title, description, date, activity_type, class_id'
        ).eq('lesson_plan_id', lesson_plan_id).execute().data or []
        if not activities:
            return jsonify({"error": "No activities found. Generate a plan first, then try again."}), 400

        classes = class_map(db)
        attach_classes(db, activities, classes)
        attach_standards(db, activities)

        standards = db.table('standards').select(
            'id, code, description, strand, subject, grade_band'
        ).order('code').execute().data or []
        coverage = compute_coverage(load_tag_rows(db), standards, list(classes.values()))

        suggestions = suggest_standards(
            load_provider(db), plan['week_of'], activities, gap_lines(coverage)
        )
        return jsonify({"suggestions": suggestions})
    except TeacherDashError:
        raise
    except Exception as e:
        logger.error("Standards suggestions failed for plan %s: %s", lesson_plan_id, e)
        return jsonify({"error": str(e)}), 500


# ══════════════════════════════════════════════════════════════
# PUBLISH / EXPORT
# ══════════════════════════════════════════════════════════════

@lesson_plan_bp.route('/api/lesson-plans/publish', methods=['POST'])
def publish_plan():
    """Mark a plan published under a fresh share token and notify the principal."""
    data = request.get_json(silent=True) or {}
    lesson_plan_id = data.get('lesson_plan_id')
    if not lesson_plan_id:
        return jsonify({"error": "lesson_plan_id is required"}), 400

    try:
        db = get_db()
        plan = get_by_id(db, 'lesson_plans', lesson_plan_id, 'id, week_of, status')
        if not plan:
            return jsonify({"error": "Lesson plan not found"}), 404

        token = str(uuid.uuid4())
        db.table('lesson_plans').update({
            "status": "published",
            "publish_token": token,
            "updated_at": now_iso(),
        }).eq('id', lesson_plan_id).execute()

        publish_url = f"{public_base_url()}/plans/{token}"

        settings = get_settings(db, ['principal_email', 'teacher_name'])
        email_result = {"success": False, "message": "No principal email configured"}
        if settings.get('principal_email'):
            email_result = PrincipalNotifier(db).send_plan_published(
                publish_url, plan['week_of'],
                settings.get('teacher_name') or 'Teacher',
                settings['principal_email'],
            )

        return jsonify({
            "token": token,
            "url": publish_url,
            "email_sent": email_result['success'],
            "email_message": email_result['message'],
        })
    except TeacherDashError:
        raise
    except Exception as e:
        logger.error("Publishing plan %s failed: %s", lesson_plan_id, e)
        return jsonify({"error": str(e)}), 500


@lesson_plan_bp.route('/api/lesson-plans/export', methods=['GET'])
def export_plan():
    raw_id = request.args.get('lesson_plan_id')
    if not raw_id:
        return jsonify({"error": "lesson_plan_id query parameter is required"}), 400
    try:
        lesson_plan_id = int(raw_id)
    except ValueError:
        return jsonify({"error": "lesson_plan_id must be a number"}), 400

    try:
        html = export_lesson_plan_html(get_db(), lesson_plan_id)
        return Response(html, mimetype='text/html')
    except TeacherDashError:
        raise
    except Exception as e:
        logger.error("Export failed for plan %s: %s", lesson_plan_id, e)
        return jsonify({"error": str(e)}), 500
