"""
Printable HTML export of a lesson plan, grouped by day then class.
"""
from html import escape

from ..db import get_by_id, get_settings, attach_classes
from ..errors import NotFoundError
from .task_helpers import parse_iso_date

UNSCHEDULED = 'unscheduled'
DEFAULT_CLASS_COLOR = '#4ECDC4'

TYPE_COLORS = {
    'lesson': ('#dbeafe', '#1e40af'),
    'assessment': ('#fce7f3', '#9d174d'),
    'homework': ('#fef3c7', '#92400e'),
    'project': ('#d1fae5', '#065f46'),
    'review': ('#ede9fe', '#5b21b6'),
    'lab': ('#cffafe', '#155e75'),
    'discussion': ('#fff7ed', '#9a3412'),
}

CELL = "padding:8px 12px;border-bottom:1px solid #e5e7eb;"
HEAD = "padding:8px 12px;font-size:12px;font-weight:600;color:#6b7280;text-transform:uppercase;"


def export_lesson_plan_html(db, lesson_plan_id):
    plan = get_by_id(db, 'lesson_plans', lesson_plan_id, 'id, week_of, status, raw_input')
    if not plan:
        raise NotFoundError('Lesson plan not found')

    settings = get_settings(db, ['school_name', 'teacher_name'])
    activities = db.table('activities').select(
        'id, class_id, date, title, description, activity_type, sort_order, material_status, is_done, is_graded'
    ).eq('lesson_plan_id', lesson_plan_id).order('date').order('sort_order').execute().data or []
    attach_classes(db, activities)

    return build_html(plan, activities, settings)


def group_by_date(activities):
    groups = {}
    for act in activities:
        groups.setdefault(act.get('date') or UNSCHEDULED, []).append(act)
    return groups


def group_by_class(activities):
    groups = {}
    for act in activities:
        name = (act.get('classes') or {}).get('name') or f"Class {act.get('class_id')}"
        groups.setdefault(name, []).append(act)
    return groups


def format_week_display(week_of):
    d = parse_iso_date(week_of)
    return f"{d.strftime('%B')} {d.day}, {d.year}" if d else (week_of or '')


def format_day_label(date_str):
    if date_str == UNSCHEDULED:
        return 'Unscheduled'
    d = parse_iso_date(date_str)
    return f"{d.strftime('%A, %B')} {d.day}" if d else date_str


def type_badge(activity_type):
    activity_type = activity_type or 'lesson'
    bg, fg = TYPE_COLORS.get(activity_type, ('#f3f4f6', '#374151'))
    label = activity_type[:1].upper() + activity_type[1:]
    return (
        f'<span style="display:inline-block;padding:2px 10px;border-radius:12px;font-size:11px;'
        f'font-weight:600;background:{bg};color:{fg};">{escape(label)}</span>'
    )


def material_dot(status):
    color = '#4CAF50' if status in ('ready', 'not_needed') else '#f59e0b'
    return (
        f'<span style="display:inline-block;width:8px;height:8px;border-radius:50%;'
        f'background:{color};margin-right:8px;"></span>'
    )


def _activity_row(act):
    graded = '<span style="color:#f59e0b;margin-left:4px;">&#9733;</span>' if act.get('is_graded') else ''
    return f"""
          <tr>
            <td style="{CELL}">{material_dot(act.get('material_status'))}<span style="font-size:14px;">{escape(act['title'])}</span>{graded}</td>
            <td style="{CELL}text-align:center;">{type_badge(act.get('activity_type'))}</td>
            <td style="{CELL}color:#6b7280;font-size:13px;">{escape(act.get('description') or '')}</td>
          </tr>"""


def _class_block(class_name, activities):
    color = (activities[0].get('classes') or {}).get('color') or DEFAULT_CLASS_COLOR
    rows = "".join(_activity_row(act) for act in activities)
    return f"""
        <div style="margin-bottom:16px;">
          <h3 style="margin:0 0 8px;font-size:15px;color:#374151;">
            <span style="display:inline-block;width:12px;height:12px;border-radius:50%;background:{color};"></span>
            {escape(class_name)}
          </h3>
          <table style="width:100%;border-collapse:collapse;border:1px solid #e5e7eb;">
            <thead>
              <tr style="background:#f9fafb;">
                <th style="{HEAD}text-align:left;">Activity</th>
                <th style="{HEAD}text-align:center;width:100px;">Type</th>
                <th style="{HEAD}text-align:left;">Description</th>
              </tr>
            </thead>
            <tbody>{rows}</tbody>
          </table>
        </div>"""


def build_html(plan, activities, settings):
    school_name = settings.get('school_name') or ''
    teacher_name = settings.get('teacher_name') or ''
    week_display = format_week_display(plan['week_of'])

    by_date = group_by_date(activities)
    days_html = ""
    for date_key in sorted(by_date):
        classes_html = "".join(
            _class_block(name, acts) for name, acts in group_by_class(by_date[date_key]).items()
        )
        days_html += f"""
      <div style="margin-bottom:28px;page-break-inside:avoid;">
        <h2 style="margin:0 0 12px;font-size:17px;color:#1a1a2e;border-bottom:2px solid #4ECDC4;padding-bottom:6px;">
          {escape(format_day_label(date_key))}
        </h2>
        {classes_html}
      </div>"""

    if not by_date:
        days_html = '<p style="color:#9ca3af;font-size:14px;">No activities found for this lesson plan.</p>'

    school_line = (
        f'<p style="margin:0 0 4px;font-size:13px;color:#6b7280;text-transform:uppercase;">{escape(school_name)}</p>'
        if school_name else ''
    )
    teacher_line = (
        f'<p style="margin:8px 0 0;font-size:14px;color:#6b7280;">{escape(teacher_name)}</p>'
        if teacher_name else ''
    )

    return f"""<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="utf-8">
  <title>Lesson Plan - Week of {escape(week_display)}</title>
  <style>
    @media print {{
      body {{ margin: 0; padding: 20px; }}
      .no-print {{ display: none !important; }}
      @page {{ margin: 0.75in; }}
    }}
    body {{ margin: 0; padding: 32px; font-family: -apple-system, 'Segoe UI', Roboto, sans-serif; color: #1f2937; }}
  </style>
</head>
<body>
  <div style="max-width:800px;margin:0 auto;">
    <div style="text-align:center;margin-bottom:32px;padding-bottom:20px;border-bottom:2px solid #e5e7eb;">
      {school_line}
      <h1 style="margin:0 0 8px;font-size:24px;color:#1a1a2e;">Lesson Plan</h1>
      <p style="margin:0;font-size:16px;color:#4b5563;">Week of {escape(week_display)}</p>
      {teacher_line}
    </div>
    {days_html}
    <div class="no-print" style="text-align:center;margin-top:40px;">
      <button onclick="window.print()" style="padding:10px 24px;background:#4ECDC4;border:none;border-radius:8px;font-weight:600;">
        Print / Save as PDF
      </button>
    </div>
  </div>
</body>
</html>"""
