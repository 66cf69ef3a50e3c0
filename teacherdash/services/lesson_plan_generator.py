"""
Lesson plan brainstorming and parsing.

The teacher chats with the assistant about the week; ``parse_brainstorm``
then turns the conversation into activities per day and class.
"""
import logging

from ..errors import GenerationError
from .ai_service import GenerationOptions, generate_json, chat_with_ai, clean_json_response

logger = logging.getLogger(__name__)

ACTIVITY_TYPES = "lesson|game|discussion|writing|assessment|warmup|review|project|homework"

BRAINSTORM_OPTIONS = GenerationOptions(temperature=0.9, max_output_tokens=2000)
PARSE_OPTIONS = GenerationOptions(temperature=0.3, max_output_tokens=4000)


def build_brainstorm_prompt(teacher_name=None, school_name=None):
    name = teacher_name or 'Teacher'
    school = school_name or 'the school'
    return f"""You are a planning partner for a high school English and French teacher ({name}) at {school}, helping them plan the coming week.

- Suggest creative activities, games, discussions and lesson ideas
- Ask what topics and texts they are working on
- Mix direct instruction, group work, games, writing and hands-on work, and pace it across the week
- Remember they teach both English and French
- Keep ideas practical for a small rural high school
- Be conversational, not just a list

Do NOT suggest bellringers, journal prompts, warm-ups or daily openers; a separate system handles those. Stick to the main lessons, games, projects, assessments and classwork.

Think about engagement, realistic prep time, variety across the week, and building on previous days. Games like Jeopardy, relay races, Four Corners and vocabulary bingo are welcome.

Once there is enough for a full week in each class, tell the teacher they can press "Generate Plan" to fill their weekly grid. Do not format a structured plan yourself.

Keep replies concise and ask follow-up questions."""


PARSE_SYSTEM_PROMPT = f"""You turn a brainstorm conversation between a teacher and an assistant into planned activities organised by day and class.

Respond with JSON only:
{{
  "days": [
    {{
      "date": "YYYY-MM-DD",
      "activities": [
        {{
          "class_id": <number>,
          "title": "Short activity title",
          "description": "One or two sentences",
          "activity_type": "{ACTIVITY_TYPES}",
          "material_status": "not_needed|needs_material"
        }}
      ]
    }}
  ]
}}

RULES:
- Include every concrete activity discussed and nothing that wasn't
- Spread activities sensibly across the week when no day was named
- "needs_material" for worksheets, handouts, slides or game materials; "not_needed" for discussion, read-alouds and other verbal work
- Use class_id values from the class list
- Titles of 3-8 words, descriptions of 1-2 sentences
- Leave out bellringers, journal prompts, warm-ups and daily openers
- If the conversation is too vague, return {{"days": []}}"""


def brainstorm_context(classes=None, week_of=None, existing_activities=None, summary=None):
    lines = []
    if week_of:
        lines.append(f"Planning for the week of: {week_of}")
    if classes:
        names = ", ".join(
            f"{c['name']} ({c['periods']})" if c.get('periods') else c['name'] for c in classes
        )
        lines.append(f"Classes: {names}")
    if existing_activities:
        lines.append(f"Already planned: {', '.join(existing_activities)}")
    if summary:
        lines.append(summary)
    return "\n".join(lines)


def brainstorm_with_ai(provider, messages, classes=None, week_of=None, existing_activities=None,
                       teacher_name=None, school_name=None, summary=None):
    """Assistant reply to the brainstorm conversation so far."""
    system_prompt = build_brainstorm_prompt(teacher_name, school_name)
    context = brainstorm_context(classes, week_of, existing_activities, summary)
    if context:
        system_prompt += f"\n\nCurrent context:\n{context}"

    try:
        return chat_with_ai(provider, system_prompt, messages, BRAINSTORM_OPTIONS)
    except GenerationError as e:
        raise GenerationError(f"Brainstorm failed: {e.message}")


def format_conversation(history):
    return "\n\n".join(
        f"{'TEACHER' if msg.get('role') == 'user' else 'AI'}: {msg.get('content', '')}"
        for msg in history
    )


def require_days(result):
    """Parsed plan must be ``{"days": [...]}``; each day gets an activities list."""
    if not isinstance(result, dict) or not isinstance(result.get('days'), list):
        raise ValueError("Invalid response structure: missing days array")
    for day in result['days']:
        if not isinstance(day.get('activities'), list):
            day['activities'] = []
    return result


def parse_brainstorm(provider, history, classes, week_dates):
    """Structured ``{"days": [...]}`` from a brainstorm conversation."""
    class_list = "\n".join(f"ID {c['id']}: {c['name']}" for c in classes)
    user_prompt = f"""CLASSES:
{class_list}

WEEK DATES (Mon-Fri): {', '.join(week_dates)}

BRAINSTORM CONVERSATION:
{format_conversation(history)}

Parse this conversation into structured activities. Output ONLY valid JSON."""

    try:
        return generate_json(
            provider, PARSE_SYSTEM_PROMPT, user_prompt, PARSE_OPTIONS,
            parser=lambda text: require_days(clean_json_response(text)),
        )
    except GenerationError as e:
        raise GenerationError(f"Parse failed: {e.message}")


# ══════════════════════════════════════════════════════════════
# SINGLE-ACTIVITY REGENERATION
# ══════════════════════════════════════════════════════════════

REGENERATE_OPTIONS = GenerationOptions(temperature=0.9, max_output_tokens=500)

REGENERATE_SYSTEM_PROMPT = f"""You suggest ONE replacement activity for a high school teacher's lesson plan.

Rules:
- Same class and same day as the activity being replaced
- Make it clearly DIFFERENT from the current activity
- Practical for a real high school classroom
- No bellringers, journal prompts, warm-ups or daily openers
- Title of 3-8 words, description of 1-2 sentences

Reply with ONLY valid JSON:
{{"title": "Short activity title", "description": "Brief description", "activity_type": "{ACTIVITY_TYPES}"}}"""


def summarize_history(history, last=6):
    """The tail of a brainstorm conversation as ``Teacher:`` / ``AI:`` lines."""
    if not isinstance(history, list):
        return ''
    return "\n".join(
        f"{'Teacher' if msg.get('role') == 'user' else 'AI'}: {msg.get('content', '')}"
        for msg in history[-last:]
    )


def regenerate_activity(provider, activity, class_name, brainstorm_summary=''):
    """A different activity for the same slot: ``{title, description, activity_type}``."""
    context = (
        f"Context from the teacher's brainstorm conversation:\n{brainstorm_summary}"
        if brainstorm_summary else ''
    )
    user_prompt = f"""Suggest one alternative activity for "{class_name}" on {activity.get('date') or 'an unscheduled day'}.

Activity being replaced:
- Title: {activity['title']}
- Description: {activity.get('description') or '(none)'}
- Type: {activity.get('activity_type')}

{context}

Reply with ONLY valid JSON."""

    result = generate_json(provider, REGENERATE_SYSTEM_PROMPT, user_prompt, REGENERATE_OPTIONS)
    return {
        "title": result.get('title') or 'Untitled Activity',
        "description": result.get('description') or '',
        "activity_type": result.get('activity_type') or activity.get('activity_type'),
    }


# ══════════════════════════════════════════════════════════════
# STANDARDS SUGGESTIONS
# ══════════════════════════════════════════════════════════════

SUGGEST_OPTIONS = GenerationOptions(temperature=0.7, max_output_tokens=1500)

SUGGEST_SYSTEM_PROMPT = """You advise a high school English and French teacher in Oklahoma on standards alignment.

You receive the week's planned activities (with any standard tags) and the "gap" standards for each class: standards never covered, or not covered in four or more weeks.

Suggest 3-5 concrete changes or additions to the week that would address those gaps: a specific activity, discussion prompt, writing task or warm-up.

Write a readable message, not JSON. Use bullet points. For each suggestion give:
- The gap standard code and what it covers
- The activity change or addition
- Which day and class it fits

Keep it short and practical. Never-covered standards come before stale ones."""

NO_GAPS_MESSAGE = (
    "Great news! All standards are covered within the last 4 weeks. "
    "No gaps to address right now."
)


def activity_summary_line(activity):
    """``- [date] Class: "Title" (type: x, tags: A, B)`` for one joined activity row."""
    cls = (activity.get('classes') or {}).get('name') or 'Unknown'
    tags = ", ".join(
        t['standards']['code'] for t in activity.get('activity_standards') or [] if t.get('standards')
    ) or 'none'
    return (
        f"- [{activity.get('date') or 'no date'}] {cls}: \"{activity['title']}\" "
        f"(type: {activity.get('activity_type')}, tags: {tags})"
    )


def suggest_standards(provider, week_of, activities, gaps):
    """Teacher-facing suggestions for covering the listed gap standards."""
    if not gaps:
        return NO_GAPS_MESSAGE

    activity_lines = "\n".join(activity_summary_line(a) for a in activities)
    gap_text = "\n\n".join(gaps)
    user_prompt = f"""CURRENT WEEK: {week_of}

CURRENT ACTIVITIES:
{activity_lines}

GAP STANDARDS BY CLASS:
{gap_text}

Suggest 3-5 specific modifications or additions that address the most critical gaps."""

    return chat_with_ai(
        provider, SUGGEST_SYSTEM_PROMPT, [{"role": "user", "content": user_prompt}], SUGGEST_OPTIONS
    )
