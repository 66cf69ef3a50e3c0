"""
Import a Word lesson plan: extract its text with python-docx and have the
model sort the activities into days and classes.
"""
import io
import logging

from ..errors import GenerationError, ValidationError
from .ai_service import GenerationOptions, generate_json, clean_json_response
from .lesson_plan_generator import ACTIVITY_TYPES, require_days
from .task_helpers import week_day_map

logger = logging.getLogger(__name__)

IMPORT_OPTIONS = GenerationOptions(temperature=0.3, max_output_tokens=4000)

IMPORT_SYSTEM_PROMPT = f"""You read a high school English and French teacher's lesson plan document and pull out the activities for each day (Monday to Friday) and class.

The teacher's classes are usually English-1, English-2 and French-1. Use class names, period numbers and subject headings to assign each activity; French content belongs to the French class.

Respond with JSON only:
{{
  "days": [
    {{
      "date": "YYYY-MM-DD",
      "day_name": "Monday",
      "activities": [
        {{
          "class_name": "English-1",
          "title": "Short activity title (3-8 words)",
          "description": "One or two sentences",
          "activity_type": "{ACTIVITY_TYPES}"
        }}
      ]
    }}
  ]
}}

RULES:
- Extract every concrete activity in the document and invent none
- Use the provided week dates when the document gives no date
- Omit a class on a day where the document doesn't mention it
- Keep the original intent of each activity"""


def extract_docx_text(file_bytes):
    """Paragraph and table text of a .docx, in document order."""
    from docx import Document
    from docx.text.paragraph import Paragraph
    from docx.table import Table

    doc = Document(io.BytesIO(file_bytes))
    full_text = []
    for element in doc.element.body:
        if element.tag.endswith('p'):
            para = Paragraph(element, doc)
            if para.text.strip():
                full_text.append(para.text)
        elif element.tag.endswith('tbl'):
            table = Table(element, doc)
            for row in table.rows:
                row_text = [cell.text.strip() for cell in row.cells if cell.text.strip()]
                if row_text:
                    full_text.append(' | '.join(row_text))
    return '\n'.join(full_text)


def fill_missing_dates(days, day_map):
    """Give undated days the date of their named weekday."""
    by_name = {name.lower(): iso for name, iso in day_map}
    for day in days:
        if not day.get('date') and day.get('day_name'):
            day['date'] = by_name.get(day['day_name'].lower())
    return days


def import_lesson_plan_docx(provider, file_bytes, week_of):
    """``{"days": [...]}`` parsed from a Word document for the week of ``week_of``."""
    try:
        text = extract_docx_text(file_bytes)
    except Exception as e:
        logger.error("Failed to read Word document: %s", e)
        raise ValidationError(f"Failed to read Word document: {e}")

    if len(text.strip()) < 10:
        raise ValidationError("Could not extract text from the document. The file may be empty or corrupted.")

    day_map = week_day_map(week_of)
    date_list = ", ".join(f"{name}: {iso}" for name, iso in day_map)
    user_prompt = f"""WEEK DATES: {date_list}

LESSON PLAN DOCUMENT CONTENT:
{text}

Parse this lesson plan document into structured activities. Output ONLY valid JSON."""

    try:
        result = generate_json(
            provider, IMPORT_SYSTEM_PROMPT, user_prompt, IMPORT_OPTIONS,
            parser=lambda raw: require_days(clean_json_response(raw)),
        )
    except GenerationError as e:
        raise GenerationError(f"Failed to parse lesson plan: {e.message}")

    fill_missing_dates(result['days'], day_map)
    return result
