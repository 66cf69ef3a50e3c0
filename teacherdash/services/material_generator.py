"""
Classroom material generation (quizzes, worksheets, games, French drills).
"""
from ..errors import GenerationError
from .ai_service import GenerationOptions, generate_json

MATERIAL_TYPES = [
    'quiz', 'vocabulary_test', 'grammar_test', 'sentence_dressup',
    'worksheet', 'discussion_questions', 'writing_prompt', 'reading_guide',
    'jeopardy', 'dice_game', 'card_match', 'relay_race',
    'buzzer_quiz', 'guess_who', 'four_corners', 'vocab_bingo',
    'flashcard_set', 'conjugation_drill', 'dialogue_builder', 'cultural_activity',
]

MATERIAL_OPTIONS = GenerationOptions(temperature=0.8, max_output_tokens=4000)

MATERIAL_SYSTEM_PROMPT = """You create classroom materials for a high school English and French teacher in a small Oklahoma school. Output ONLY valid JSON, no markdown.

Use the structure that matches the material type:

QUIZ/TEST:
{"title": "...", "instructions": "...", "questions": [{"question": "...", "choices": ["A. ...", "B. ...", "C. ...", "D. ..."], "correct": "A", "explanation": "..."}]}

WORKSHEET:
{"title": "...", "instructions": "...", "sections": [{"heading": "...", "type": "matching|fill_in|short_answer|multiple_choice", "items": [{"prompt": "...", "answer": "..."}]}]}

DISCUSSION QUESTIONS:
{"title": "...", "questions": [{"question": "...", "follow_up": "...", "type": "open|analytical|evaluative"}]}

WRITING PROMPT + RUBRIC:
{"title": "...", "prompt": "...", "requirements": ["..."], "rubric": [{"category": "...", "points": 25, "criteria": "..."}]}

READING GUIDE:
{"title": "...", "before_reading": ["..."], "during_reading": [{"page_or_section": "...", "question": "..."}], "after_reading": ["..."]}

JEOPARDY:
{"title": "...", "setup": "...", "categories": [{"name": "...", "questions": [{"points": 100, "question": "...", "answer": "..."}]}]}

OTHER GAMES (dice, cards, relay, buzzer, four corners, bingo, guess who):
{"title": "...", "setup": "...", "rules": ["..."], "items": [{"prompt": "...", "answer": "..."}]}

SENTENCE DRESSUP:
{"title": "...", "instructions": "...", "sentences": [{"base": "...", "technique": "...", "example": "..."}]}

RULES:
- Pitch the content at the grade level given
- Games should be genuinely fun
- Physical games need setup steps a substitute could follow
- 10-20 items for quizzes and worksheets; Jeopardy gets 5 categories of 5 questions
- Always include answer keys"""

FRENCH_SYSTEM_PROMPT = """You create materials for a beginner high school French 1 class. Output ONLY valid JSON, no markdown.

FLASHCARD SET:
{"title": "...", "instructions": "...", "cards": [{"front": "...", "back": "...", "pronunciation": "...", "example_sentence": "..."}]}

CONJUGATION DRILL:
{"title": "...", "instructions": "...", "verbs": [{"infinitive": "...", "english": "...", "conjugations": {"je": "...", "tu": "...", "il/elle": "...", "nous": "...", "vous": "...", "ils/elles": "..."}, "example": "..."}], "exercises": [{"prompt": "...", "answer": "..."}]}

DIALOGUE BUILDER:
{"title": "...", "scenario": "...", "vocabulary": [{"french": "...", "english": "..."}], "model_dialogue": [{"speaker": "A|B", "french": "...", "english": "..."}], "practice_prompts": ["..."]}

CULTURAL ACTIVITY:
{"title": "...", "topic": "...", "background": "...", "activities": [{"type": "discussion|comparison|research|creative", "description": "...", "instructions": "..."}], "vocabulary": [{"french": "...", "english": "..."}]}

For quizzes, worksheets and games use the same shapes as an English class would.

RULES:
- Give pronunciation help for French text
- Keep vocabulary and grammar at French 1 level
- Translate all French content into English
- Connect cultural activities to students' own lives"""


def is_french(class_name):
    return 'french' in (class_name or '').lower()


def grade_level_for(class_name):
    if is_french(class_name):
        return 'French 1'
    if '9' in class_name or '1' in class_name:
        return '9th'
    return '10th'


def generate_material(provider, class_name, activity_title, material_type,
                      description=None, teacher_notes=None):
    """Material JSON for an activity. French classes get the French prompt."""
    system_prompt = FRENCH_SYSTEM_PROMPT if is_french(class_name) else MATERIAL_SYSTEM_PROMPT

    lines = [
        "Generate material for:",
        f"CLASS: {class_name} ({grade_level_for(class_name)})",
        f"ACTIVITY: {activity_title}",
    ]
    if description:
        lines.append(f"DESCRIPTION: {description}")
    lines.append(f"MATERIAL TYPE: {material_type}")
    if teacher_notes:
        lines.append(f"TEACHER NOTES: {teacher_notes}")
    lines.append("\nRespond with ONLY valid JSON.")

    try:
        return generate_json(provider, system_prompt, "\n".join(lines), MATERIAL_OPTIONS)
    except GenerationError as e:
        raise GenerationError(f"Material generation failed: {e.message}")
