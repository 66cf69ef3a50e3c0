"""
Bellringer generation: four journal prompts plus an ACT grammar question.
"""
from ..config import DEFAULT_JOURNAL_SUBPROMPT
from .ai_service import (
    ACT_CHOICE_FIELDS, GenerationOptions, generate_json, clean_json_response, normalize_act_fields,
)

ACT_SKILL_AREAS = """SKILL AREAS (pick one, rotate): commas (introductory elements, appositives, compound sentences, nonrestrictive clauses), apostrophes (possessive vs plural, its/it's), semicolons and colons, subject-verb agreement (each/neither, compound subjects), pronouns (ambiguous reference, who/whom, case), verb tense consistency, parallel structure, dangling or misplaced modifiers, wordiness, fragments/run-ons/comma splices, commonly confused words (affect/effect, than/then, less/fewer, lie/lay)."""

ACT_RULES = """ACT QUESTION RULES:
- One realistic sentence, the kind found in an article about science, history or everyday life, containing ONE error
- Wrap the tested words in <b> tags
- The 4 choices replace ONLY the bolded words, never the whole sentence
- One choice is "No change", and sometimes it is the right answer
- Rotate which letter is correct
- The rule is one short sentence a student can remember
- No quotation marks around words in the choices"""

SYSTEM_PROMPT = f"""You write bellringers for 9th and 10th grade English. Two parts.

PART 1, JOURNAL PROMPTS: 4 short prompts (1-2 sentences each), each a different type. Good lengths:
- "You wake up and everyone speaks a language you've never heard. What do you do?"
- "'Fall seven times, stand up eight.' What does this proverb mean to you?"
- (emoji type) "Tell a story using these emojis:" followed by 4-6 emojis

PART 2, ACT PREP: ONE ACT English style grammar question. It has nothing to do with the teacher's theme; it only tests a grammar or mechanics skill.

{ACT_SKILL_AREAS}

{ACT_RULES}

Respond with JSON only:
{{
    "prompts": [
        {{"journal_type": "creative", "journal_prompt": "...", "journal_subprompt": "{DEFAULT_JOURNAL_SUBPROMPT}"}},
        {{"journal_type": "quote", "journal_prompt": "...", "journal_subprompt": "{DEFAULT_JOURNAL_SUBPROMPT}"}},
        {{"journal_type": "emoji", "journal_prompt": "...", "journal_subprompt": "{DEFAULT_JOURNAL_SUBPROMPT}"}},
        {{"journal_type": "reflective", "journal_prompt": "...", "journal_subprompt": "{DEFAULT_JOURNAL_SUBPROMPT}"}}
    ],
    "act_skill": "Skill Name",
    "act_question": "Sentence with the <b>tested words</b> in bold.",
    "act_choices": "A. option\\nB. option\\nC. option\\nD. No change",
    "act_answer": "C",
    "act_rule": "Short rule."
}}"""

SINGLE_PROMPT_SYSTEM = f"""You write ONE short journal prompt (1-2 sentences) for 9th and 10th grade English.

Types:
- creative: a fun scenario
- quote: a real quote followed by "What does this mean to you?"
- emoji: "Tell a story using these emojis:" then 4-6 emojis and nothing else
- reflective: a personal question
- critical_thinking: a question worth arguing about
- descriptive: describe something to someone who has never experienced it
- poetry: write a poem about something
- list: "List your top 5..."
- debate: a two-sided question
- would_you_rather: two options, explain the choice
- image: a very short instruction about an image, no description of it

Respond with JSON only:
{{"journal_type": "creative", "journal_prompt": "The prompt", "journal_subprompt": "{DEFAULT_JOURNAL_SUBPROMPT}"}}"""

IMAGE_PROMPT_SYSTEM = f"""You write a journal prompt for 9th and 10th grade English about an attached image. Do NOT describe the image. Give one short writing instruction, for example:
- "Write a story inspired by this image."
- "What happened just before this moment?"
- "Give this picture a title and explain it."

Respond with JSON only:
{{"journal_type": "image", "journal_prompt": "Short prompt", "journal_subprompt": "{DEFAULT_JOURNAL_SUBPROMPT}"}}"""

ACT_SYSTEM_PROMPT = f"""You write ONE ACT English style question for 9th and 10th graders. It should read like a real ACT item: a natural sentence with one grammar or mechanics error that students identify and fix.

{ACT_SKILL_AREAS}

{ACT_RULES}

EXAMPLE:
{{"act_skill": "Subject-Verb Agreement", "act_question": "Neither of the bridges built after the flood <b>were</b> strong enough for the new trucks.", "act_choices": "A. have been\\nB. was\\nC. are\\nD. No change", "act_answer": "B", "act_rule": "Neither is singular and takes a singular verb."}}

Respond with ONE question as JSON, no markdown, and pick a skill different from the example."""

FULL_OPTIONS = GenerationOptions(temperature=0.9, max_output_tokens=2000)
SINGLE_OPTIONS = GenerationOptions(temperature=0.9, max_output_tokens=500)
IMAGE_OPTIONS = GenerationOptions(temperature=0.9, max_output_tokens=300)
ACT_OPTIONS = GenerationOptions(temperature=0.9, max_output_tokens=800)


def _recent(values):
    return ", ".join(values[:5]) or "None"


# Reply checks. A ValueError sends generate_json round for another attempt.

def require_prompt(result):
    if not isinstance(result, dict) or not str(result.get('journal_prompt') or '').strip():
        raise ValueError("Invalid response structure: missing journal_prompt")
    return result


def require_act(result):
    """ACT reply needs the question, four choices (one string or lettered fields) and the answer."""
    if not isinstance(result, dict) or not str(result.get('act_question') or '').strip():
        raise ValueError("Invalid response structure: missing act_question")
    if not result.get('act_choices') and not all(result.get(f) for f in ACT_CHOICE_FIELDS):
        raise ValueError("Invalid response structure: missing act choices")
    if not (result.get('act_answer') or result.get('act_correct_answer')):
        raise ValueError("Invalid response structure: missing act answer")
    return result


def require_bellringer(result, with_act=True):
    if not isinstance(result, dict) or not isinstance(result.get('prompts'), list) or not result['prompts']:
        raise ValueError("Invalid response structure: missing prompts array")
    for prompt in result['prompts']:
        require_prompt(prompt)
    if with_act:
        require_act(result)
    return result


def generate_full_bellringer(provider, context, notes='', with_act=True):
    """Four prompts plus an ACT question. The first prompt is mirrored onto the journal_* fields.

    With ``with_act`` off the reply may leave out the ACT question.
    """
    user_prompt = (
        f"Generate a bellringer for {context['day_of_week']}.\n"
        f"Avoid these recent ACT skills: {_recent(context['recent_act_skills'])}\n"
        f"Vary from these recent journal types: {_recent(context['recent_journal_types'])}"
    )
    if notes:
        user_prompt += f"\nTeacher idea/theme: {notes}"
    user_prompt += "\nKeep prompts SHORT. Respond with ONLY valid JSON."

    result = generate_json(
        provider, SYSTEM_PROMPT, user_prompt, FULL_OPTIONS,
        parser=lambda text: require_bellringer(clean_json_response(text), with_act),
    )

    first = result['prompts'][0]
    result['journal_type'] = first.get('journal_type')
    result['journal_prompt'] = first['journal_prompt']
    result['journal_subprompt'] = first.get('journal_subprompt') or DEFAULT_JOURNAL_SUBPROMPT

    return normalize_act_fields(result)


def generate_single_prompt(provider, prompt_type=None, notes=''):
    user_prompt = "Generate ONE short journal prompt."
    if prompt_type:
        user_prompt += f" Type: {prompt_type}"
    if notes:
        user_prompt += f"\nTeacher idea: {notes}"
    user_prompt += "\nKeep it SHORT - 1-2 sentences. Respond with ONLY valid JSON."
    return generate_json(
        provider, SINGLE_PROMPT_SYSTEM, user_prompt, SINGLE_OPTIONS,
        parser=lambda text: require_prompt(clean_json_response(text)),
    )


def generate_from_image(provider, data, mime_type, notes=''):
    user_prompt = "Write a SHORT journal prompt for this image. Do NOT describe the image."
    if notes:
        user_prompt += f"\nTeacher idea: {notes}"
    user_prompt += "\nRespond with ONLY valid JSON."

    result = generate_json(
        provider, IMAGE_PROMPT_SYSTEM, user_prompt, IMAGE_OPTIONS,
        parser=lambda text: require_prompt(clean_json_response(text)),
        attachment=(data, mime_type),
    )
    result['journal_type'] = 'image'
    return result


def generate_act_question(provider, context, notes=''):
    user_prompt = (
        "Generate ONE short grammar question.\n"
        f"Avoid: {_recent(context['recent_act_skills'])}"
    )
    if notes:
        user_prompt += f"\nTeacher idea: {notes}"
    user_prompt += "\nKeep it SHORT. Respond with ONLY valid JSON, no markdown."

    result = generate_json(
        provider, ACT_SYSTEM_PROMPT, user_prompt, ACT_OPTIONS,
        parser=lambda text: require_act(clean_json_response(text)),
    )
    return normalize_act_fields(result)
