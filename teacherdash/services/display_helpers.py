"""
Classroom display payload: the day's prompt cards, topped up from the
bundled prompt bank, plus the ACT question and its answer text.
"""
import json
import random

from ..config import DATA_DIR
from .ai_service import split_emojis

PROMPTS_BANK_FILE = DATA_DIR / "prompts_bank.json"

GRID_SIZE = 4

TYPE_LABELS = {
    'creative': 'Creative',
    'quote': 'Quote',
    'image': 'Visual',
    'emoji': 'Emoji',
    'emoji_story_starter': 'Emoji Story',
    'reflective': 'Reflective',
    'critical_thinking': 'Critical Thinking',
    'descriptive': 'Descriptive',
    'poetry': 'Poetry',
    'list': 'Top 5 List',
    'visual': 'Visual',
    'debate': 'Debate',
    'would_you_rather': 'Would You Rather',
}

PREFERRED_TYPES = [
    'quote', 'creative', 'reflective', 'descriptive',
    'critical_thinking', 'poetry', 'emoji', 'list', 'visual',
]

_bank = None


def load_prompts_bank():
    global _bank
    if _bank is None:
        with open(PROMPTS_BANK_FILE, 'r', encoding='utf-8') as f:
            _bank = json.load(f)
    return _bank


def type_label(prompt_type):
    return TYPE_LABELS.get(prompt_type) or (prompt_type or '').capitalize()


def get_companion_prompts(main_type, count=3, bank=None, rng=None):
    """Pick up to ``count`` bank prompts, one per type, none of ``main_type``."""
    bank = bank if bank is not None else load_prompts_bank()
    rng = rng or random

    by_type = {}
    for entry in bank:
        t = entry.get('type') or ''
        if t not in (main_type, 'emoji_story_starter'):
            by_type.setdefault(t, []).append(entry)

    types = list(PREFERRED_TYPES)
    rng.shuffle(types)

    chosen = []
    for t in types:
        if t == main_type or t not in by_type:
            continue
        entry = rng.choice(by_type[t])
        text = entry.get('prompt') or ''
        if t == 'quote' and entry.get('writing_prompt'):
            text = f"{entry['prompt']}\n\n{entry['writing_prompt']}"
        chosen.append({"type": t, "label": type_label(t), "text": text, "image": None, "emojis": ""})
        if len(chosen) >= count:
            break
    return chosen


def prompt_cards(bellringer, prompts):
    """Cards for the stored prompts; falls back to the bellringer's own prompt."""
    cards = []
    for p in prompts:
        if not p.get('journal_prompt'):
            continue
        ptype = p.get('journal_type') or 'creative'
        card = {
            "type": ptype,
            "label": TYPE_LABELS.get(ptype, 'Creative'),
            "text": p['journal_prompt'],
            "image": p.get('image_path'),
            "emojis": "",
        }
        if ptype == 'emoji':
            parts = split_emojis(p['journal_prompt'])
            card['text'] = parts['instruction'] or p['journal_prompt']
            card['emojis'] = parts['emojis']
        cards.append(card)

    if not cards and bellringer.get('journal_prompt'):
        ptype = bellringer.get('journal_type') or 'creative'
        cards.append({
            "type": ptype,
            "label": TYPE_LABELS.get(ptype, 'Creative'),
            "text": bellringer['journal_prompt'],
            "image": bellringer.get('journal_image_path'),
            "emojis": "",
        })
    return cards


def act_payload(bellringer):
    letter = (bellringer.get('act_correct_answer') or '').strip().upper()
    choices = {
        'A': bellringer.get('act_choice_a') or '',
        'B': bellringer.get('act_choice_b') or '',
        'C': bellringer.get('act_choice_c') or '',
        'D': bellringer.get('act_choice_d') or '',
    }
    return {
        "skill": bellringer.get('act_skill'),
        "question": bellringer.get('act_question'),
        "choices": [c for c in choices.values() if c],
        "correct_answer": letter,
        "answer_text": choices.get(letter) or letter,
        "explanation": bellringer.get('act_explanation'),
        "rule": bellringer.get('act_rule'),
    }


def build_display_payload(date_str, bellringer, prompts, bank=None, rng=None):
    cards = prompt_cards(bellringer, prompts)
    if cards and len(cards) < GRID_SIZE:
        cards += get_companion_prompts(cards[0]['type'], GRID_SIZE - len(cards), bank=bank, rng=rng)
    return {
        "date": date_str,
        "bellringer": bellringer,
        "cards": cards,
        "act": act_payload(bellringer),
    }
