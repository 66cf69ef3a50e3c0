"""
AI provider layer for TeacherDash.

Every feature that needs a model goes through an ``AIProvider``:

    provider = load_provider(db)
    result = generate_json(provider, SYSTEM_PROMPT, user_prompt,
                           GenerationOptions(temperature=0.9, max_output_tokens=2000))

Supported providers:
- gemini     (google-generativeai)
- anthropic  (anthropic)
- openai     (openai)

The provider is picked from the ``settings`` table, falling back to the
environment. JSON responses are cleaned up before parsing since models
like to wrap them in code fences or leave trailing commas.
"""
import re
import json
import time
import base64
import logging

from ..config import (
    AI_PROVIDER, GEMINI_API_KEY, ANTHROPIC_API_KEY, OPENAI_API_KEY,
    DEFAULT_GEMINI_MODEL, DEFAULT_ANTHROPIC_MODEL, DEFAULT_OPENAI_MODEL,
)
from ..db import get_settings
from ..errors import GenerationError

logger = logging.getLogger(__name__)

AI_SETTING_KEYS = [
    'ai_provider',
    'gemini_api_key',
    'anthropic_api_key',
    'openai_api_key',
    'gemini_model',
    'anthropic_model',
    'openai_model',
]

RATE_LIMIT_MARKERS = ('429', 'Too Many Requests', 'quota', 'rate_limit')
DEFAULT_RATE_LIMIT_DELAY = 30


# ══════════════════════════════════════════════════════════════
# CONFIGURATION
# ══════════════════════════════════════════════════════════════

def get_ai_config(db):
    """Provider, keys and model names. Settings rows win over the environment."""
    settings = get_settings(db, AI_SETTING_KEYS)
    return {
        "provider": settings.get('ai_provider') or AI_PROVIDER or 'gemini',
        "gemini_api_key": settings.get('gemini_api_key') or GEMINI_API_KEY,
        "anthropic_api_key": settings.get('anthropic_api_key') or ANTHROPIC_API_KEY,
        "openai_api_key": settings.get('openai_api_key') or OPENAI_API_KEY,
        "gemini_model": settings.get('gemini_model') or DEFAULT_GEMINI_MODEL,
        "anthropic_model": settings.get('anthropic_model') or DEFAULT_ANTHROPIC_MODEL,
        "openai_model": settings.get('openai_model') or DEFAULT_OPENAI_MODEL,
    }


class GenerationOptions:
    def __init__(self, temperature=0.7, max_output_tokens=2000):
        self.temperature = temperature
        self.max_output_tokens = max_output_tokens

    def with_temperature(self, temperature):
        return GenerationOptions(temperature, self.max_output_tokens)

    def __repr__(self):
        return f"GenerationOptions(temperature={self.temperature}, max_output_tokens={self.max_output_tokens})"


class RetryPolicy:
    """Attempt count and the temperature schedule for JSON generation.

    Each failed parse lowers the temperature by ``temperature_step`` down
    to ``min_temperature``: 0.2 -> 0.15 -> 0.1 with the defaults.
    """

    def __init__(self, max_attempts=3, temperature_step=0.05, min_temperature=0.1):
        self.max_attempts = max_attempts
        self.temperature_step = temperature_step
        self.min_temperature = min_temperature

    def next_temperature(self, temperature):
        return round(max(self.min_temperature, temperature - self.temperature_step), 2)

    def temperatures(self, start):
        temperature = start
        for _ in range(self.max_attempts):
            yield temperature
            temperature = self.next_temperature(temperature)


# ══════════════════════════════════════════════════════════════
# PROVIDERS
# ══════════════════════════════════════════════════════════════

class AIProvider:
    """Interface every provider implements. Methods return plain text."""

    name = None

    def __init__(self, api_key, model):
        self.api_key = api_key
        self.model = model

    def generate(self, system_prompt, user_prompt, options):
        return self.chat(system_prompt, [{"role": "user", "content": user_prompt}], options)

    def chat(self, system_prompt, messages, options):
        raise NotImplementedError

    def generate_with_attachment(self, system_prompt, user_prompt, data, mime_type, options):
        raise NotImplementedError


class GeminiProvider(AIProvider):
    name = 'gemini'

    def _model(self, system_prompt):
        import google.generativeai as genai
        genai.configure(api_key=self.api_key)
        return genai.GenerativeModel(self.model, system_instruction=system_prompt)

    def _config(self, options):
        import google.generativeai as genai
        return genai.GenerationConfig(
            temperature=options.temperature,
            max_output_tokens=options.max_output_tokens,
        )

    def chat(self, system_prompt, messages, options):
        contents = [
            {"role": "model" if m.get("role") == "assistant" else "user", "parts": [m.get("content", "")]}
            for m in messages
        ]
        response = self._model(system_prompt).generate_content(
            contents, generation_config=self._config(options)
        )
        return response.text

    def generate_with_attachment(self, system_prompt, user_prompt, data, mime_type, options):
        part = {"mime_type": mime_type, "data": data}
        response = self._model(system_prompt).generate_content(
            [part, user_prompt], generation_config=self._config(options)
        )
        return response.text


class AnthropicProvider(AIProvider):
    name = 'anthropic'

    def _create(self, system_prompt, messages, options):
        import anthropic
        client = anthropic.Anthropic(api_key=self.api_key)
        response = client.messages.create(
            model=self.model,
            max_tokens=options.max_output_tokens,
            temperature=min(options.temperature, 1.0),  # Anthropic caps temperature at 1.0
            system=system_prompt,
            messages=messages,
        )
        return "".join(block.text for block in response.content if block.type == "text")

    def chat(self, system_prompt, messages, options):
        anthropic_messages = [
            {"role": "assistant" if m.get("role") == "assistant" else "user", "content": m.get("content", "")}
            for m in messages
        ]
        return self._create(system_prompt, anthropic_messages, options)

    def generate_with_attachment(self, system_prompt, user_prompt, data, mime_type, options):
        encoded = base64.b64encode(data).decode('utf-8')
        block_type = "document" if mime_type == "application/pdf" else "image"
        content = [
            {"type": block_type, "source": {"type": "base64", "media_type": mime_type, "data": encoded}},
            {"type": "text", "text": user_prompt},
        ]
        return self._create(system_prompt, [{"role": "user", "content": content}], options)


class OpenAIProvider(AIProvider):
    name = 'openai'

    def _create(self, system_prompt, messages, options):
        from openai import OpenAI
        client = OpenAI(api_key=self.api_key)
        response = client.chat.completions.create(
            model=self.model,
            messages=[{"role": "system", "content": system_prompt}] + messages,
            max_tokens=options.max_output_tokens,
            temperature=options.temperature,
        )
        return response.choices[0].message.content or ""

    def chat(self, system_prompt, messages, options):
        openai_messages = [
            {"role": "assistant" if m.get("role") == "assistant" else "user", "content": m.get("content", "")}
            for m in messages
        ]
        return self._create(system_prompt, openai_messages, options)

    def generate_with_attachment(self, system_prompt, user_prompt, data, mime_type, options):
        if mime_type == "application/pdf":
            # Chat completions take no PDFs; send the extracted text instead
            text = extract_pdf_text(data)
            prompt = f"{user_prompt}\n\nDOCUMENT TEXT:\n{text}"
            return self._create(system_prompt, [{"role": "user", "content": prompt}], options)

        encoded = base64.b64encode(data).decode('utf-8')
        content = [
            {"type": "text", "text": user_prompt},
            {"type": "image_url", "image_url": {"url": f"data:{mime_type};base64,{encoded}"}},
        ]
        return self._create(system_prompt, [{"role": "user", "content": content}], options)


def extract_pdf_text(data):
    """Plain text of every page of a PDF held in memory."""
    import fitz
    pdf = fitz.open(stream=data, filetype="pdf")
    try:
        return "\n".join(page.get_text() for page in pdf)
    finally:
        pdf.close()


PROVIDERS = {
    'gemini': (GeminiProvider, 'gemini_api_key', 'gemini_model', 'Gemini'),
    'anthropic': (AnthropicProvider, 'anthropic_api_key', 'anthropic_model', 'Anthropic'),
    'openai': (OpenAIProvider, 'openai_api_key', 'openai_model', 'OpenAI'),
}


def get_provider(ai_config):
    """Build the configured provider. Raises GenerationError when its key is missing."""
    name = (ai_config.get('provider') or 'gemini').lower()
    if name not in PROVIDERS:
        raise GenerationError(f"Unknown AI provider: {name}")

    provider_cls, key_field, model_field, label = PROVIDERS[name]
    api_key = ai_config.get(key_field)
    if not api_key:
        raise GenerationError(f"{label} API key not configured. Go to Settings to add your API key.")
    return provider_cls(api_key, ai_config.get(model_field))


def load_provider(db):
    """Provider for the current settings."""
    return get_provider(get_ai_config(db))


# ══════════════════════════════════════════════════════════════
# JSON CLEANING
# ══════════════════════════════════════════════════════════════

STRING_PAIR_RE = re.compile(r'"(\w+)"\s*:\s*"((?:[^"\\]|\\.)*)"')
SCALAR_PAIR_RE = re.compile(r'"(\w+)"\s*:\s*(true|false|null|-?\d+(?:\.\d+)?)\s*[,}\]]')
STRING_VALUE_RE = re.compile(r'(?<=": ")(.*?)(?="[,\s}])', re.DOTALL)


def strip_fences(text):
    """Remove ```json fences and a bare leading ``json`` tag."""
    text = (text or "").strip()
    if text.startswith("```"):
        newline = text.find("\n")
        text = text[newline + 1:] if newline != -1 else text[3:]
    if text.endswith("```"):
        text = text[:-3]
    if text.startswith("json"):
        text = text[4:]
    return text.strip()


def _remove_trailing_commas(fragment):
    return re.sub(r',\s*]', ']', re.sub(r',\s*}', '}', fragment))


def _escape_control_chars(fragment):
    return STRING_VALUE_RE.sub(
        lambda m: m.group(0).replace('\n', '\\n').replace('\t', '\\t').replace('\r', ''),
        fragment,
    )


def _rebuild_pairs(fragment):
    obj = {}
    for key, value in STRING_PAIR_RE.findall(fragment):
        obj[key] = value.replace('\\\\n', '\n').replace('\\n', '\n')
    for key, value in SCALAR_PAIR_RE.findall(fragment):
        if key in obj:
            continue
        if value == 'true':
            obj[key] = True
        elif value == 'false':
            obj[key] = False
        elif value == 'null':
            obj[key] = None
        else:
            obj[key] = float(value) if '.' in value else int(value)
    return obj


def clean_json_response(text):
    """Parse a model's JSON object reply, repairing the usual damage.

    Tries, in order: direct parse, the outermost ``{...}``, trailing-comma
    removal, escaping raw newlines inside strings, truncating to the last
    complete line, and finally rebuilding flat key/value pairs by regex.
    """
    text = strip_fences(text)

    try:
        return json.loads(text)
    except ValueError:
        pass

    start = text.find('{')
    end = text.rfind('}')
    if start != -1 and end > start:
        fragment = text[start:end + 1]
        try:
            return json.loads(fragment)
        except ValueError:
            pass

        cleaned = _remove_trailing_commas(fragment)
        try:
            return json.loads(cleaned)
        except ValueError:
            pass

        try:
            return json.loads(_escape_control_chars(cleaned))
        except ValueError:
            pass

        lines = cleaned.split('\n')
        for i in range(len(lines) - 1, 0, -1):
            attempt = re.sub(r',\s*$', '', '\n'.join(lines[:i]).rstrip()) + '\n}'
            try:
                return json.loads(attempt)
            except ValueError:
                continue

        obj = _rebuild_pairs(cleaned)
        if obj:
            return obj

    raise ValueError("Could not parse JSON from AI response")


def clean_json_array(text, key=None):
    """Parse a reply that should be a JSON array.

    Accepts a bare array, or an object holding the array under ``key``.
    """
    text = strip_fences(text)

    candidates = [text]
    start = text.find('[')
    end = text.rfind(']')
    if start != -1 and end > start:
        fragment = text[start:end + 1]
        candidates += [fragment, _remove_trailing_commas(fragment)]

    for candidate in candidates:
        try:
            parsed = json.loads(candidate)
        except ValueError:
            continue
        if isinstance(parsed, list):
            return parsed
        if key and isinstance(parsed, dict) and isinstance(parsed.get(key), list):
            return parsed[key]

    if key:
        obj = clean_json_response(text)
        if isinstance(obj, dict) and isinstance(obj.get(key), list):
            return obj[key]

    raise ValueError("Could not parse JSON array from AI response")


# ══════════════════════════════════════════════════════════════
# GENERATION WITH RETRY
# ══════════════════════════════════════════════════════════════

def get_rate_limit_delay(error):
    """Seconds to wait for a rate-limit error, or None if it isn't one."""
    msg = str(error)
    if not any(marker in msg for marker in RATE_LIMIT_MARKERS):
        return None
    match = re.search(r'retry in (\d+)', msg, re.IGNORECASE)
    return int(match.group(1)) + 5 if match else DEFAULT_RATE_LIMIT_DELAY


def generate_json(provider, system_prompt, user_prompt, options, policy=None,
                  parser=clean_json_response, attachment=None):
    """Generate and parse a JSON reply, retrying at lower temperatures.

    ``parser`` turns the raw text into the result and raises on bad output.
    ``attachment`` is an optional ``(bytes, mime_type)`` pair sent with the
    prompt. Rate-limit errors wait out the advertised delay and keep the
    current temperature.
    """
    policy = policy or RetryPolicy()
    temperature = options.temperature
    last_error = None

    for attempt in range(1, policy.max_attempts + 1):
        attempt_options = options.with_temperature(temperature)
        try:
            if attachment is not None:
                data, mime_type = attachment
                text = provider.generate_with_attachment(
                    system_prompt, user_prompt, data, mime_type, attempt_options
                )
            else:
                text = provider.generate(system_prompt, user_prompt, attempt_options)
            return parser(text)
        except Exception as e:
            last_error = e
            delay = get_rate_limit_delay(e)
            if delay:
                logger.warning("Rate limited on attempt %s, waiting %ss", attempt, delay)
                if attempt < policy.max_attempts:
                    time.sleep(delay)
                continue
            logger.warning(
                "AI generation attempt %s/%s failed at temperature %s: %s",
                attempt, policy.max_attempts, temperature, e,
            )
            temperature = policy.next_temperature(temperature)

    raise GenerationError(f"AI generation failed after {policy.max_attempts} attempts: {last_error}")


def chat_with_ai(provider, system_prompt, messages, options, max_attempts=3):
    """Free-text reply to a conversation. Only rate limits are retried."""
    for attempt in range(1, max_attempts + 1):
        try:
            return provider.chat(system_prompt, messages, options)
        except Exception as e:
            delay = get_rate_limit_delay(e)
            if not delay:
                logger.error("AI chat failed: %s", e)
                raise GenerationError(str(e))
            logger.warning("Rate limited on chat attempt %s, waiting %ss", attempt, delay)
            if attempt < max_attempts:
                time.sleep(delay)

    raise GenerationError("Rate limited. Please wait a minute and try again.")


# ══════════════════════════════════════════════════════════════
# BELLRINGER HELPERS
# ══════════════════════════════════════════════════════════════

ACT_CHOICE_FIELDS = ['act_choice_a', 'act_choice_b', 'act_choice_c', 'act_choice_d']

EMOJI_RE = re.compile(
    '['
    '\U0001F300-\U0001FAFF'
    '\u2702-\u27B0'
    '\uFE00-\uFE0F'
    '\u200D'
    '\u2600-\u26FF'
    '\u2700-\u27BF'
    ']+'
)


def normalize_act_fields(result):
    """Bring an ACT answer object onto the bellringer column names."""
    if result.get('act_choices') and not result.get('act_choice_a'):
        lines = [l.strip() for l in str(result['act_choices']).split('\n') if l.strip()]
        for i, field in enumerate(ACT_CHOICE_FIELDS):
            result[field] = lines[i] if i < len(lines) else ''
    if result.get('act_answer') and not result.get('act_correct_answer'):
        result['act_correct_answer'] = result['act_answer']
    if not result.get('act_explanation'):
        result['act_explanation'] = ''
    if not result.get('act_skill_category'):
        result['act_skill_category'] = ''
    return result


def split_emojis(text):
    """Separate a prompt's emoji run from its instruction text."""
    if not text:
        return {"instruction": "", "emojis": ""}
    emojis = "".join(EMOJI_RE.findall(text))
    instruction = EMOJI_RE.sub('', text).strip()
    instruction = re.sub(r'[\s:,]+$', '', instruction).strip()
    return {"instruction": instruction, "emojis": emojis}
