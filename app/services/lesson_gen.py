from __future__ import annotations

import logging
import re

from app.constants import ERROR_MESSAGE_MAX_LEN, TITLE_MAX_LEN
from app.services.llm import LLMError

log = logging.getLogger("LessonForge")

MAX_TOKENS = 2000
TEMPERATURE = 0.7

_FENCE_RE = re.compile(r"^\s*```(?:markdown|md)\s*\n(.*)\n\s*```\s*$", re.DOTALL | re.IGNORECASE)


# -----------------------------
# Prompting
# -----------------------------
def _system_prompt() -> str:
    return (
        "You are an experienced teacher who writes clear, engaging lessons.\n"
        "Output GitHub-flavored markdown only. No preamble, no closing remarks."
    )


def build_lesson_prompt(outline: str) -> str:
    return (
        "Create an engaging, interactive lesson about:\n\n"
        f"{(outline or '').strip()}\n\n"
        "Structure the lesson with:\n"
        "1. **Introduction** - Brief, engaging overview with relevant context\n"
        "2. **Main Content** - Key concepts with clear explanations, bullet points, and examples\n"
        "3. **Visual Examples** - Use code blocks, blockquotes, or formatted sections to illustrate concepts\n"
        '4. **Practice Questions** - Include 3-5 multiple choice quiz questions under a "## Quiz" heading\n\n'
        "Format the quiz questions EXACTLY like this:\n"
        "## Quiz\n\n"
        "1. What is [question text]?\n"
        "   A) Option 1\n"
        "   B) Option 2\n"
        "   C) Option 3\n"
        "   D) Option 4\n\n"
        "2. [Next question]?\n"
        "   A) Option 1\n"
        "   B) Option 2\n"
        "   C) Option 3\n"
        "   D) Option 4\n\n"
        "Use markdown formatting with headers, bold text, bullet points, and code blocks. "
        "Keep it engaging and educational."
    )


def lesson_title(outline: str) -> str:
    return (outline or "")[:TITLE_MAX_LEN].strip()


def clean_lesson_markdown(text: str) -> str:
    s = (text or "").replace("\r\n", "\n").replace("\r", "\n").strip()
    m = _FENCE_RE.match(s)
    if m:
        s = m.group(1).strip()
    return s


# -----------------------------
# Generation
# -----------------------------
async def generate_lesson(
    llm,
    store,
    *,
    lesson_id: str,
    outline: str,
    api_key: str,
    max_tokens: int = MAX_TOKENS,
    temperature: float = TEMPERATURE,
) -> bool:
    """
    Expand an outline into lesson markdown and persist the outcome.
    Returns True when the lesson was stored as generated. Failures are
    recorded on the lesson (status=error) and never raised.
    """
    log.info("[%s] Starting generation with key present: %s", lesson_id, bool(api_key))

    try:
        raw = await llm.ask(
            api_key=api_key,
            prompt=build_lesson_prompt(outline),
            system=_system_prompt(),
            max_tokens=max_tokens,
            temperature=temperature,
        )
        content = clean_lesson_markdown(raw)
        if not content:
            raise LLMError("No content generated")

        log.info("[%s] Content generated: %d chars", lesson_id, len(content))

        if not store.mark_generated(lesson_id, title=lesson_title(outline), content=content):
            log.warning("[%s] Lesson vanished before content was stored", lesson_id)
            return False

        log.info("[%s] Success", lesson_id)
        return True

    except Exception as e:
        message = str(e) or e.__class__.__name__
        log.exception("[%s] Lesson generation failed: %s", lesson_id, message)
        try:
            store.mark_error(lesson_id, message[:ERROR_MESSAGE_MAX_LEN])
        except Exception:
            log.exception("[%s] Error updating error status", lesson_id)
        return False
