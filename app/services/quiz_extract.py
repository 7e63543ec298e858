from __future__ import annotations

import logging
import re
from typing import List, Optional, Tuple

from app.models.quiz import DEFAULT_EXPLANATION, QuestionRecord

log = logging.getLogger("LessonForge")

QUIZ_HEADINGS = ("Quiz", "Practice Questions", "Test Your Knowledge")

# -----------------------------
# Line classifiers
# -----------------------------
HEADING_RE = re.compile(r"^\s{0,3}(#{1,6})\s+(.*?)\s*#*\s*$")
QUIZ_TITLE_RE = re.compile(
    r"^(?:" + "|".join(re.escape(h) for h in QUIZ_HEADINGS) + r")\b",
    re.IGNORECASE,
)
STEM_RE = re.compile(r"^\s*\d+\.\s+(\S.*?)\s*$")
OPTION_RE = re.compile(r"^\s*([A-Da-d])[.)\s]\s*(\S.*?)\s*$")
FENCE_RE = re.compile(r"^\s{0,3}(`{3,}|~{3,})")


def _heading(line: str) -> Optional[Tuple[int, str]]:
    m = HEADING_RE.match(line)
    if not m:
        return None
    return len(m.group(1)), m.group(2)


def _split_lines(text: str) -> List[str]:
    s = (text or "").replace("\r\n", "\n").replace("\r", "\n")
    return s.split("\n")


def _fence_flags(lines: List[str]) -> List[bool]:
    """True for every line that belongs to a ``` or ~~~ code block, fences included."""
    flags: List[bool] = []
    opener: Optional[str] = None
    for ln in lines:
        m = FENCE_RE.match(ln)
        if opener is None:
            if m:
                opener = m.group(1)
            flags.append(opener is not None)
            continue
        flags.append(True)
        fence = ln.strip()
        if m and set(fence) == {opener[0]} and len(fence) >= len(opener):
            opener = None
    return flags


# -----------------------------
# Section detection
# -----------------------------
def find_quiz_section(markdown: str) -> Optional[str]:
    """
    Return the body of the first level-2/3 quiz heading, up to the next
    heading of the same or higher level. None when no quiz heading exists.
    """
    lines = _split_lines(markdown)
    fenced = _fence_flags(lines)

    start = None
    level = 0
    for i, ln in enumerate(lines):
        h = None if fenced[i] else _heading(ln)
        if not h:
            continue
        lvl, title = h
        if lvl in (2, 3) and QUIZ_TITLE_RE.match(title.strip("*_ ")):
            start = i + 1
            level = lvl
            break

    if start is None:
        return None

    end = len(lines)
    for j in range(start, len(lines)):
        h = None if fenced[j] else _heading(lines[j])
        if h and h[0] <= level:
            end = j
            break

    return "\n".join(lines[start:end])


# -----------------------------
# Question scanner
# -----------------------------
def _scan_blocks(section: str) -> List[Tuple[str, List[str]]]:
    blocks: List[Tuple[str, List[str]]] = []

    cur_stem: Optional[str] = None
    cur_options: List[str] = []

    def flush():
        nonlocal cur_stem, cur_options
        if cur_stem is not None:
            blocks.append((cur_stem, cur_options))
        cur_stem = None
        cur_options = []

    lines = _split_lines(section)
    for ln, in_code in zip(lines, _fence_flags(lines)):
        if in_code:
            flush()
            continue
        if cur_stem is not None:
            m = OPTION_RE.match(ln)
            if m:
                cur_options.append(m.group(2).strip())
                continue
            # options must follow the stem directly
            flush()

        m = STEM_RE.match(ln)
        if m:
            cur_stem = m.group(1).strip()

    flush()
    return blocks


def extract_quiz_questions(markdown: str) -> List[QuestionRecord]:
    section = find_quiz_section(markdown or "")
    if section is None:
        return []

    out: List[QuestionRecord] = []
    for stem, options in _scan_blocks(section):
        if not options:
            continue
        try:
            out.append(
                QuestionRecord(
                    prompt=stem,
                    choices=options,
                    correct_choice_index=0,
                    explanation=DEFAULT_EXPLANATION,
                )
            )
        except ValueError:
            log.debug("Skipping malformed quiz block: %r", stem)

    log.debug("Quiz extraction: %d question(s)", len(out))
    return out
