from __future__ import annotations

import hashlib
import logging
from dataclasses import dataclass, field, replace
from typing import Any, Dict, FrozenSet, Mapping, Optional, Sequence, Tuple

from app.models.quiz import QuestionRecord

log = logging.getLogger("LessonForge")

STATE_ANSWERING = "answering"
STATE_REVEALED = "revealed"
STATE_COMPLETE = "complete"

LABEL_PERFECT = "perfect"
LABEL_GREAT = "great"
LABEL_GOOD_EFFORT = "good effort"
LABEL_KEEP_PRACTICING = "keep practicing"


def result_label(score: int, total: int) -> str:
    if total <= 0:
        return LABEL_KEEP_PRACTICING
    ratio = score / total
    if ratio >= 1.0:
        return LABEL_PERFECT
    if ratio >= 0.7:
        return LABEL_GREAT
    if ratio >= 0.5:
        return LABEL_GOOD_EFFORT
    return LABEL_KEEP_PRACTICING


def questions_fingerprint(questions: Sequence[QuestionRecord]) -> str:
    h = hashlib.sha256()
    for q in questions:
        h.update(q.prompt.encode("utf-8"))
        for c in q.choices:
            h.update(b"\x1f" + c.encode("utf-8"))
        h.update(b"\x1e")
    return h.hexdigest()[:16]


@dataclass(frozen=True)
class QuizSession:
    """
    Player progress through a fixed list of questions.

    Flow:
    - select_choice -> submit -> revealed (result + explanation)
    - advance -> next question, or complete after the last one
    - restart -> back to the first question with a clean score

    Every transition returns the next session; calls that are not valid in
    the current state return the session unchanged.
    """

    questions: Tuple[QuestionRecord, ...]
    current_index: int = 0
    selected_choice: Optional[int] = None
    is_revealed: bool = False
    score: int = 0
    answered_indices: FrozenSet[int] = field(default_factory=frozenset)
    completed: bool = False

    def __post_init__(self):
        if not self.questions:
            raise ValueError("QuizSession needs at least one question")
        object.__setattr__(self, "questions", tuple(self.questions))
        object.__setattr__(self, "answered_indices", frozenset(self.answered_indices))
        if not (0 <= self.current_index < len(self.questions)):
            raise ValueError("current_index out of range")

    @classmethod
    def start(cls, questions: Sequence[QuestionRecord]) -> "QuizSession":
        return cls(questions=tuple(questions))

    # -----------------------------
    # read-only views
    # -----------------------------
    @property
    def fingerprint(self) -> str:
        return questions_fingerprint(self.questions)

    @property
    def total(self) -> int:
        return len(self.questions)

    @property
    def current(self) -> QuestionRecord:
        return self.questions[self.current_index]

    @property
    def is_last(self) -> bool:
        return self.current_index >= self.total - 1

    @property
    def state(self) -> str:
        if self.completed:
            return STATE_COMPLETE
        if self.is_revealed:
            return STATE_REVEALED
        return STATE_ANSWERING

    @property
    def is_correct(self) -> bool:
        return (
            self.selected_choice is not None
            and self.selected_choice == self.current.correct_choice_index
        )

    @property
    def label(self) -> Optional[str]:
        if not self.completed:
            return None
        return result_label(self.score, self.total)

    # -----------------------------
    # transitions
    # -----------------------------
    def select_choice(self, index: int) -> "QuizSession":
        if self.state != STATE_ANSWERING:
            log.debug("select_choice ignored in state=%s", self.state)
            return self
        if not (0 <= index < len(self.current.choices)):
            log.debug("select_choice ignored: index=%s choices=%d", index, len(self.current.choices))
            return self
        return replace(self, selected_choice=index)

    def submit(self) -> "QuizSession":
        if self.state != STATE_ANSWERING or self.selected_choice is None:
            log.debug("submit ignored in state=%s selected=%s", self.state, self.selected_choice)
            return self

        score = self.score
        answered = self.answered_indices
        if self.is_correct and self.current_index not in answered:
            score += 1
            answered = answered | {self.current_index}

        return replace(self, is_revealed=True, score=score, answered_indices=answered)

    def advance(self) -> "QuizSession":
        if self.state != STATE_REVEALED:
            log.debug("advance ignored in state=%s", self.state)
            return self
        if self.is_last:
            return replace(self, completed=True)
        return replace(
            self,
            current_index=self.current_index + 1,
            selected_choice=None,
            is_revealed=False,
        )

    def restart(self) -> "QuizSession":
        return QuizSession(questions=self.questions)

    # -----------------------------
    # presentation / persistence
    # -----------------------------
    def snapshot(self) -> Dict[str, Any]:
        snap: Dict[str, Any] = {
            "state": self.state,
            "current_index": self.current_index,
            "selected_choice": self.selected_choice,
            "is_revealed": self.is_revealed,
            "score": self.score,
            "total": self.total,
        }
        if self.completed:
            snap["label"] = self.label
        return snap

    def to_state(self) -> Dict[str, Any]:
        return {
            "fingerprint": self.fingerprint,
            "current_index": self.current_index,
            "selected_choice": self.selected_choice,
            "is_revealed": self.is_revealed,
            "score": self.score,
            "answered_indices": sorted(self.answered_indices),
            "completed": self.completed,
        }

    @classmethod
    def from_state(
        cls,
        questions: Sequence[QuestionRecord],
        state: Optional[Mapping[str, Any]],
    ) -> "QuizSession":
        """
        Rebuild a session from `to_state()` output. State saved for another
        question list (lesson regenerated) or values that do not fit it
        (tampered cookie) fall back to a fresh session.
        """
        fresh = cls.start(questions)
        if not state:
            return fresh
        if state.get("fingerprint") != fresh.fingerprint:
            log.debug("Discarding quiz state saved for a different question list")
            return fresh

        total = fresh.total
        try:
            idx = int(state.get("current_index", 0))
            sel = state.get("selected_choice")
            sel = None if sel is None else int(sel)
            answered = frozenset(int(i) for i in state.get("answered_indices") or [])
            score = int(state.get("score", 0))
        except (TypeError, ValueError):
            log.debug("Discarding unreadable quiz state: %r", state)
            return fresh

        if not (0 <= idx < total):
            return fresh
        if sel is not None and not (0 <= sel < len(questions[idx].choices)):
            sel = None
        if any(i < 0 or i >= total for i in answered):
            return fresh
        # each counted index is worth exactly one point
        if score != len(answered):
            return fresh

        revealed = bool(state.get("is_revealed")) and sel is not None
        completed = bool(state.get("completed")) and revealed and idx == total - 1

        return cls(
            questions=tuple(questions),
            current_index=idx,
            selected_choice=sel,
            is_revealed=revealed,
            score=score,
            answered_indices=answered,
            completed=completed,
        )
