from dataclasses import dataclass
from typing import List

DEFAULT_EXPLANATION = "Review the lesson content for more details."


@dataclass(frozen=True)
class QuestionRecord:
    prompt: str
    choices: List[str]
    correct_choice_index: int = 0
    explanation: str = DEFAULT_EXPLANATION

    def __post_init__(self):
        if not (self.prompt or "").strip():
            raise ValueError("QuestionRecord prompt must not be empty")
        if len(self.choices) < 1:
            raise ValueError("QuestionRecord must have at least one choice")
        if not (0 <= self.correct_choice_index < len(self.choices)):
            raise ValueError("correct_choice_index out of range")

    def to_dict(self) -> dict:
        return {
            "prompt": self.prompt,
            "choices": list(self.choices),
            "correct_choice_index": self.correct_choice_index,
            "explanation": self.explanation,
        }
