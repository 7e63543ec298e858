from dataclasses import dataclass, asdict
from typing import Any, Dict, Optional

STATUS_GENERATING = "generating"
STATUS_GENERATED = "generated"
STATUS_ERROR = "error"

LESSON_STATUSES = (STATUS_GENERATING, STATUS_GENERATED, STATUS_ERROR)


@dataclass
class Lesson:
    id: str
    outline: str
    status: str
    title: str = ""
    content: str = ""
    error_message: Optional[str] = None
    created_at: str = ""

    def __post_init__(self):
        if self.status not in LESSON_STATUSES:
            raise ValueError(f"unknown lesson status: {self.status!r}")

    @property
    def display_title(self) -> str:
        return self.title or self.outline

    @property
    def is_generating(self) -> bool:
        return self.status == STATUS_GENERATING

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
