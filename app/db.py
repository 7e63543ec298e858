import os
import sqlite3
import uuid
from typing import Optional, List

from app.constants import ERROR_MESSAGE_MAX_LEN
from app.models.lesson import (
    Lesson,
    STATUS_ERROR,
    STATUS_GENERATED,
    STATUS_GENERATING,
)


class LessonStore:
    def __init__(self, db_path: str):
        self.db_path = db_path
        self._init_db()

    # -------------------------
    # Connection
    # -------------------------
    def _connect(self) -> sqlite3.Connection:
        con = sqlite3.connect(self.db_path)
        con.row_factory = sqlite3.Row
        return con

    def _ensure_columns(self, con: sqlite3.Connection, table: str, cols: dict) -> None:
        cur = con.execute(f"PRAGMA table_info({table})")
        existing = {row[1] for row in cur.fetchall()}
        for col, ddl in cols.items():
            if col not in existing:
                con.execute(f"ALTER TABLE {table} ADD COLUMN {col} {ddl}")

    def _init_db(self) -> None:
        os.makedirs(os.path.dirname(self.db_path) or ".", exist_ok=True)

        with self._connect() as con:
            # -------------------------
            # Lessons
            # -------------------------
            con.execute(
                """
                CREATE TABLE IF NOT EXISTS lessons (
                    id TEXT PRIMARY KEY,
                    title TEXT NOT NULL DEFAULT '',
                    outline TEXT NOT NULL,
                    content TEXT NOT NULL DEFAULT '',
                    status TEXT NOT NULL DEFAULT 'generating'
                        CHECK(status IN ('generating','generated','error')),
                    error_message TEXT,
                    created_at DATETIME DEFAULT CURRENT_TIMESTAMP
                )
                """
            )

            # migrations (safe on existing DBs)
            self._ensure_columns(
                con,
                "lessons",
                {
                    "title": "TEXT NOT NULL DEFAULT ''",
                    "content": "TEXT NOT NULL DEFAULT ''",
                    "error_message": "TEXT",
                },
            )

            con.execute("CREATE INDEX IF NOT EXISTS idx_lessons_created ON lessons(created_at)")
            con.execute("CREATE INDEX IF NOT EXISTS idx_lessons_status ON lessons(status)")
            con.commit()

    @staticmethod
    def _row_to_lesson(row: sqlite3.Row) -> Lesson:
        return Lesson(
            id=str(row["id"]),
            title=row["title"] or "",
            outline=row["outline"] or "",
            content=row["content"] or "",
            status=row["status"],
            error_message=row["error_message"],
            created_at=str(row["created_at"] or ""),
        )

    # -------------------------
    # Lessons
    # -------------------------
    def create_lesson(self, outline: str) -> Lesson:
        outline = (outline or "").strip()
        if not outline:
            raise ValueError("outline must not be empty")

        lesson_id = uuid.uuid4().hex
        with self._connect() as con:
            con.execute(
                "INSERT INTO lessons(id, outline, status) VALUES (?,?,?)",
                (lesson_id, outline, STATUS_GENERATING),
            )
            con.commit()

        lesson = self.get_lesson(lesson_id)
        if lesson is None:
            raise sqlite3.DatabaseError(f"lesson {lesson_id} missing after insert")
        return lesson

    def get_lesson(self, lesson_id: str) -> Optional[Lesson]:
        with self._connect() as con:
            row = con.execute(
                "SELECT * FROM lessons WHERE id = ?",
                (str(lesson_id),),
            ).fetchone()
        return self._row_to_lesson(row) if row else None

    def list_lessons(self, limit: int = 100) -> List[Lesson]:
        with self._connect() as con:
            rows = con.execute(
                """
                SELECT *
                FROM lessons
                ORDER BY created_at DESC, rowid DESC
                LIMIT ?
                """,
                (int(limit),),
            ).fetchall()
        return [self._row_to_lesson(r) for r in rows]

    def count_lessons(self, status: Optional[str] = None) -> int:
        with self._connect() as con:
            if status:
                row = con.execute(
                    "SELECT COUNT(*) AS n FROM lessons WHERE status = ?", (str(status),)
                ).fetchone()
            else:
                row = con.execute("SELECT COUNT(*) AS n FROM lessons").fetchone()
        return int(row["n"] or 0)

    def mark_generating(self, lesson_id: str) -> bool:
        with self._connect() as con:
            cur = con.execute(
                "UPDATE lessons SET status = ?, error_message = NULL WHERE id = ?",
                (STATUS_GENERATING, str(lesson_id)),
            )
            con.commit()
            return cur.rowcount > 0

    def mark_generated(self, lesson_id: str, *, title: str, content: str) -> bool:
        with self._connect() as con:
            cur = con.execute(
                """
                UPDATE lessons
                SET title = ?, content = ?, status = ?, error_message = NULL
                WHERE id = ?
                """,
                (title, content, STATUS_GENERATED, str(lesson_id)),
            )
            con.commit()
            return cur.rowcount > 0

    def mark_error(self, lesson_id: str, message: str) -> bool:
        msg = (message or "Unknown error")[:ERROR_MESSAGE_MAX_LEN]
        with self._connect() as con:
            cur = con.execute(
                "UPDATE lessons SET status = ?, error_message = ? WHERE id = ?",
                (STATUS_ERROR, msg, str(lesson_id)),
            )
            con.commit()
            return cur.rowcount > 0

    def delete_lesson(self, lesson_id: str) -> bool:
        with self._connect() as con:
            cur = con.execute("DELETE FROM lessons WHERE id = ?", (str(lesson_id),))
            con.commit()
            return cur.rowcount > 0
