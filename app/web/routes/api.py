import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, BackgroundTasks, Body, Query, Request
from fastapi.responses import JSONResponse

from app.models.lesson import STATUS_GENERATED, STATUS_GENERATING
from app.services.lesson_gen import generate_lesson
from app.services.quiz_extract import extract_quiz_questions
from app.web.core.deps import drop_quiz, generation_options, get_store, lesson_or_404, load_quiz
from app.web.core.ratelimit import limiter

log = logging.getLogger("LessonForge")

router = APIRouter(prefix="/api/lessons", tags=["lessons"])


def _schedule(request: Request, background_tasks: BackgroundTasks, lesson_id: str, outline: str) -> None:
    background_tasks.add_task(
        generate_lesson,
        request.app.state.llm,
        get_store(request),
        lesson_id=lesson_id,
        outline=outline,
        **generation_options(),
    )


@router.get("")
def api_list_lessons(
    request: Request,
    limit: int = Query(default=100, ge=1, le=500),
):
    store = get_store(request)
    lessons = store.list_lessons(limit=limit)
    return JSONResponse(
        {
            "items": [lsn.to_dict() for lsn in lessons],
            "total": store.count_lessons(),
            "generating": store.count_lessons(STATUS_GENERATING),
        }
    )


@router.post("")
@limiter.limit("20/minute")
def api_create_lesson(
    request: Request,
    background_tasks: BackgroundTasks,
    payload: Dict[str, Any] = Body(...),
):
    outline = str(payload.get("outline") or "").strip()
    if not outline:
        return JSONResponse({"error": "outline is required"}, status_code=400)

    lesson = get_store(request).create_lesson(outline)
    log.info("[%s] Lesson created via API (%d chars)", lesson.id, len(outline))
    _schedule(request, background_tasks, lesson.id, outline)

    return JSONResponse(lesson.to_dict(), status_code=201)


@router.get("/{lesson_id}")
def api_get_lesson(request: Request, lesson_id: str):
    return JSONResponse(lesson_or_404(request, lesson_id).to_dict())


@router.delete("/{lesson_id}")
def api_delete_lesson(request: Request, lesson_id: str):
    lesson = lesson_or_404(request, lesson_id)
    get_store(request).delete_lesson(lesson.id)
    drop_quiz(request, lesson.id)
    log.info("[%s] Lesson deleted via API", lesson.id)
    return JSONResponse({"ok": True, "id": lesson.id})


@router.post("/{lesson_id}/generate")
@limiter.limit("10/minute")
def api_generate_lesson(
    request: Request,
    lesson_id: str,
    background_tasks: BackgroundTasks,
    payload: Optional[Dict[str, Any]] = Body(default=None),
):
    lesson = lesson_or_404(request, lesson_id)
    outline = str((payload or {}).get("outline") or lesson.outline or "").strip()
    if not outline:
        return JSONResponse({"error": "lessonId and outline are required"}, status_code=400)

    get_store(request).mark_generating(lesson.id)
    drop_quiz(request, lesson.id)
    _schedule(request, background_tasks, lesson.id, outline)

    return JSONResponse({"success": True, "lessonId": lesson.id}, status_code=202)


@router.get("/{lesson_id}/quiz")
def api_lesson_quiz(request: Request, lesson_id: str):
    lesson = lesson_or_404(request, lesson_id)

    questions = extract_quiz_questions(lesson.content) if lesson.status == STATUS_GENERATED else []
    session = load_quiz(request, lesson) if questions else None

    return JSONResponse(
        {
            "lesson_id": lesson.id,
            "questions": [q.to_dict() for q in questions],
            "session": session.snapshot() if session else None,
        }
    )
