import logging

from fastapi import APIRouter, BackgroundTasks, Form, Request
from fastapi.responses import HTMLResponse, RedirectResponse

from app.web.core.deps import drop_quiz, generation_options, get_store, lesson_or_404, load_quiz
from app.web.core.ratelimit import limiter
from app.services.lesson_gen import generate_lesson

log = logging.getLogger("LessonForge")

router = APIRouter()


@router.get("/", response_class=HTMLResponse)
def home_page(request: Request):
    store = get_store(request)
    templates = request.app.state.templates

    lessons = store.list_lessons(limit=100)
    any_generating = any(lsn.is_generating for lsn in lessons)

    return templates.TemplateResponse(
        request,
        "index.html",
        {
            "lessons": lessons,
            "auto_refresh": any_generating,
        },
    )


@router.post("/lessons")
@limiter.limit("20/minute")
def create_lesson_form(
    request: Request,
    background_tasks: BackgroundTasks,
    outline: str = Form(""),
):
    outline = (outline or "").strip()
    if not outline:
        return RedirectResponse("/", status_code=303)

    store = get_store(request)
    lesson = store.create_lesson(outline)
    log.info("[%s] Lesson created from form (%d chars)", lesson.id, len(outline))

    background_tasks.add_task(
        generate_lesson,
        request.app.state.llm,
        store,
        lesson_id=lesson.id,
        outline=outline,
        **generation_options(),
    )
    return RedirectResponse("/", status_code=303)


@router.post("/lessons/{lesson_id}/delete")
def delete_lesson_form(request: Request, lesson_id: str):
    lesson = lesson_or_404(request, lesson_id)
    get_store(request).delete_lesson(lesson.id)
    drop_quiz(request, lesson.id)
    log.info("[%s] Lesson deleted", lesson.id)
    return RedirectResponse("/", status_code=303)


@router.get("/lessons/{lesson_id}", response_class=HTMLResponse)
def lesson_page(request: Request, lesson_id: str):
    lesson = lesson_or_404(request, lesson_id)
    templates = request.app.state.templates

    quiz = load_quiz(request, lesson)

    return templates.TemplateResponse(
        request,
        "lesson.html",
        {
            "lesson": lesson,
            "quiz": quiz,
            "auto_refresh": lesson.is_generating,
        },
    )
