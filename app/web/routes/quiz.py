import logging
from typing import Callable

from fastapi import APIRouter, Form, Request
from fastapi.responses import RedirectResponse

from app.models.quiz_session import QuizSession
from app.web.core.deps import lesson_or_404, load_quiz, save_quiz

log = logging.getLogger("LessonForge")

router = APIRouter(prefix="/lessons/{lesson_id}/quiz", tags=["quiz"])


def _back(lesson_id: str) -> RedirectResponse:
    return RedirectResponse(f"/lessons/{lesson_id}#quiz", status_code=303)


def _apply(
    request: Request,
    lesson_id: str,
    step: Callable[[QuizSession], QuizSession],
) -> RedirectResponse:
    lesson = lesson_or_404(request, lesson_id)
    session = load_quiz(request, lesson)
    if session is None:
        return _back(lesson.id)

    nxt = step(session)
    save_quiz(request, lesson.id, nxt)
    log.debug("[%s] quiz %s -> %s", lesson.id, session.snapshot(), nxt.snapshot())
    return _back(lesson.id)


@router.post("/select")
def quiz_select(request: Request, lesson_id: str, choice: int = Form(...)):
    return _apply(request, lesson_id, lambda s: s.select_choice(choice))


@router.post("/submit")
def quiz_submit(request: Request, lesson_id: str):
    return _apply(request, lesson_id, lambda s: s.submit())


@router.post("/next")
def quiz_next(request: Request, lesson_id: str):
    return _apply(request, lesson_id, lambda s: s.advance())


@router.post("/restart")
def quiz_restart(request: Request, lesson_id: str):
    return _apply(request, lesson_id, lambda s: s.restart())
