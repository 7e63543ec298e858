from __future__ import annotations

import os
from typing import Optional

from fastapi import HTTPException, Request
from fastapi.templating import Jinja2Templates

import config
from app.constants import (
    AI_FOOTER,
    APP_NAME,
    OUTLINE_PLACEHOLDER,
    POLL_INTERVAL_SEC,
    RESULT_MESSAGES,
    STATUS_BADGES,
)
from app.db import LessonStore
from app.models.lesson import STATUS_GENERATED, Lesson
from app.models.quiz_session import QuizSession
from app.services.llm import api_key_for, build_llm_client
from app.services.quiz_extract import extract_quiz_questions
from app.utils.text import render_markdown, shorten, time_ago

# -----------------------------
# Settings / env
# -----------------------------
SESSION_SECRET = os.environ["WEB_SESSION_SECRET"]
IS_PROD = config.ENV == "prod"

# -----------------------------
# Paths
# -----------------------------
CORE_DIR = os.path.dirname(os.path.abspath(__file__))
WEB_DIR = os.path.abspath(os.path.join(CORE_DIR, ".."))  # app/web

TEMPLATES_DIR = os.getenv("TEMPLATES_DIR", os.path.join(WEB_DIR, "templates"))
STATIC_DIR = os.getenv("STATIC_DIR", os.path.join(WEB_DIR, "static"))

# -----------------------------
# Singletons
# -----------------------------
templates = Jinja2Templates(directory=TEMPLATES_DIR)
templates.env.filters["markdown"] = render_markdown
templates.env.filters["time_ago"] = time_ago
templates.env.filters["shorten"] = shorten
templates.env.globals.update(
    app_name=APP_NAME,
    ai_footer=AI_FOOTER,
    outline_placeholder=OUTLINE_PLACEHOLDER,
    poll_interval=POLL_INTERVAL_SEC,
    result_messages=RESULT_MESSAGES,
    status_badges=STATUS_BADGES,
)

store = LessonStore(config.DB_PATH)
llm = build_llm_client(config)


def generation_options() -> dict:
    return {
        "api_key": api_key_for(config),
        "max_tokens": config.LESSON_MAX_TOKENS,
        "temperature": config.LESSON_TEMPERATURE,
    }


# -----------------------------
# Request helpers
# -----------------------------
def get_store(request: Request) -> LessonStore:
    return request.app.state.store


def lesson_or_404(request: Request, lesson_id: str) -> Lesson:
    lesson = get_store(request).get_lesson(lesson_id)
    if lesson is None:
        raise HTTPException(status_code=404, detail="Lesson not found")
    return lesson


# -----------------------------
# Quiz session persistence (signed cookie)
# -----------------------------
# a single slot holding progress for the most recently played lesson
QUIZ_SESSION_KEY = "quiz"


def load_quiz(request: Request, lesson: Lesson) -> Optional[QuizSession]:
    if lesson.status != STATUS_GENERATED or not lesson.content:
        return None
    questions = extract_quiz_questions(lesson.content)
    if not questions:
        return None

    stored = request.session.get(QUIZ_SESSION_KEY) or {}
    state = stored if stored.get("lesson_id") == lesson.id else None
    return QuizSession.from_state(questions, state)


def save_quiz(request: Request, lesson_id: str, session: QuizSession) -> None:
    request.session[QUIZ_SESSION_KEY] = {"lesson_id": lesson_id, **session.to_state()}


def drop_quiz(request: Request, lesson_id: str) -> None:
    stored = request.session.get(QUIZ_SESSION_KEY) or {}
    if stored.get("lesson_id") == lesson_id:
        request.session.pop(QUIZ_SESSION_KEY, None)
