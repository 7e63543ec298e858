import os
import sys
import tempfile

import pytest

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

# settings are read at import time
os.environ.setdefault("WEB_SESSION_SECRET", "test-session-secret")
os.environ["DB_PATH"] = os.path.join(tempfile.mkdtemp(prefix="lessonforge-"), "import.sqlite3")
os.environ["LLM_PROVIDER"] = "local"

from fastapi.testclient import TestClient

from app.db import LessonStore
from app.web.core.ratelimit import limiter
from app.web.main import app as web_app


SAMPLE_LESSON = """# Long Division

## Introduction

Long division splits a big problem into small steps.

## Main Content

- Divide
- Multiply
- Subtract
- Bring down

## Quiz

1. What is the first step of long division?
   A) Divide
   B) Multiply
   C) Subtract
   D) Bring down

2. What is 84 divided by 4?
   A) 21
   B) 22
   C) 20
   D) 24

3. Which step comes after subtract?
   A) Bring down
   B) Divide
   C) Multiply
   D) Stop

## Summary

Practice makes perfect.
"""


class FakeLLM:
    def __init__(self, reply="", error=None):
        self.reply = reply
        self.error = error
        self.calls = []

    async def ask(self, **kwargs):
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        return self.reply


@pytest.fixture
def store(tmp_path):
    return LessonStore(str(tmp_path / "lessons.sqlite3"))


@pytest.fixture
def fake_llm():
    return FakeLLM(reply=SAMPLE_LESSON)


@pytest.fixture
def app(store, fake_llm):
    limiter.reset()
    original = (web_app.state.store, web_app.state.llm)
    web_app.state.store = store
    web_app.state.llm = fake_llm
    yield web_app
    web_app.state.store, web_app.state.llm = original


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c
