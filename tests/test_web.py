import base64
import json

from itsdangerous import BadSignature, TimestampSigner

from app.services.llm import LLMError
from app.web.core.deps import SESSION_SECRET

from conftest import SAMPLE_LESSON

OTHER_LESSON = """# Volcanoes

## Quiz

1. What comes out of a volcano?
   A) Lava
   B) Snow

2. Where does magma form?
   A) Underground
   B) In clouds

3. Which is an active volcano?
   A) Etna
   B) Everest
"""


def _generated(store, content=SAMPLE_LESSON, outline="Long division"):
    lesson = store.create_lesson(outline)
    store.mark_generated(lesson.id, title=outline, content=content)
    return lesson


# -----------------------------
# pages
# -----------------------------
def test_home_empty(client):
    r = client.get("/")
    assert r.status_code == 200
    assert "No lessons yet" in r.text
    assert r.headers["X-Frame-Options"] == "DENY"


def test_create_lesson_from_form_runs_generation(client, store, fake_llm):
    r = client.post("/lessons", data={"outline": "  Long division  "})
    assert r.status_code == 200

    lessons = store.list_lessons()
    assert len(lessons) == 1
    assert lessons[0].status == "generated"
    assert lessons[0].title == "Long division"
    assert len(fake_llm.calls) == 1
    assert "Long division" in r.text


def test_blank_outline_creates_nothing(client, store, fake_llm):
    client.post("/lessons", data={"outline": "   "})
    assert store.list_lessons() == []
    assert fake_llm.calls == []


def test_generation_failure_shows_error(client, store, fake_llm):
    fake_llm.error = LLMError("LLM error: 500")
    client.post("/lessons", data={"outline": "Volcanoes"})

    lesson = store.list_lessons()[0]
    assert lesson.status == "error"

    r = client.get(f"/lessons/{lesson.id}")
    assert "Generation Failed" in r.text
    assert "LLM error: 500" in r.text


def test_generating_page_refreshes(client, store):
    lesson = store.create_lesson("Still cooking")
    r = client.get(f"/lessons/{lesson.id}")
    assert "being generated" in r.text
    assert 'http-equiv="refresh"' in r.text


def test_lesson_page_renders_markdown_and_quiz(client, store):
    lesson = _generated(store)
    r = client.get(f"/lessons/{lesson.id}")

    assert r.status_code == 200
    assert "<h1>Long Division</h1>" in r.text
    assert "Interactive Quiz" in r.text
    assert "Question 1 of 3" in r.text
    assert "What is the first step of long division?" in r.text


def test_lesson_without_quiz_has_no_quiz_panel(client, store):
    lesson = _generated(store, content="# Plain\n\nNo questions here.")
    r = client.get(f"/lessons/{lesson.id}")
    assert "Interactive Quiz" not in r.text


def test_generated_without_content(client, store):
    lesson = store.create_lesson("empty")
    store.mark_generated(lesson.id, title="empty", content="")
    r = client.get(f"/lessons/{lesson.id}")
    assert "no content is available" in r.text


def test_raw_html_in_lesson_is_escaped(client, store):
    lesson = _generated(store, content="# Hi\n\n<script>alert(1)</script>")
    r = client.get(f"/lessons/{lesson.id}")
    assert "<script>alert(1)</script>" not in r.text


def test_unknown_lesson_is_404(client):
    r = client.get("/lessons/does-not-exist")
    assert r.status_code == 404
    assert "Lesson not found" in r.text


def test_delete_from_form(client, store):
    lesson = _generated(store)
    r = client.post(f"/lessons/{lesson.id}/delete")
    assert r.status_code == 200
    assert store.get_lesson(lesson.id) is None


def test_cross_origin_post_is_blocked(client, store):
    r = client.post("/lessons", data={"outline": "x"}, headers={"Origin": "https://evil.example"})
    assert r.status_code == 403
    assert store.list_lessons() == []


# -----------------------------
# quiz flow
# -----------------------------
def _quiz_state(client, lesson_id):
    return client.get(f"/api/lessons/{lesson_id}/quiz").json()["session"]


def _session_data(client):
    raw = client.cookies.get("session")
    if not raw or raw == "null":
        return {}
    try:
        data = TimestampSigner(SESSION_SECRET).unsign(raw.encode("utf-8"))
    except BadSignature:
        return {}
    return json.loads(base64.b64decode(data))


def _play_all(client, lesson_id, total=3):
    base = f"/lessons/{lesson_id}/quiz"
    for _ in range(total):
        client.post(f"{base}/select", data={"choice": "0"})
        client.post(f"{base}/submit")
        client.post(f"{base}/next")


def test_quiz_flow_through_forms(client, store):
    lesson = _generated(store)
    base = f"/lessons/{lesson.id}/quiz"

    client.post(f"{base}/select", data={"choice": "0"})
    client.post(f"{base}/submit")
    assert _quiz_state(client, lesson.id)["state"] == "revealed"
    client.post(f"{base}/next")

    client.post(f"{base}/select", data={"choice": "1"})
    client.post(f"{base}/submit")
    r = client.get(f"/lessons/{lesson.id}")
    assert "Incorrect" in r.text
    client.post(f"{base}/next")

    client.post(f"{base}/select", data={"choice": "0"})
    client.post(f"{base}/submit")
    r = client.post(f"{base}/next")

    assert "2 / 3" in r.text
    assert "Good effort! Keep practicing!" in r.text
    state = _quiz_state(client, lesson.id)
    assert state["state"] == "complete"
    assert state["score"] == 2
    assert state["label"] == "good effort"

    client.post(f"{base}/restart")
    state = _quiz_state(client, lesson.id)
    assert state["state"] == "answering"
    assert state["score"] == 0
    assert state["current_index"] == 0


def test_quiz_submit_without_selection_keeps_answering(client, store):
    lesson = _generated(store)
    client.post(f"/lessons/{lesson.id}/quiz/submit")
    assert _quiz_state(client, lesson.id)["state"] == "answering"


def test_quiz_actions_on_lesson_without_quiz(client, store):
    lesson = _generated(store, content="# No quiz")
    r = client.post(f"/lessons/{lesson.id}/quiz/submit")
    assert r.status_code == 200
    assert client.get(f"/api/lessons/{lesson.id}/quiz").json()["session"] is None


def test_quiz_action_on_unknown_lesson(client):
    r = client.post("/lessons/nope/quiz/restart")
    assert r.status_code == 404


# -----------------------------
# json api
# -----------------------------
def test_api_create_and_fetch(client, store):
    r = client.post("/api/lessons", json={"outline": "Cartesian grid"})
    assert r.status_code == 201
    lesson_id = r.json()["id"]

    r = client.get(f"/api/lessons/{lesson_id}")
    assert r.status_code == 200
    body = r.json()
    assert body["status"] == "generated"
    assert body["title"] == "Cartesian grid"

    listing = client.get("/api/lessons").json()
    assert listing["total"] == 1
    assert listing["generating"] == 0
    assert listing["items"][0]["id"] == lesson_id


def test_api_create_requires_outline(client):
    r = client.post("/api/lessons", json={"outline": "  "})
    assert r.status_code == 400
    assert r.json()["error"] == "outline is required"


def test_api_missing_lesson(client):
    r = client.get("/api/lessons/missing")
    assert r.status_code == 404
    assert r.json() == {"error": "Lesson not found"}


def test_api_delete(client, store):
    lesson = _generated(store)
    assert client.delete(f"/api/lessons/{lesson.id}").json()["ok"] is True
    assert client.delete(f"/api/lessons/{lesson.id}").status_code == 404


def test_api_regenerate(client, store, fake_llm):
    lesson = store.create_lesson("Retry me")
    store.mark_error(lesson.id, "boom")

    r = client.post(f"/api/lessons/{lesson.id}/generate")
    assert r.status_code == 202
    assert r.json() == {"success": True, "lessonId": lesson.id}
    assert store.get_lesson(lesson.id).status == "generated"


def test_api_quiz_questions(client, store):
    lesson = _generated(store)
    body = client.get(f"/api/lessons/{lesson.id}/quiz").json()

    assert len(body["questions"]) == 3
    assert body["questions"][0]["correct_choice_index"] == 0
    assert body["session"]["total"] == 3


def test_healthz(client):
    assert client.get("/healthz").json()["ok"] is True


# -----------------------------
# quiz progress in the session cookie
# -----------------------------
def test_session_cookie_stays_small_across_many_lessons(client, store):
    lessons = [_generated(store, outline=f"Topic {i}") for i in range(40)]

    sizes = []
    for lesson in lessons:
        client.post(f"/lessons/{lesson.id}/quiz/select", data={"choice": "0"})
        sizes.append(len(client.cookies["session"]))

    assert max(sizes) < 1024
    assert max(sizes) - min(sizes) < 16

    last = lessons[-1]
    client.post(f"/lessons/{last.id}/quiz/submit")
    assert _quiz_state(client, last.id)["state"] == "revealed"


def test_switching_lessons_starts_fresh(client, store):
    first = _generated(store)
    second = _generated(store, outline="Second")

    client.post(f"/lessons/{first.id}/quiz/select", data={"choice": "2"})
    client.post(f"/lessons/{second.id}/quiz/select", data={"choice": "1"})

    assert _quiz_state(client, second.id)["selected_choice"] == 1
    assert _quiz_state(client, first.id)["selected_choice"] is None


def test_api_delete_drops_quiz_progress(client, store):
    lesson = _generated(store)
    client.post(f"/lessons/{lesson.id}/quiz/select", data={"choice": "1"})
    assert _session_data(client)["quiz"]["lesson_id"] == lesson.id

    client.delete(f"/api/lessons/{lesson.id}")
    assert "quiz" not in _session_data(client)


def test_regenerated_lesson_does_not_reuse_old_progress(client, store, fake_llm):
    lesson = _generated(store)
    _play_all(client, lesson.id)
    assert _quiz_state(client, lesson.id)["label"] == "perfect"

    fake_llm.reply = OTHER_LESSON
    r = client.post(f"/api/lessons/{lesson.id}/generate")
    assert r.status_code == 202

    state = _quiz_state(client, lesson.id)
    assert state["state"] == "answering"
    assert state["score"] == 0
    assert state["current_index"] == 0


def test_changed_content_resets_progress(client, store):
    lesson = _generated(store)
    _play_all(client, lesson.id)

    store.mark_generated(lesson.id, title="Volcanoes", content=OTHER_LESSON)

    state = _quiz_state(client, lesson.id)
    assert state["state"] == "answering"
    assert state["score"] == 0
    assert "label" not in state


def test_quiz_posts_ignored_while_regenerating(client, store):
    lesson = _generated(store)
    base = f"/lessons/{lesson.id}/quiz"
    client.post(f"{base}/select", data={"choice": "1"})

    store.mark_generating(lesson.id)
    client.post(f"{base}/submit")
    assert client.get(f"/api/lessons/{lesson.id}/quiz").json()["session"] is None

    store.mark_generated(lesson.id, title="Long division", content=SAMPLE_LESSON)
    state = _quiz_state(client, lesson.id)
    assert state["state"] == "answering"
    assert state["selected_choice"] == 1


def test_home_refreshes_while_generating(client, store):
    pending = store.create_lesson("Still cooking")
    assert 'http-equiv="refresh"' in client.get("/").text

    store.mark_error(pending.id, "boom")
    assert 'http-equiv="refresh"' not in client.get("/").text
