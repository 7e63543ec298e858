import os
import logging

import uvicorn

from app.constants import APP_MODE, APP_VERSION
from app.utils.logger_setup import setup_logging
from app.utils.startup_banner import startup_banner

from config import (
    HOST, PORT, DB_PATH, LOG_DIR, LOG_LEVEL, LLM_PROVIDER, OPENAI_BASE_URL, DEFAULT_MODEL, OPENAI_API_URL, OPENAI_MODEL,
    GEMINI_MODEL, GEMINI_BASE_URL, GROQ_MODEL, GROQ_BASE_URL,
)


def _engine() -> tuple:
    if LLM_PROVIDER == "gemini":
        return "Gemini", GEMINI_MODEL, GEMINI_BASE_URL
    if LLM_PROVIDER == "groq":
        return "Groq", GROQ_MODEL, GROQ_BASE_URL
    if LLM_PROVIDER == "openai":
        return "OpenAI", OPENAI_MODEL, OPENAI_API_URL
    provider = "Ollama (OpenAI-compatible)" if "11434" in OPENAI_BASE_URL else "OpenAI-compatible"
    return provider, DEFAULT_MODEL, OPENAI_BASE_URL


def main() -> None:
    setup_logging(log_dir=LOG_DIR, console_level=LOG_LEVEL, file_level="DEBUG")
    log = logging.getLogger("LessonForge")

    if not os.getenv("WEB_SESSION_SECRET"):
        raise SystemExit("WEB_SESSION_SECRET missing in .env")

    from app.web.main import app

    provider, model, api = _engine()
    startup_banner(
        provider=provider,
        model=model,
        api=api.replace("http://", "").replace("https://", ""),
        url=f"http://{HOST}:{PORT}",
        database=DB_PATH,
        version=APP_VERSION,
        mode=APP_MODE,
    )

    log.info("Serving on http://%s:%s (provider=%s)", HOST, PORT, LLM_PROVIDER)
    uvicorn.run(app, host=HOST, port=PORT, log_config=None)


if __name__ == "__main__":
    main()
