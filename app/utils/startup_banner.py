import platform
import sys
import logging

from app.constants import APP_NAME

log = logging.getLogger("LessonForge")


def startup_banner(
    *,
    provider: str,
    model: str,
    api: str,
    url: str,
    database: str,
    version: str,
    mode: str,
) -> None:
    python_ver = sys.version.split()[0]
    os_name = platform.system()

    rows = [
        ("CORE", f"{APP_NAME} v{version}"),
        ("ENV", mode),
        ("RUNTIME", f"Python {python_ver}"),
        ("HOST", os_name),
        ("AI-ENGINE", f"{provider} / {model}"),
        ("LINK", api),
        ("SERVING", url),
        ("DATABASE", database),
    ]

    width = 44
    line = "─" * width

    log.info(line)
    log.info(" >o< %s is online", APP_NAME)
    log.info("")

    label_width = max(len(k) for k, _ in rows)

    for k, v in rows:
        log.info("%s : %s", k.ljust(label_width), v)

    log.info(line)
