from typing import Dict

AI_FOOTER = "AI generated - Verify with official sources"
APP_NAME = "LessonForge"
APP_VERSION = "1.2.0"
APP_MODE = "Development"

# Lesson titles are cut from the outline
TITLE_MAX_LEN = 100
ERROR_MESSAGE_MAX_LEN = 200

# Home page refresh while something is generating (seconds)
POLL_INTERVAL_SEC = 3

OUTLINE_PLACEHOLDER = (
    "Example: 'A one-pager on how to divide with long division' or "
    "'A 10-question pop quiz on Florida' or "
    "'An explanation of how the Cartesian Grid works'"
)

RESULT_MESSAGES: Dict[str, str] = {
    "perfect": "Perfect score! Outstanding!",
    "great": "Great job! Well done!",
    "good effort": "Good effort! Keep practicing!",
    "keep practicing": "Keep learning and try again!",
}

STATUS_BADGES: Dict[str, str] = {
    "generating": "Generating",
    "generated": "Generated",
    "error": "Error",
}
