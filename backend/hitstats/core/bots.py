import re

# Substrings found in the user agent of crawlers and uptime monitors.
BOT_PATTERN = re.compile(r"bot|crawler|slurp|spider|check_http", re.IGNORECASE)


def is_bot(user_agent: str | None) -> bool:
    """Check whether a user agent looks like a robot."""
    if not user_agent:
        return False
    return BOT_PATTERN.search(user_agent) is not None
