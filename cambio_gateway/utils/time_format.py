"""Elapsed-time formatting for the pause counter"""


def format_elapsed(seconds: int) -> str:
    """Render seconds as '1h 2m 3s', '2m 3s' or '3s'"""
    seconds = max(int(seconds), 0)
    hours = seconds // 3600
    minutes = (seconds % 3600) // 60
    secs = seconds % 60

    if hours > 0:
        return f"{hours}h {minutes}m {secs}s"
    if minutes > 0:
        return f"{minutes}m {secs}s"
    return f"{secs}s"
