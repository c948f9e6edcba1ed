from __future__ import annotations

import math


def format_duration_ms(duration: float) -> str:
    if not math.isfinite(duration):
        return "Unknown"
    if duration < 1000:
        return f"{max(0, math.floor(duration))} ms"
    total_seconds = math.floor(duration / 1000)
    seconds = total_seconds % 60
    minutes = (total_seconds // 60) % 60
    hours = (total_seconds // 3600) % 24
    days = total_seconds // 86400

    parts: list[str] = []
    if days > 0:
        parts.append(f"{days}d")
    if hours > 0:
        parts.append(f"{hours}h")
    if minutes > 0:
        parts.append(f"{minutes}m")
    if seconds > 0 or not parts:
        parts.append(f"{seconds}s")
    return " ".join(parts)
