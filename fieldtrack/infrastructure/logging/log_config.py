"""Logging setup for the client core.

Levels come from Settings per category, so outbound HTTP chatter can be
turned down while the media pipeline and mutation manager stay verbose.

Call ``setup_logging()`` once when the app starts.
"""

import logging
import sys

from fieldtrack.config import Settings, get_settings

_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"
_DATE_FORMAT = "%H:%M:%S"

# Settings field -> logger names it controls
_CATEGORY_MAP: dict[str, tuple[str, ...]] = {
    "log_level_http": (
        "httpx",
        "httpcore",
        "fieldtrack.infrastructure.remote",
    ),
    "log_level_pipeline": (
        "fieldtrack.pipeline",
        "fieldtrack.application.services.media_pipeline",
        "fieldtrack.application.services.media_store",
        "fieldtrack.application.services.signed_url_cache",
    ),
    "log_level_mutations": (
        "fieldtrack.application.services.mutation_manager",
        "fieldtrack.application.services.entity_queue",
    ),
}


def setup_logging(settings: Settings | None = None) -> dict[str, int]:
    """Apply root and per-category levels; return the level set on each category."""
    settings = settings or get_settings()

    root = logging.getLogger()
    root.setLevel(_parse_level(settings.log_level))
    if not root.handlers:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(_FORMAT, datefmt=_DATE_FORMAT))
        root.addHandler(handler)

    applied: dict[str, int] = {}
    for field, names in _CATEGORY_MAP.items():
        level = _parse_level(getattr(settings, field))
        for name in names:
            logging.getLogger(name).setLevel(level)
        applied[field] = level

    logging.getLogger(__name__).debug(
        "Log levels: root=%s %s",
        settings.log_level,
        " ".join(f"{field.removeprefix('log_level_')}={logging.getLevelName(level)}"
                 for field, level in applied.items()),
    )
    return applied


def _parse_level(raw: str) -> int:
    """Level name to logging constant; unknown names fall back to INFO."""
    level = logging.getLevelName(raw.strip().upper())
    return level if isinstance(level, int) else logging.INFO
