"""
Local display preferences.

The light/dark theme choice is kept in a small JSON file on the user's
machine, read once at startup and rewritten on every toggle. A missing,
unreadable or corrupt file is never fatal: the OS/browser preference (or
light) is used instead.
"""

import json
from pathlib import Path
from typing import Optional, Union

import structlog

from household_ledger.models.finance import Theme


logger = structlog.get_logger(__name__)


class ThemeStore:
    """Reads and writes the theme preference file."""

    def __init__(self, path: Union[str, Path]):
        self._path = Path(path).expanduser()

    @property
    def path(self) -> Path:
        return self._path

    def load(self, fallback: Optional[Theme] = None) -> Theme:
        """
        Return the stored theme.

        Args:
            fallback: Theme to use when nothing valid is stored, usually the
                OS/browser preference. Defaults to light.
        """
        default = fallback or Theme.LIGHT
        if not self._path.exists():
            return default

        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
            return Theme(data["theme"])
        except (OSError, ValueError, KeyError, TypeError) as e:
            logger.warning(
                "theme_preference_unreadable",
                path=str(self._path),
                error=str(e),
            )
            return default

    def save(self, theme: Theme) -> bool:
        """Persist the theme. Returns False (and logs) if the write fails."""
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._path.write_text(json.dumps({"theme": theme.value}), encoding="utf-8")
        except OSError as e:
            logger.warning(
                "theme_preference_not_saved",
                path=str(self._path),
                error=str(e),
            )
            return False
        return True

    def toggle(self, current: Theme) -> Theme:
        """Switch to the other theme and persist it."""
        new_theme = current.toggled()
        self.save(new_theme)
        return new_theme
