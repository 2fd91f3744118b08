"""Failure screenshot capture."""

from __future__ import annotations

import logging
import re
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

logger = logging.getLogger(__name__)


def sanitize_filename(text: str, max_length: int = 50) -> str:
    """Sanitize text for use in filename.

    Args:
        text: Text to sanitize
        max_length: Maximum length

    Returns:
        Sanitized filename-safe string
    """
    # Replace problematic characters
    sanitized = re.sub(r'[<>:"/\\|?*]', "_", text)
    # Collapse whitespace and underscores
    sanitized = re.sub(r"[\s_]+", "_", sanitized)
    sanitized = sanitized.strip("_")
    if len(sanitized) > max_length:
        sanitized = sanitized[:max_length].rstrip("_")
    return sanitized or "scenario"


class ScreenshotCapture:
    """Captures a screenshot of a UI session when a scenario fails."""

    def __init__(self, output_dir: Path, timestamp_format: str = "%Y%m%d-%H%M%S"):
        self.output_dir = output_dir
        self.timestamp_format = timestamp_format

    def get_screenshot_path(self, scenario_name: str, worker_id: str, attempt: int) -> Path:
        """Generate screenshot path for a failed attempt.

        Example: screenshots/Login_page_renders_worker-1_attempt-2_20260101-120000.png
        """
        stamp = datetime.now().strftime(self.timestamp_format)
        filename = (
            f"{sanitize_filename(scenario_name)}_{sanitize_filename(worker_id)}"
            f"_attempt-{attempt}_{stamp}.png"
        )
        return self.output_dir / filename

    def capture(
        self,
        session: Any,
        scenario_name: str,
        worker_id: str,
        attempt: int = 1,
    ) -> Optional[Path]:
        """Save a screenshot of the session.

        Returns:
            Path to the screenshot, or None if capture failed
        """
        path = self.get_screenshot_path(scenario_name, worker_id, attempt)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            session.screenshot(path)
        except Exception as e:
            logger.error(f"Failed to capture screenshot for '{scenario_name}': {e}")
            return None

        logger.info(f"Screenshot saved: {path}")
        return path
