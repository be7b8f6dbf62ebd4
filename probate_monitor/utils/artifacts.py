import re
import time
from pathlib import Path
from typing import Optional

from loguru import logger

class ArtifactStore:
    """Writes raw page snapshots (HTML, optionally PDF) for audit"""

    def __init__(self, base_dir: str, capture_pdf: bool = True):
        self.base_dir = Path(base_dir)
        self.capture_pdf = capture_pdf
        self.base_dir.mkdir(parents=True, exist_ok=True)
    
    def _path(self, prefix: str, key: str, suffix: str) -> Path:
        safe_key = re.sub(r'[^a-zA-Z0-9]', '_', key)
        return self.base_dir / f"{prefix}-{safe_key}-{int(time.time() * 1000)}.{suffix}"
    
    def save_html(self, prefix: str, key: str, html: str) -> Optional[str]:
        """Write an HTML snapshot; returns the path, or None when the write failed"""
        path = self._path(prefix, key, "html")
        try:
            path.write_text(html, encoding="utf-8")
            logger.info(f"Saved HTML snapshot: {path}")
            return str(path)
        except OSError as e:
            logger.warning(f"Failed to save HTML snapshot {path}: {e}")
            return None
    
    async def save_pdf(self, prefix: str, key: str, page) -> Optional[str]:
        """Render the page to PDF when enabled; failures are logged, never raised"""
        if not self.capture_pdf:
            return None
        path = self._path(prefix, key, "pdf")
        try:
            await page.pdf(str(path))
            logger.info(f"Saved PDF snapshot: {path}")
            return str(path)
        except Exception as e:
            # PDF rendering is only supported by headless chromium
            logger.warning(f"Failed to save PDF snapshot {path}: {e}")
            return None
