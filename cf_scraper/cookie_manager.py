"""Durable cookie-jar persistence for the browser session"""

from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

import aiofiles
import orjson
from loguru import logger

from .config import DEFAULT_COOKIE_FILE


class CookieManager:
    """
    Saves and restores the browser's cookie jar.

    Cookies are stored in Playwright's own shape (name, value, domain, path,
    expires, httpOnly, secure, sameSite) inside a small JSON document that
    also records when the jar was written. Loading is best-effort: a missing
    or unreadable file simply means there is no prior session.
    """

    def __init__(self, cookie_file: Path = DEFAULT_COOKIE_FILE):
        """
        Initialize cookie manager.

        Args:
            cookie_file: Path to cookie JSON file
        """
        self.cookie_file = Path(cookie_file)
        self.saved_at: Optional[datetime] = None

    def get_cookie_age(self) -> Optional[float]:
        """Get age of the stored jar in seconds"""
        if self.saved_at:
            return (datetime.now(timezone.utc) - self.saved_at).total_seconds()

        if self.cookie_file.exists():
            mtime = self.cookie_file.stat().st_mtime
            return datetime.now().timestamp() - mtime

        return None

    async def load(self) -> List[Dict[str, Any]]:
        """
        Load cookies from file.

        Returns:
            The stored cookies, or an empty list when there is no usable jar
        """
        if not self.cookie_file.exists():
            logger.info("ℹ️ No saved session found")
            return []

        try:
            async with aiofiles.open(self.cookie_file, "rb") as f:
                data = orjson.loads(await f.read())
        except (OSError, orjson.JSONDecodeError) as e:
            logger.warning(f"⚠️ Ignoring unreadable cookie file {self.cookie_file}: {e}")
            return []

        # Older jars were written as a bare list
        if isinstance(data, list):
            cookies = data
        elif isinstance(data, dict) and isinstance(data.get("cookies"), list):
            cookies = data["cookies"]
            saved_at = data.get("saved_at")
            if saved_at:
                try:
                    self.saved_at = datetime.fromisoformat(saved_at)
                except ValueError:
                    self.saved_at = None
        else:
            logger.warning(f"⚠️ Unexpected cookie file layout in {self.cookie_file}")
            return []

        cookies = [c for c in cookies if isinstance(c, dict) and "name" in c and "value" in c]
        logger.info(f"🔄 Loaded {len(cookies)} cookies from {self.cookie_file}")
        return cookies

    async def save(self, cookies: List[Dict[str, Any]]) -> Path:
        """
        Save cookies to file, replacing any previous jar.

        Args:
            cookies: Cookies as returned by ``BrowserContext.cookies()``

        Returns:
            Path to saved file
        """
        self.cookie_file.parent.mkdir(parents=True, exist_ok=True)
        self.saved_at = datetime.now(timezone.utc)

        document = {"saved_at": self.saved_at.isoformat(), "cookies": list(cookies)}
        async with aiofiles.open(self.cookie_file, "wb") as f:
            await f.write(orjson.dumps(document, option=orjson.OPT_INDENT_2))

        logger.info(f"💾 Saved {len(cookies)} cookies to: {self.cookie_file}")
        return self.cookie_file

    def clear(self) -> None:
        """Remove the stored jar"""
        logger.warning("🗑️ Clearing saved session...")
        self.saved_at = None
        if self.cookie_file.exists():
            self.cookie_file.unlink()
            logger.success("✓ Saved session cleared")
