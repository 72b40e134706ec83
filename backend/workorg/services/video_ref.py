import asyncio
import logging
import re
from typing import Optional
from urllib.parse import parse_qs, urlparse

import requests
from bs4 import BeautifulSoup

from workorg.errors import InvalidVideoReference

logger = logging.getLogger(__name__)

_SHORT_LINK = re.compile(r"^(?:https?://)?(?:www\.)?youtu\.be/([A-Za-z0-9_-]+)", re.IGNORECASE)
_EMBED = re.compile(r"^(?:https?://)?(?:www\.|m\.)?youtube(?:-nocookie)?\.com/embed/([A-Za-z0-9_-]+)", re.IGNORECASE)
_WATCH_HOST = re.compile(r"^(?:www\.|m\.)?youtube\.com(?::\d+)?$", re.IGNORECASE)
_VIDEO_ID = re.compile(r"^[A-Za-z0-9_-]+$")

TITLE_SUFFIXES = (" - YouTube",)


def extract_video_id(locator: str) -> str:
    """
    Derive the canonical YouTube video id from a watch-page, short-link or
    embed URL. Raises InvalidVideoReference for anything else.
    """
    locator = (locator or "").strip()

    for pattern in (_SHORT_LINK, _EMBED):
        match = pattern.match(locator)
        if match:
            return match.group(1)

    parsed = urlparse(locator if "://" in locator else f"https://{locator}")
    if _WATCH_HOST.match(parsed.netloc) and parsed.path.rstrip("/") == "/watch":
        # v= may sit anywhere in the query string
        ids = parse_qs(parsed.query).get("v")
        if ids and _VIDEO_ID.match(ids[0]):
            return ids[0]

    raise InvalidVideoReference(locator)


def _scrape_title(url: str) -> Optional[str]:
    try:
        headers = {
            'User-Agent': 'Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/91.0.4472.124 Safari/537.36'
        }
        response = requests.get(url, headers=headers, timeout=5)
        response.raise_for_status()

        soup = BeautifulSoup(response.text, 'html.parser')

        title = None
        og_title = soup.find('meta', property='og:title')
        if og_title and og_title.get('content'):
            title = og_title['content']
        elif soup.title and soup.title.string:
            title = soup.title.string

        if not title:
            return None

        for suffix in TITLE_SUFFIXES:
            title = title.replace(suffix, '')
        return title.strip() or None
    except Exception as e:
        logger.error(f"Title lookup error for {url}: {e}")
        return None


async def lookup_title(url: str) -> Optional[str]:
    """
    Fetch a display title for the video page in a thread pool to avoid blocking.
    """
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(None, _scrape_title, url)
