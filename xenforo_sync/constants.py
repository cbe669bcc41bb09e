import re
from pathlib import Path
from typing import Any

# logging
DEFAULT_CONSOLE_WIDTH = 240
RICH_HANDLER_CONFIG: dict[str, Any] = {"rich_tracebacks": True, "tracebacks_show_locals": False}
RICH_HANDLER_DEBUG_CONFIG = RICH_HANDLER_CONFIG | {
    "tracebacks_show_locals": True,
    "locals_max_string": DEFAULT_CONSOLE_WIDTH,
    "tracebacks_extra_lines": 2,
    "locals_max_length": 20,
}
VALIDATION_ERROR_FOOTER = "Please delete the file or fix the errors."


# http
DEFAULT_TIMEOUT = 30
DEFAULT_MAX_RETRIES = 3
DEFAULT_RETRY_DELAY = 1.0
MAX_BACKOFF_JITTER = 0.1
MAX_REDIRECTS = 10
RETRY_STATUSES = (500, 502, 503, 504)

USER_AGENTS = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:117.0) Gecko/20100101 Firefox/117.0",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10.15; rv:117.0) Gecko/20100101 Firefox/117.0",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/605.1.15 (KHTML, like Gecko) Version/16.5 Safari/605.1.15",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36 Edg/120.0.0.0",
)

BROWSER_HEADERS = {
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/avif,image/webp,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.9",
    "Sec-Fetch-Dest": "document",
    "Sec-Fetch-Mode": "navigate",
    "Sec-Fetch-Site": "none",
    "Sec-Fetch-User": "?1",
    "Upgrade-Insecure-Requests": "1",
}


# rate limiting
REQUESTS_PER_SECOND = 10
PAGE_DELAY = 0.075
DOWNLOAD_DELAY_RANGE = (0.2, 0.35)
RATE_LIMIT_DEFAULT_WAIT = 60


# downloads
DEFAULT_DOWNLOAD_FOLDER = Path("downloads")
DEFAULT_DATABASE_FILE = Path("xenforo_sync.db")
DEFAULT_CONFIG_FILE = Path("xenforo_sync.yaml")
DOWNLOAD_CHUNK_SIZE = 1024 * 64
THUMBNAILS_FOLDER = "thumbnails"
SOURCE_THUMBNAIL_SIZE = "source"
MEDIA_CONTENT_TYPES = ("image/", "video/", "audio/")


# regex
SANITIZE_FILENAME_PATTERN = re.compile(r'[<>:"/\\|?*\']')
IMAGE_LINK_PATTERN = re.compile(r"\.(jpg|jpeg|png|gif|webp)(\?.*)?$", re.IGNORECASE)
VIDEO_LINK_PATTERN = re.compile(r"\.(mp4|webm|ogg|avi|mov)(\?.*)?$", re.IGNORECASE)
PAGE_NUMBER_PATTERN = re.compile(r"page-(\d+)")
TRAILING_ID_PATTERN = re.compile(r"[.\-](\d+)$")
ID_PREFIXES = ("thread-", "post-")

CSRF_TOKEN_PATTERNS = (
    re.compile(r'<input type="hidden" name="_xfToken" value="([^"]+)" '),
    re.compile(r'name="_xfToken" value="([^"]+)"'),
    re.compile(r'name="csrf_token" value="([^"]+)"'),
    re.compile(r"XF\.config\.csrf = '([^']+)'"),
    re.compile(r'"csrf":"([^"]+)"'),
)
LOGGED_IN_MARKER = '<span class="p-navgroup-user-linkText">'
