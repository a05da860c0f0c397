"""
Website scraping for brand analysis.

Fetches a page and reduces its main content to markdown-like text: headings,
paragraphs and list items, without navigation, scripts or styling.
"""

import logging
import re
from urllib.parse import urlparse

import httpx
from bs4 import BeautifulSoup
from fastapi import HTTPException

logger = logging.getLogger(__name__)

USER_AGENT = "Mozilla/5.0 (compatible; notra/0.1)"
MAX_CONTENT_CHARS = 40_000

_NOISE_TAGS = ["script", "style", "noscript", "svg", "iframe", "nav", "footer", "header", "form"]
_BLOCK_TAGS = ["h1", "h2", "h3", "h4", "h5", "h6", "p", "li", "blockquote"]


def normalize_text(value: str) -> str:
    return re.sub(r"\s+", " ", value or "").strip()


def is_valid_url(url: str) -> bool:
    parsed = urlparse(url)
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def html_to_markdown(html: str, only_main_content: bool = True) -> str:
    soup = BeautifulSoup(html, "html.parser")
    for tag in soup(_NOISE_TAGS if only_main_content else ["script", "style", "noscript"]):
        tag.decompose()

    root = soup
    if only_main_content:
        root = soup.find("main") or soup.find("article") or soup.body or soup

    lines = []
    title = soup.find("title")
    if title and normalize_text(title.get_text()):
        lines.append(f"# {normalize_text(title.get_text())}")

    for element in root.find_all(_BLOCK_TAGS):
        # nested blocks are emitted by their innermost element
        if element.find(_BLOCK_TAGS):
            continue
        text = normalize_text(element.get_text(" ", strip=True))
        if not text:
            continue
        if element.name.startswith("h"):
            lines.append(f"{'#' * int(element.name[1])} {text}")
        elif element.name == "li":
            lines.append(f"- {text}")
        elif element.name == "blockquote":
            lines.append(f"> {text}")
        else:
            lines.append(text)

    return "\n\n".join(lines)[:MAX_CONTENT_CHARS]


async def scrape_website(url: str, only_main_content: bool = True) -> str:
    """
    Fetch a page and return its content as markdown.

    Raises:
        HTTPException: 400 for an invalid URL, the site's status code for
            HTTP errors and 503 when the site cannot be reached
    """
    if not is_valid_url(url):
        raise HTTPException(status_code=400, detail="Invalid URL")

    logger.info(f"Scraping {url}")
    async with httpx.AsyncClient(timeout=30.0, follow_redirects=True) as client:
        try:
            response = await client.get(url, headers={"User-Agent": USER_AGENT})
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise HTTPException(
                status_code=e.response.status_code,
                detail=f"Failed to scrape website: HTTP {e.response.status_code}"
            )
        except httpx.InvalidURL:
            raise HTTPException(status_code=400, detail="Invalid URL")
        except httpx.RequestError as e:
            raise HTTPException(status_code=503, detail=f"Failed to reach website: {str(e)}")

    return html_to_markdown(response.text, only_main_content=only_main_content)
