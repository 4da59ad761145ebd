"""Firecrawl service for fetching class-action page context."""

from typing import Any

import httpx

from specter.core.config import get_settings
from specter.core.exceptions import FetchError
from specter.core.logging import get_logger

logger = get_logger(__name__)

# Structured fields Firecrawl's extractor is asked to fill in
EXTRACTION_SCHEMA: dict[str, dict[str, str]] = {
    "title": {"type": "string", "description": "The title or name of the lawsuit"},
    "payout": {"type": "string", "description": "The settlement amount or payout details"},
    "participants": {
        "type": "string",
        "description": "Number of participants, class members, or affected people",
    },
    "deadline": {
        "type": "string",
        "description": "Filing deadline, claim deadline, or important dates",
    },
    "lawFirm": {"type": "string", "description": "Law firm(s) handling the case"},
    "eligibility": {"type": "string", "description": "Who is eligible to join or make claims"},
    "caseNumber": {"type": "string", "description": "Case number or identifier if available"},
    "courtInfo": {"type": "string", "description": "Court where the lawsuit was filed"},
    "summary": {"type": "string", "description": "A brief summary of the lawsuit"},
    "status": {
        "type": "string",
        "description": "Current status of the lawsuit (pending, settled, etc.)",
    },
}

EXTRACTION_PROMPT = (
    "Extract detailed information about this class action lawsuit, including "
    "settlement amounts, payout figures, filing and claim deadlines, eligibility "
    "criteria, participating law firms, case numbers, court information, and any "
    "other details relevant to someone considering joining this lawsuit."
)


def _build_scrape_request(url: str, wait_for_ms: int, timeout_ms: int) -> dict[str, Any]:
    return {
        "url": url,
        "formats": ["markdown", "links", "html", "screenshot", "json"],
        "onlyMainContent": False,
        "waitFor": wait_for_ms,
        "blockAds": True,
        "timeout": timeout_ms,
        "jsonOptions": {
            "schema": {"type": "object", "properties": EXTRACTION_SCHEMA},
            "prompt": EXTRACTION_PROMPT,
        },
    }


def _error_message(response: httpx.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        return f"Firecrawl API error ({response.status_code})"
    if isinstance(data, dict) and data.get("error"):
        return str(data["error"])
    return f"Firecrawl API error ({response.status_code})"


async def fetch_enrichment_payload(url: str, timeout: float | None = None) -> dict[str, Any]:
    """
    Scrape a class-action page with Firecrawl.

    Args:
        url: Page to scrape
        timeout: Optional timeout override in seconds

    Returns:
        The decoded Firecrawl response, usually a ``{success, data}`` envelope

    Raises:
        FetchError: If the API key is missing, the request fails, or the
            response is not 2xx
    """
    settings = get_settings()

    if not settings.FIRECRAWL_API_KEY:
        raise FetchError("FIRECRAWL_API_KEY not configured", url=url)

    request_timeout = timeout or settings.FIRECRAWL_TIMEOUT
    body = _build_scrape_request(
        url,
        wait_for_ms=settings.FIRECRAWL_WAIT_FOR_MS,
        timeout_ms=int(request_timeout * 1000),
    )

    logger.info(f"Scraping match source: {url}")
    try:
        # Client timeout leaves headroom over the server-side scrape timeout
        async with httpx.AsyncClient(timeout=request_timeout + 10) as client:
            response = await client.post(
                f"{settings.FIRECRAWL_BASE_URL}/scrape",
                headers={"Authorization": f"Bearer {settings.FIRECRAWL_API_KEY}"},
                json=body,
            )
    except httpx.TimeoutException as e:
        raise FetchError(f"Firecrawl timeout: {e}", url=url) from e
    except httpx.HTTPError as e:
        raise FetchError(f"Firecrawl request failed: {e}", url=url) from e

    if response.is_error:
        message = _error_message(response)
        logger.warning(f"Firecrawl HTTP error for {url}: {response.status_code} {message}")
        raise FetchError(message, url=url, status_code=response.status_code)

    try:
        data = response.json()
    except ValueError as e:
        raise FetchError(f"Firecrawl returned invalid JSON: {e}", url=url) from e

    logger.info(f"Scraped {url}: status={response.status_code}")
    return data
