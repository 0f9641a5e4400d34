"""
Notion Client

Thin synchronous wrapper over the Notion REST API (httpx).
Covers what the adapters need: database query, page create/update and
appending block children. Property/block builders live here too so the
sinks only describe *what* to write.
"""

import logging
import time
from typing import Any, Callable, Dict, List, Optional

import httpx

logger = logging.getLogger("bridges.common.notion_client")

NOTION_API_URL = "https://api.notion.com/v1"
MAX_CHILDREN_PER_REQUEST = 100
MAX_RICH_TEXT_CHARS = 2000


class NotionAPIError(RuntimeError):
    """Non-success response from the Notion API"""

    def __init__(self, status_code: int, message: str, code: str = ""):
        super().__init__(f"Notion API error {status_code} ({code or 'unknown'}): {message}")
        self.status_code = status_code
        self.code = code


def _retry_after(response: httpx.Response) -> float:
    """Seconds from the Retry-After header; 1s when missing or not a number"""
    try:
        return float(response.headers.get("Retry-After", "1"))
    except ValueError:
        return 1.0


# =============================================================================
# Property / block builders
# =============================================================================

def _text(content: str) -> List[Dict[str, Any]]:
    return [{"text": {"content": (content or "")[:MAX_RICH_TEXT_CHARS]}}]


def _option_name(name: str) -> str:
    # Notion rejects commas in select option names
    return name.replace(",", " ").strip() or "-"


def title_property(content: str) -> Dict[str, Any]:
    return {"title": _text(content)}


def rich_text_property(content: str) -> Dict[str, Any]:
    return {"rich_text": _text(content)}


def select_property(name: str) -> Dict[str, Any]:
    return {"select": {"name": _option_name(name)}}


def multi_select_property(names: List[str]) -> Dict[str, Any]:
    return {"multi_select": [{"name": _option_name(n)} for n in names]}


def number_property(value: float) -> Dict[str, Any]:
    return {"number": value}


def date_property(start: str, end: Optional[str] = None) -> Dict[str, Any]:
    return {"date": {"start": start, "end": end}}


def heading_block(content: str, level: int = 2) -> Dict[str, Any]:
    block_type = f"heading_{level}"
    return {
        "object": "block",
        "type": block_type,
        block_type: {"rich_text": [{"type": "text", "text": {"content": content[:MAX_RICH_TEXT_CHARS]}}]},
    }


def paragraph_block(content: str) -> Dict[str, Any]:
    return {
        "object": "block",
        "type": "paragraph",
        "paragraph": {"rich_text": [{"type": "text", "text": {"content": content[:MAX_RICH_TEXT_CHARS]}}]},
    }


def rich_text_equals(property_name: str, value: str) -> Dict[str, Any]:
    """Database filter: rich_text property equals value"""
    return {"property": property_name, "rich_text": {"equals": value}}


# =============================================================================
# Client
# =============================================================================

class NotionClient:
    """
    Synchronous Notion API client.

    Rate limiting: a 429 response is retried after its Retry-After delay,
    up to ``max_retries`` times. Every other error raises NotionAPIError.
    """

    def __init__(
        self,
        api_key: str,
        api_version: str = "2022-06-28",
        timeout: float = 30.0,
        max_retries: int = 3,
        transport: Optional[httpx.BaseTransport] = None,
        sleep: Callable[[float], Any] = time.sleep,
    ):
        """
        Initialize Notion client.

        Args:
            api_key: Integration token
            api_version: Notion-Version header
            timeout: Request timeout in seconds
            max_retries: Retries on HTTP 429
            transport: Optional httpx transport (tests)
            sleep: Sleep function used while rate limited
        """
        if not api_key:
            raise ValueError("Notion API key is required")
        self._max_retries = max_retries
        self._sleep = sleep
        self._client = httpx.Client(
            base_url=NOTION_API_URL,
            headers={
                "Authorization": f"Bearer {api_key}",
                "Notion-Version": api_version,
                "Content-Type": "application/json",
            },
            timeout=httpx.Timeout(timeout),
            transport=transport,
        )

    def __enter__(self) -> "NotionClient":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def close(self) -> None:
        self._client.close()

    def _request(self, method: str, path: str, json: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        attempt = 0
        while True:
            response = self._client.request(method, path, json=json)

            if response.status_code == 429 and attempt < self._max_retries:
                attempt += 1
                delay = _retry_after(response)
                logger.warning("Notion rate limited on %s %s, retrying in %.1fs", method, path, delay)
                self._sleep(delay)
                continue

            if response.is_error:
                try:
                    body = response.json()
                except ValueError:
                    body = {}
                raise NotionAPIError(
                    response.status_code,
                    body.get("message", response.text),
                    body.get("code", ""),
                )
            return response.json()

    def query_database(
        self,
        database_id: str,
        filter: Optional[Dict[str, Any]] = None,
        page_size: int = 100,
    ) -> List[Dict[str, Any]]:
        """Return every page in the database matching filter"""
        results: List[Dict[str, Any]] = []
        payload: Dict[str, Any] = {"page_size": page_size}
        if filter:
            payload["filter"] = filter

        while True:
            data = self._request("POST", f"/databases/{database_id}/query", json=payload)
            results.extend(data.get("results", []))
            if not data.get("has_more"):
                return results
            payload["start_cursor"] = data.get("next_cursor")

    def create_page(
        self,
        database_id: str,
        properties: Dict[str, Any],
        children: Optional[List[Dict[str, Any]]] = None,
    ) -> Dict[str, Any]:
        """
        Create a page in a database.

        Children beyond the per-request limit are appended after creation.
        If appending fails the half-written page is archived and the error
        re-raised, so a later run creates the page again in full.
        """
        children = children or []
        payload: Dict[str, Any] = {
            "parent": {"database_id": database_id},
            "properties": properties,
        }
        if children:
            payload["children"] = children[:MAX_CHILDREN_PER_REQUEST]

        page = self._request("POST", "/pages", json=payload)

        remaining = children[MAX_CHILDREN_PER_REQUEST:]
        if remaining:
            try:
                self.append_block_children(page["id"], remaining)
            except (NotionAPIError, httpx.HTTPError) as e:
                logger.error("Failed to append blocks to page %s, archiving it: %s", page["id"], e)
                try:
                    self.archive_page(page["id"])
                except (NotionAPIError, httpx.HTTPError) as archive_error:
                    logger.error("Failed to archive partial page %s: %s", page["id"], archive_error)
                raise
        return page

    def update_page(self, page_id: str, properties: Dict[str, Any]) -> Dict[str, Any]:
        """Update page properties"""
        return self._request("PATCH", f"/pages/{page_id}", json={"properties": properties})

    def archive_page(self, page_id: str) -> Dict[str, Any]:
        """Move a page to the trash; archived pages drop out of database queries"""
        return self._request("PATCH", f"/pages/{page_id}", json={"archived": True})

    def append_block_children(self, block_id: str, children: List[Dict[str, Any]]) -> None:
        """Append blocks, chunked to the per-request limit"""
        for i in range(0, len(children), MAX_CHILDREN_PER_REQUEST):
            chunk = children[i:i + MAX_CHILDREN_PER_REQUEST]
            self._request("PATCH", f"/blocks/{block_id}/children", json={"children": chunk})
