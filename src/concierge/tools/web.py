"""Web fetch tool."""

from __future__ import annotations

import re
from typing import Any

import httpx

from concierge.tools.base import BaseTool
from concierge.types.tools import ToolContext, ToolDef, ToolParam, ToolResultData

MAX_CONTENT_LENGTH = 20_000


def _html_to_text(html: str) -> str:
    """Simple HTML to text conversion: strips tags and decodes entities."""
    text = re.sub(r"<(script|style)[^>]*>.*?</\1>", "", html, flags=re.DOTALL | re.IGNORECASE)
    text = re.sub(r"<(br|p|div|h[1-6]|li|tr)[^>]*>", "\n", text, flags=re.IGNORECASE)
    text = re.sub(r"<[^>]+>", "", text)
    for entity, char in [("&amp;", "&"), ("&lt;", "<"), ("&gt;", ">"),
                         ("&quot;", '"'), ("&#39;", "'"), ("&nbsp;", " ")]:
        text = text.replace(entity, char)
    text = re.sub(r"\n{3,}", "\n\n", text)
    text = re.sub(r"[ \t]+", " ", text)
    return text.strip()


class WebFetchTool(BaseTool):
    """Fetch content from a URL via HTTP GET."""

    def __init__(self, transport: httpx.AsyncBaseTransport | None = None, timeout: float = 30.0) -> None:
        self._transport = transport
        self._timeout = timeout

    @property
    def definition(self) -> ToolDef:
        return ToolDef(
            name="webFetch",
            description=(
                "Fetch a web page and return its text (HTML converted to plain text). "
                "Useful for documentation and articles."
            ),
            parameters=(
                ToolParam(name="url", type="string", description="The URL to fetch."),
                ToolParam(
                    name="maxLength",
                    type="integer",
                    description=f"Maximum characters to return (default {MAX_CONTENT_LENGTH}).",
                    required=False,
                    default=MAX_CONTENT_LENGTH,
                ),
            ),
        )

    async def execute(self, args: dict[str, Any], ctx: ToolContext) -> ToolResultData:
        url = args.get("url", "")
        if not url:
            return self._error("'url' parameter is required.")
        if not url.startswith(("http://", "https://")):
            return self._error("URL must start with http:// or https://")

        max_length = int(args.get("maxLength") or MAX_CONTENT_LENGTH)

        try:
            async with httpx.AsyncClient(
                follow_redirects=True,
                timeout=self._timeout,
                headers={"User-Agent": "Concierge/0.1"},
                transport=self._transport,
            ) as client:
                resp = await client.get(url)
                resp.raise_for_status()
        except httpx.HTTPError as e:
            return self._error(f"Fetch failed: {type(e).__name__}: {e}")

        body = resp.text
        if "html" in resp.headers.get("content-type", ""):
            body = _html_to_text(body)
        if len(body) > max_length:
            body = body[:max_length] + f"\n\n[Truncated, {len(resp.text):,} chars total]"
        return self._ok(body, display=f"{resp.status_code} {url}")
