"""
Web search tool using Tavily.
"""

import json
from typing import Any

import httpx
import structlog

from .base import BaseTool, ToolContext, ToolParameter

logger = structlog.get_logger()

TAVILY_SEARCH_URL = "https://api.tavily.com/search"


class WebSearchTool(BaseTool):
    """Tool for searching the web."""

    def __init__(self, tavily_api_key: str = "", timeout: float = 30.0):
        self.tavily_api_key = tavily_api_key
        self.timeout = timeout

    @property
    def name(self) -> str:
        return "search_internet"

    @property
    def description(self) -> str:
        return "Search the Internet to get information"

    @property
    def parameters(self) -> list[ToolParameter]:
        return [
            ToolParameter(
                name="query",
                param_type="string",
                description="The search query string",
            ),
            ToolParameter(
                name="include_details",
                param_type="boolean",
                description="Include raw content in the search results",
                required=False,
            ),
            ToolParameter(
                name="include_images",
                param_type="boolean",
                description="Include a list of related images in the response",
                required=False,
            ),
        ]

    async def execute(
        self,
        context: ToolContext,
        query: str,
        include_details: bool = False,
        include_images: bool = False,
    ) -> str:
        """Execute web search."""
        if not self.tavily_api_key:
            return "Web search is not configured."

        payload: dict[str, Any] = {
            "api_key": self.tavily_api_key,
            "query": query,
            "search_depth": "advanced",
            "include_answer": True,
        }
        if include_details:
            payload["max_results"] = 1
            payload["include_raw_content"] = True
        else:
            payload["max_results"] = 8
        if include_images:
            payload["include_images"] = True

        async with httpx.AsyncClient() as client:
            response = await client.post(TAVILY_SEARCH_URL, json=payload, timeout=self.timeout)

        if response.is_error:
            return f"HTTP error! Status: {response.status_code}"

        data = response.json()
        results = data.get("results") or []
        if not results:
            return "No results found"

        if include_details:
            return _format_detailed(data, results[0])

        return json.dumps(
            {
                "query": data.get("query", query),
                "summary": data.get("answer"),
                "results": [
                    {
                        "title": result.get("title"),
                        "url": result.get("url"),
                        "content": result.get("content"),
                    }
                    for result in results
                ],
                "images": data.get("images") or [],
            },
            indent=1,
            ensure_ascii=False,
        )


def _format_detailed(data: dict[str, Any], result: dict[str, Any]) -> str:
    lines = [
        f"Query: {data.get('query', '')}",
        f"Summary: {data.get('answer', '')}",
        f"Title: {result.get('title', '')}",
        f"URL: {result.get('url', '')}",
    ]
    images = data.get("images") or []
    if images:
        lines.append("Images:")
        lines.extend(f"- {url}" for url in images)
    lines.append("Content:")
    lines.append(result.get("raw_content") or "")
    return "\n".join(lines).rstrip()
