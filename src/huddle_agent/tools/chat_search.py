"""
Search tool over the chat's long-term memory.
"""

from .base import BaseTool, ToolContext, ToolParameter


class ChatSearchTool(BaseTool):
    """Semantic search over stored conversation summaries."""

    @property
    def name(self) -> str:
        return "search_chat_db"

    @property
    def description(self) -> str:
        return "Search for previous conversation history in the DB"

    @property
    def parameters(self) -> list[ToolParameter]:
        return [
            ToolParameter(
                name="query",
                param_type="string",
                description="What to look for in earlier conversations",
                min_length=1,
            ),
        ]

    async def execute(self, context: ToolContext, query: str) -> str:
        if context.chat_db is None:
            return "Conversation history search is not available."

        results = await context.chat_db.search(query)
        if not results:
            return "No results found"

        return "\n\n".join(f"[Previous Conversation]\n{result}\n---" for result in results)
