"""
MCP tool layer for the clipboard history.

Every tool returns a JSON object. Records are rendered with
``ClipboardItem.to_dict()``; failures surface as ``ToolError`` carrying the
clipboard error's message.
"""

import json
import logging
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Annotated, Any, Literal

from fastmcp import FastMCP
from fastmcp.exceptions import ToolError
from fastmcp.utilities.types import Image
from mcp.types import TextContent, ToolAnnotations
from pydantic import Field

from mcp_clipboard.app import ClipboardApp
from mcp_clipboard.cache import format_size
from mcp_clipboard.config import DEFAULT_LIST_LIMIT
from mcp_clipboard.errors import ClipboardError
from mcp_clipboard.models import ClipboardItem, ContentType

logger = logging.getLogger(__name__)

SERVER_NAME = "mcp-clipboard"


@contextmanager
def tool_errors() -> Iterator[None]:
    """Translate clipboard errors into MCP tool errors."""
    try:
        yield
    except ToolError:
        raise
    except ClipboardError as exc:
        raise ToolError(str(exc)) from exc
    except Exception as exc:
        logger.exception("Tool execution failed")
        raise ToolError(f"Tool execution failed: {exc}") from exc


def _items_payload(items: list[ClipboardItem]) -> dict[str, Any]:
    return {"count": len(items), "items": [item.to_dict() for item in items]}


class ClipboardServer:
    """Registers the clipboard tools on a FastMCP instance.

    Args:
        app: The clipboard application all tools delegate to.
        server_name: Name advertised to MCP clients.
    """

    def __init__(self, app: ClipboardApp, server_name: str = SERVER_NAME) -> None:
        self.app = app
        self.mcp = FastMCP(name=server_name)
        self._register_tools()

    def run(self, transport: str = "stdio", host: str = "127.0.0.1", port: int = 8080) -> None:
        if transport == "stdio":
            self.mcp.run(transport="stdio")
        else:
            self.mcp.run(transport=transport, host=host, port=port)

    def _register_tools(self) -> None:
        app = self.app

        @self.mcp.tool(
            name="clipboard_copy",
            description="Copy text or HTML content into the clipboard history.",
            annotations=ToolAnnotations(readOnlyHint=False, destructiveHint=False),
        )
        async def clipboard_copy(
            content: Annotated[str, Field(description="Content to copy to the clipboard")],
            content_type: Annotated[Literal["text", "html"], Field(description="Type of content being copied")] = "text",
            private: Annotated[bool, Field(description="Private items are hidden from list/search and expire after an hour")] = False,
        ) -> dict[str, Any]:
            with tool_errors():
                item = app.copy_text(content, content_type, private)
            return {"copied": True, "item": item.to_dict()}

        @self.mcp.tool(
            name="clipboard_copy_file",
            description=(
                "Copy a file (image, document, video) into the clipboard history. "
                "The file is cached so it stays available if the original changes."
            ),
            annotations=ToolAnnotations(readOnlyHint=False, destructiveHint=False),
        )
        async def clipboard_copy_file(
            file_path: Annotated[str, Field(description="Path to the file, under the home or working directory")],
            private: Annotated[bool, Field(description="Private items are hidden from list/search and expire after an hour")] = False,
        ) -> dict[str, Any]:
            with tool_errors():
                item = app.copy_file(file_path, private)
            payload = item.to_dict()
            payload["size"] = format_size(item.file_size or 0)
            return {"copied": True, "item": payload}

        @self.mcp.tool(
            name="clipboard_paste",
            description="Return a clipboard item's full content (the latest non-private item if no ID is given).",
            annotations=ToolAnnotations(readOnlyHint=True, destructiveHint=False),
        )
        async def clipboard_paste(
            id: Annotated[int | None, Field(description="Clipboard item ID; omit for the latest item")] = None,
        ) -> dict[str, Any]:
            with tool_errors():
                item = app.paste(id)
            return item.to_dict()

        @self.mcp.tool(
            name="clipboard_list",
            description="List clipboard history items with previews, pinned items first.",
            annotations=ToolAnnotations(readOnlyHint=True, destructiveHint=False),
        )
        async def clipboard_list(
            limit: Annotated[int, Field(description="Maximum number of items to return", ge=1)] = DEFAULT_LIST_LIMIT,
            include_private: Annotated[bool, Field(description="Include private items")] = False,
        ) -> dict[str, Any]:
            with tool_errors():
                items = app.list_items(limit, include_private)
            return _items_payload(items)

        @self.mcp.tool(
            name="clipboard_search",
            description="Full-text search over clipboard content and previews. Private items are never returned.",
            annotations=ToolAnnotations(readOnlyHint=True, destructiveHint=False),
        )
        async def clipboard_search(
            query: Annotated[str, Field(description="Phrase to search for")],
            limit: Annotated[int, Field(description="Maximum number of results to return", ge=1)] = DEFAULT_LIST_LIMIT,
        ) -> dict[str, Any]:
            with tool_errors():
                items = app.search(query, limit)
            payload = _items_payload(items)
            payload["query"] = query
            return payload

        @self.mcp.tool(
            name="clipboard_pin",
            description="Toggle the pin status of a clipboard item. Pinned items are never evicted.",
            annotations=ToolAnnotations(readOnlyHint=False, destructiveHint=False, idempotentHint=False),
        )
        async def clipboard_pin(
            id: Annotated[int, Field(description="Clipboard item ID to pin or unpin")],
        ) -> dict[str, Any]:
            with tool_errors():
                item = app.toggle_pin(id)
            return {"id": item.id, "is_pinned": item.is_pinned, "preview": item.preview}

        @self.mcp.tool(
            name="clipboard_delete",
            description="Delete a clipboard item and its cached file.",
            annotations=ToolAnnotations(readOnlyHint=False, destructiveHint=True),
        )
        async def clipboard_delete(
            id: Annotated[int, Field(description="Clipboard item ID to delete")],
        ) -> dict[str, Any]:
            with tool_errors():
                item = app.delete(id)
            return {"deleted": True, "id": item.id, "preview": item.preview}

        @self.mcp.tool(
            name="clipboard_clear",
            description="Clear clipboard history. Pinned items are kept unless clear_all is true.",
            annotations=ToolAnnotations(readOnlyHint=False, destructiveHint=True),
        )
        async def clipboard_clear(
            clear_all: Annotated[bool, Field(description="Also remove pinned items and restart IDs at 1")] = False,
        ) -> dict[str, Any]:
            with tool_errors():
                deleted = app.clear(clear_all)
            return {"deleted": deleted, "clear_all": clear_all}

        @self.mcp.tool(
            name="clipboard_stats",
            description="Clipboard statistics: totals, pinned, private and file-backed items, cache size.",
            annotations=ToolAnnotations(readOnlyHint=True, destructiveHint=False),
        )
        async def clipboard_stats() -> dict[str, Any]:
            with tool_errors():
                stats = app.stats()
            payload = stats.to_dict()
            payload["cache_size"] = format_size(stats.cache_size_bytes)
            return payload

        @self.mcp.tool(
            name="clipboard_look_at",
            description="View a cached file. Images are returned as image content; other files as metadata.",
            annotations=ToolAnnotations(readOnlyHint=True, destructiveHint=False),
        )
        async def clipboard_look_at(
            id: Annotated[int, Field(description="Clipboard item ID to view")],
        ):
            with tool_errors():
                item = app.look_at(id)
                if item.content_type is ContentType.IMAGE_FILE and (item.mime_type or "").startswith("image/"):
                    data = Path(item.cached_file_path).read_bytes()
                    return [
                        TextContent(type="text", text=json.dumps(item.to_dict())),
                        Image(data=data, format=item.mime_type.removeprefix("image/")),
                    ]
            if not item.is_file:
                return json.dumps({"is_file": False, "item": item.to_dict()})
            return json.dumps({"is_file": True, "size": format_size(item.file_size or 0), "item": item.to_dict()})
