import json
from pathlib import Path

import pytest
from fastmcp import Client
from fastmcp.exceptions import ToolError

from mcp_clipboard.server import ClipboardServer

TOOL_NAMES = {
    "clipboard_copy",
    "clipboard_copy_file",
    "clipboard_paste",
    "clipboard_list",
    "clipboard_search",
    "clipboard_pin",
    "clipboard_delete",
    "clipboard_clear",
    "clipboard_stats",
    "clipboard_look_at",
}


@pytest.fixture
def server(app):
    return ClipboardServer(app)


async def call(client: Client, name: str, **arguments):
    result = await client.call_tool(name, arguments)
    return json.loads(result.content[0].text)


class TestToolRegistration:
    @pytest.mark.asyncio
    async def test_all_tools_listed(self, server):
        async with Client(server.mcp) as client:
            tools = await client.list_tools()
        assert {tool.name for tool in tools} == TOOL_NAMES

    @pytest.mark.asyncio
    async def test_annotations(self, server):
        async with Client(server.mcp) as client:
            tools = {tool.name: tool for tool in await client.list_tools()}
        assert tools["clipboard_paste"].annotations.readOnlyHint is True
        assert tools["clipboard_delete"].annotations.destructiveHint is True


class TestTextTools:
    @pytest.mark.asyncio
    async def test_copy_and_paste(self, server):
        async with Client(server.mcp) as client:
            copied = await call(client, "clipboard_copy", content="hello world")
            pasted = await call(client, "clipboard_paste")
        assert copied["copied"] is True
        assert copied["item"]["content_type"] == "text"
        assert pasted["content"] == "hello world"
        assert pasted["id"] == copied["item"]["id"]

    @pytest.mark.asyncio
    async def test_paste_by_id(self, server):
        async with Client(server.mcp) as client:
            first = await call(client, "clipboard_copy", content="first")
            await call(client, "clipboard_copy", content="second")
            pasted = await call(client, "clipboard_paste", id=first["item"]["id"])
        assert pasted["content"] == "first"

    @pytest.mark.asyncio
    async def test_list_and_search(self, server):
        async with Client(server.mcp) as client:
            await call(client, "clipboard_copy", content="alpha release notes")
            await call(client, "clipboard_copy", content="beta", private=True)
            listed = await call(client, "clipboard_list")
            with_private = await call(client, "clipboard_list", include_private=True)
            found = await call(client, "clipboard_search", query="release")
        assert listed["count"] == 1
        assert with_private["count"] == 2
        assert found["query"] == "release"
        assert [item["content"] for item in found["items"]] == ["alpha release notes"]

    @pytest.mark.asyncio
    async def test_pin_delete_clear(self, server):
        async with Client(server.mcp) as client:
            kept = await call(client, "clipboard_copy", content="keep me")
            gone = await call(client, "clipboard_copy", content="drop me")
            pinned = await call(client, "clipboard_pin", id=kept["item"]["id"])
            deleted = await call(client, "clipboard_delete", id=gone["item"]["id"])
            await call(client, "clipboard_copy", content="transient")
            cleared = await call(client, "clipboard_clear")
            stats = await call(client, "clipboard_stats")
        assert pinned == {"id": kept["item"]["id"], "is_pinned": True, "preview": "keep me"}
        assert deleted["deleted"] is True
        assert cleared == {"deleted": 1, "clear_all": False}
        assert stats["total"] == 1
        assert stats["pinned"] == 1
        assert stats["cache_size"] == "0B"


class TestErrors:
    @pytest.mark.asyncio
    async def test_empty_clipboard(self, server):
        async with Client(server.mcp) as client:
            with pytest.raises(ToolError, match="Clipboard is empty"):
                await client.call_tool("clipboard_paste", {})

    @pytest.mark.asyncio
    async def test_unknown_id(self, server):
        async with Client(server.mcp) as client:
            with pytest.raises(ToolError, match="not found"):
                await client.call_tool("clipboard_delete", {"id": 404})

    @pytest.mark.asyncio
    async def test_empty_content(self, server):
        async with Client(server.mcp) as client:
            with pytest.raises(ToolError, match="empty"):
                await client.call_tool("clipboard_copy", {"content": "   "})

    @pytest.mark.asyncio
    async def test_path_traversal(self, server):
        async with Client(server.mcp) as client:
            with pytest.raises(ToolError, match="traversal"):
                await client.call_tool("clipboard_copy_file", {"file_path": "../../../etc/passwd"})

    @pytest.mark.asyncio
    async def test_rate_limited(self, make_app):
        server = ClipboardServer(make_app(max_requests=1))
        async with Client(server.mcp) as client:
            await client.call_tool("clipboard_stats", {})
            with pytest.raises(ToolError, match="Rate limit exceeded"):
                await client.call_tool("clipboard_stats", {})


class TestFileTools:
    @pytest.mark.asyncio
    async def test_copy_file(self, server, workspace):
        source = workspace["home"] / "notes.txt"
        source.write_bytes(b"x" * 2048)
        async with Client(server.mcp) as client:
            copied = await call(client, "clipboard_copy_file", file_path=str(source))
        item = copied["item"]
        assert item["content_type"] == "document_file"
        assert item["original_path"] == str(source)
        assert item["size"] == "2.0KB"
        assert Path(item["cached_file_path"]).read_bytes() == b"x" * 2048

    @pytest.mark.asyncio
    async def test_look_at_image(self, server, workspace):
        source = workspace["home"] / "shot.png"
        source.write_bytes(b"\x89PNG\r\n\x1a\nfake")
        async with Client(server.mcp) as client:
            copied = await call(client, "clipboard_copy_file", file_path=str(source))
            result = await client.call_tool("clipboard_look_at", {"id": copied["item"]["id"]})
        text, image = result.content
        assert json.loads(text.text)["id"] == copied["item"]["id"]
        assert image.type == "image"
        assert image.mimeType == "image/png"

    @pytest.mark.asyncio
    async def test_look_at_document(self, server, workspace):
        source = workspace["home"] / "report.pdf"
        source.write_bytes(b"%PDF")
        async with Client(server.mcp) as client:
            copied = await call(client, "clipboard_copy_file", file_path=str(source))
            looked = await call(client, "clipboard_look_at", id=copied["item"]["id"])
        assert looked["is_file"] is True
        assert looked["size"] == "4B"
        assert looked["item"]["mime_type"] == "application/pdf"

    @pytest.mark.asyncio
    async def test_look_at_text(self, server):
        async with Client(server.mcp) as client:
            copied = await call(client, "clipboard_copy", content="plain")
            looked = await call(client, "clipboard_look_at", id=copied["item"]["id"])
        assert looked == {"is_file": False, "item": copied["item"]}
