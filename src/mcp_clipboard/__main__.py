import argparse
import logging
import sys

from mcp_clipboard import __version__
from mcp_clipboard.app import ClipboardApp
from mcp_clipboard.cache import format_size
from mcp_clipboard.config import LOG_FILENAME
from mcp_clipboard.paths import PathResolver, create_path_resolver
from mcp_clipboard.utils import ensure_dirs

logger = logging.getLogger(__name__)


def setup_logging(resolver: PathResolver, level: int = logging.INFO) -> None:
    """Log to a file in the data directory and to stderr.

    stdout carries the stdio transport, so nothing is logged there.
    """
    data_dir = resolver.data_dir()
    ensure_dirs(data_dir)
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=[
            logging.FileHandler(data_dir / LOG_FILENAME),
            logging.StreamHandler(sys.stderr),
        ],
    )


def run_server(resolver: PathResolver, transport: str, host: str, port: int) -> int:
    """Run the MCP server until the transport closes."""
    from mcp_clipboard.server import ClipboardServer

    with ClipboardApp.from_resolver(resolver) as app:
        expired, evicted = app.run_maintenance()
        logger.info(
            "Starting mcp-clipboard %s (%s, data dir %s); expired %d, evicted %d",
            __version__,
            resolver.environment.value,
            resolver.data_dir(),
            expired,
            evicted,
        )
        ClipboardServer(app).run(transport=transport, host=host, port=port)
    return 0


def show_stats(resolver: PathResolver) -> int:
    with ClipboardApp.from_resolver(resolver) as app:
        stats = app.storage.stats()
    print(f"Data directory: {resolver.data_dir()}")
    print(f"Total items:    {stats.total}")
    print(f"Pinned items:   {stats.pinned}")
    print(f"Private items:  {stats.private}")
    print(f"File items:     {stats.file_backed}")
    print(f"Cache size:     {format_size(stats.cache_size_bytes)}")
    return 0


def run_sweep(resolver: PathResolver) -> int:
    with ClipboardApp.from_resolver(resolver) as app:
        expired, evicted = app.run_maintenance()
    print(f"Expired {expired} private items, evicted {evicted} items.")
    return 0


def main(argv: list[str] | None = None):
    parser = argparse.ArgumentParser(
        prog="mcp-clipboard",
        description="mcp-clipboard - persistent clipboard history for AI agents over MCP",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Commands:
  serve       Run the MCP server (default)
  stats       Show clipboard statistics
  sweep       Expire old private items and evict beyond the item limit

Examples:
  mcp-clipboard                          # serve over stdio
  mcp-clipboard serve --transport sse    # serve over SSE on 127.0.0.1:8080
  mcp-clipboard stats
""",
    )
    parser.add_argument(
        "command",
        nargs="?",
        default="serve",
        choices=["serve", "stats", "sweep"],
        help="Command to run",
    )
    parser.add_argument("--transport", choices=["stdio", "sse"], default="stdio", help="MCP transport")
    parser.add_argument("--host", default="127.0.0.1", help="Bind address for the SSE transport")
    parser.add_argument("--port", type=int, default=8080, help="Port for the SSE transport")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    args = parser.parse_args(argv)

    resolver = create_path_resolver()
    setup_logging(resolver, logging.DEBUG if args.debug else logging.INFO)

    if args.command == "stats":
        sys.exit(show_stats(resolver))
    elif args.command == "sweep":
        sys.exit(run_sweep(resolver))
    else:
        sys.exit(run_server(resolver, args.transport, args.host, args.port))


if __name__ == "__main__":
    main()
