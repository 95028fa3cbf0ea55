"""
MCP Memory Manager - persistent memory for agents over JSON-RPC.

Entry point: pick a transport (stdio, TCP, WebSocket/HTTP) or fall back to
a small interactive shell for smoke-testing the store.
"""

from __future__ import annotations

import argparse
import sys
from typing import Callable, Optional, Sequence, TextIO
from urllib.parse import urlsplit

import uvicorn
from sqlalchemy.exc import SQLAlchemyError

import core.config as config
from app.main import create_app
from core.db import MemoryDB, init_db
from core.mcp.stream import run_stdio, run_tcp
from core.services.memory_query import FilterSpec, list_memories, search_memories
from core.services.memory_storage import create_memory
from core.services.task_service import create_task, list_tasks

logger = config.logger

REPL_HELP = """Commands:
  note <text>                - create a note memory
  list                       - list latest 10 memories
  search <query>             - FTS5 search in content/tags
  task <title>               - create a task
  tasks                      - list latest 10 tasks
  help                       - show this help
  quit                       - exit"""

REPL_PAGE = 10


def parse_http_endpoint(value: Optional[str]) -> tuple[str, int]:
    """``http://host:port`` (scheme optional) to a bind address."""
    endpoint = value or config.HTTP_ENDPOINT
    if "://" not in endpoint:
        endpoint = f"http://{endpoint}"
    parts = urlsplit(endpoint)
    host = parts.hostname or "127.0.0.1"
    if host == "localhost":
        host = "127.0.0.1"
    return host, parts.port or 8080


def run_http(store: MemoryDB, endpoint: Optional[str] = None) -> None:
    host, port = parse_http_endpoint(endpoint)
    logger.info("http_transport_listening", extra={"host": host, "port": port})
    uvicorn.run(create_app(store), host=host, port=port, ws_max_size=config.WS_MAX_MESSAGE_BYTES)


def _one_line(text: str) -> str:
    return text.replace("\n", " ")


def run_repl(
    store: MemoryDB,
    read_line: Callable[[str], str] = input,
    out: TextIO = sys.stdout,
) -> None:
    print("Type 'help' for commands. Press Ctrl+C to quit.\n", file=out)
    while True:
        try:
            line = read_line("> ")
        except (EOFError, KeyboardInterrupt):
            return
        cmd = line.strip()
        if not cmd:
            continue
        verb, _, rest = cmd.partition(" ")
        verb = verb.lower()
        rest = rest.strip()

        if verb == "help":
            print(REPL_HELP, file=out)
        elif verb == "quit":
            return
        elif verb == "note" and rest:
            print(f"created note {create_memory(store, content=rest)}", file=out)
        elif verb == "list":
            for item in list_memories(store, FilterSpec(), limit=REPL_PAGE).items:
                print(
                    f"{item['id'][:8]} | {item['type']} | {item['namespace']} | "
                    f"{item['createdAt']} | {_one_line(item['content'])}",
                    file=out,
                )
        elif verb == "search" and rest:
            try:
                hits = search_memories(store, rest, limit=REPL_PAGE)
            except SQLAlchemyError as exc:
                print(f"search failed: {getattr(exc, 'orig', None) or exc}", file=out)
                continue
            for hit in hits:
                item = hit["item"]
                print(f"{item['id'][:8]} | score:{hit['score']:.3f} | {_one_line(item['content'])}", file=out)
        elif verb == "task" and rest:
            print(f"created task {create_task(store, rest)}", file=out)
        elif verb == "tasks":
            for task in list_tasks(store, REPL_PAGE):
                print(f"{task['id'][:8]} | {task['status']} | {task['title']}", file=out)
        else:
            print("Unknown command. Type 'help'.", file=out)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="memory-manager", description="MCP Memory Manager")
    parser.add_argument("--db", help="SQLite database path")
    transport = parser.add_mutually_exclusive_group()
    transport.add_argument("--mcp", action="store_true", help="serve JSON-RPC over stdio")
    transport.add_argument("--tcp", nargs="?", const=config.TCP_ENDPOINT, metavar="HOST:PORT",
                           help="serve JSON-RPC over raw TCP")
    transport.add_argument("--ws", nargs="?", const=config.HTTP_ENDPOINT, metavar="URL",
                           help="serve WebSocket (/ws), HTTP POST and SSE")
    transport.add_argument("--http", nargs="?", const=config.HTTP_ENDPOINT, metavar="URL",
                           help="alias of --ws")
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    store = init_db(args.db)
    logger.info("MCP Memory Manager starting", extra={"database_url": store.database_url})
    try:
        if args.mcp:
            run_stdio(store)
        elif args.tcp is not None:
            run_tcp(store, args.tcp)
        elif args.ws is not None or args.http is not None:
            run_http(store, args.ws or args.http)
        else:
            run_repl(store)
    finally:
        store.dispose()
    return 0


if __name__ == "__main__":
    sys.exit(main())
