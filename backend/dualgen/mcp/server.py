"""
MCP server exposing the dual-AI broker as tools.

Usage:
    dualgen-mcp  # Start MCP server (stdio transport)
"""

import asyncio
import json
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional

from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import TextContent, Tool
from pydantic import ValidationError as PydanticValidationError

from ..core.errors import BrokerError
from ..core.orchestrator import Orchestrator
from ..subscriptions import SubscriptionStore
from ..subscriptions.validator import collect_field_errors
from .handlers import ToolHandlers
from .tool_definitions import TOOLS

logger = logging.getLogger(__name__)

SERVER_NAME = "dual-ai-orchestrator"


def _text(payload: dict) -> List[TextContent]:
    return [TextContent(type="text", text=json.dumps(payload, indent=2, default=str))]


def handle_tool_error(e: Exception, tool_name: str, arguments: Dict[str, Any]) -> List[TextContent]:
    """Turn a tool failure into the {success: false, error} envelope without leaking internals."""
    if isinstance(e, PydanticValidationError):
        details = ", ".join(str(err) for err in collect_field_errors(e))
        logger.warning(f"Invalid input for tool {tool_name}: {details}")
        return _text({"success": False, "error": f"Invalid input: {details}"})

    elif isinstance(e, BrokerError):
        if e.status_code >= 500:
            logger.error(f"Tool {tool_name} failed: {e.message}")
        else:
            logger.warning(f"Tool {tool_name} refused: {e.message}")
        return _text({"success": False, "error": e.message})

    else:
        # Unknown error - log full details but return generic message
        argument_keys = list(arguments.keys()) if isinstance(arguments, dict) else []
        logger.error(
            f"Internal error in tool {tool_name}",
            extra={
                "tool_name": tool_name,
                "arguments_keys": argument_keys,
                "error_type": type(e).__name__,
            },
            exc_info=True,
        )
        return _text({"success": False, "error": "Internal server error"})


async def dispatch_tool(
    handlers: Dict[str, Callable[[Dict[str, Any]], Awaitable[dict]]],
    name: str,
    arguments: Dict[str, Any],
) -> List[TextContent]:
    """Run one tool handler and serialize its result or its error."""
    handler = handlers.get(name)
    if handler is None:
        return _text({"success": False, "error": f"Tool '{name}' is not available"})
    try:
        result = await handler(arguments or {})
        return _text(result)
    except Exception as e:
        return handle_tool_error(e, name, arguments)


def create_server(
    store: Optional[SubscriptionStore] = None,
    orchestrator: Optional[Orchestrator] = None,
) -> Server:
    """Build an MCP server whose tools meter against store and generate through orchestrator."""
    tool_handlers = ToolHandlers(
        store if store is not None else SubscriptionStore(),
        orchestrator if orchestrator is not None else Orchestrator(),
    )
    handlers = tool_handlers.handlers
    server = Server(SERVER_NAME)

    @server.list_tools()
    async def list_tools() -> list[Tool]:
        """List available broker tools."""
        return list(TOOLS)

    @server.call_tool()
    async def call_tool(name: str, arguments: dict[str, Any]) -> list[TextContent]:
        """Handle tool calls with validation and error handling."""
        return await dispatch_tool(handlers, name, arguments)

    return server


async def run_server(server: Optional[Server] = None):
    """Run the MCP server."""
    server = server or create_server()
    async with stdio_server() as (read_stream, write_stream):
        await server.run(
            read_stream,
            write_stream,
            server.create_initialization_options(),
        )


def main():
    """Entry point for the dualgen-mcp console script."""
    # stdout carries the protocol; logs go to stderr
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )
    logger.info(f"Starting {SERVER_NAME} MCP server with tools: {', '.join(t.name for t in TOOLS)}")
    asyncio.run(run_server())


if __name__ == "__main__":
    main()
