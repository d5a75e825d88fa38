"""MCP tool server for the dual-AI broker."""
