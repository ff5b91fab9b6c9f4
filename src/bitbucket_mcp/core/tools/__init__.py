"""
Tool modules discovered by bitbucket_mcp.core.registry.

Every public coroutine defined in a module of this package whose first
parameter is `client` is exposed as an MCP tool (prefixed with "bb_").
"""
