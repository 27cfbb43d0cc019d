"""MCP server: router, stdio transport, server loop, toolsets and the counter example."""