"""MCP client: stdio and SSE transports, the service wrapper and the client."""