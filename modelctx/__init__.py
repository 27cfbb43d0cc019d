"""Model Context Protocol types, a stdio server and an asyncio client."""

__version__ = "0.1.0"