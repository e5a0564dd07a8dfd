"""MCP tool orchestration core: stdio tool servers, tool selection and LLM planning."""

__version__ = "0.1.0"
