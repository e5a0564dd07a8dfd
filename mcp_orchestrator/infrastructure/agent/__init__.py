"""Tool selection and agentic execution."""
