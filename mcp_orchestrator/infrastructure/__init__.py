"""Infrastructure layer: tool servers, tool selection and LLM access."""
