"""OpenAI chat-completions compatible server."""
