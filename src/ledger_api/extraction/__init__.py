"""Invoice text and field extraction through a chat-completions API."""
