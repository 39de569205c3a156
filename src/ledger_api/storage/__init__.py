"""Object storage for invoice attachments."""
