"""Use cases behind the API routes."""
