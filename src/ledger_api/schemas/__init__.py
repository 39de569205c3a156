"""Request/response schemas of the API."""
