"""Local play API for puzzle sessions."""
