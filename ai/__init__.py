"""AI-generated coaching insights."""
