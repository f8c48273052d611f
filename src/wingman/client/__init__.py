"""User-facing entry points: command-line tools and the Flask API."""
