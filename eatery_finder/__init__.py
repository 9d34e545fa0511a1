"""Find nearby eateries by fusing Google Places and Gemini search results."""

__version__ = "0.1.0"
