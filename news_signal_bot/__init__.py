"""News Signal Bot: RSS news to LLM digest to Telegram channels."""

__version__ = "1.0.0"
