"""Timeline-to-media render service."""
