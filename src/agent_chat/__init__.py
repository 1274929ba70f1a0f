"""Agent Chat - multi-turn agent conversations with a streamed chat-history view."""

__version__ = "0.1.0"
