"""
Customer support chat backend.

HTTP API that stores conversations, builds LLM prompts from recent history
and a cached knowledge base, and relays replies to web, Telegram and
WhatsApp users.
"""

__version__ = "1.0.0"
