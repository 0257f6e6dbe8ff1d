"""
Interview Coach: AI Request Dispatch Service

Backend for an AI interview coach. Prompts are forwarded to a generative
language provider (Gemini) through a proxy-first transport with API key
rotation, bounded retries, and repair of malformed JSON output.
"""

__version__ = "0.1.0"
