"""
Upstream module for talking to the Gemini model.

- gemini.py: Async REST client for generateContent
- prompts.py: Prompt templates and response schemas
"""

from .gemini import GeminiClient, extract_text
