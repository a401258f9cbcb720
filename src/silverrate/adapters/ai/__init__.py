"""
AI Adapters

Optional market commentary through an OpenAI-compatible API.
"""

from silverrate.adapters.ai.commentary import CommentaryService

__all__ = ["CommentaryService"]
