"""
Chat Module.

Keyword knowledge base, escalation to the language model and the public chat API.
"""

from .escalation import EscalationRouter
from .matcher import KnowledgeBaseMatcher, KnowledgePattern, load_knowledge_base
from .routes import router as chat_router

__all__ = [
    "EscalationRouter",
    "KnowledgeBaseMatcher",
    "KnowledgePattern",
    "chat_router",
    "load_knowledge_base",
]
