# Routes package __init__.py - re-exports routers for main.py convenience
from .chunks import router as chunks_router
from .review import router as review_router
from .trees import router as trees_router

__all__ = ['chunks_router', 'review_router', 'trees_router']
