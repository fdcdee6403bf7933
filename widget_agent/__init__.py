"""Backend of the chat-driven weather widget demo."""

from .main import app  # Re-export FastAPI application for uvicorn

__all__ = ["app"]
