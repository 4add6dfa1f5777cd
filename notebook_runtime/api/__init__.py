from .routes import router as api_router, get_dispatcher

__all__ = ["api_router", "get_dispatcher"]
