from api.v1 import api_router, health_router

__all__ = ["api_router", "health_router"]
