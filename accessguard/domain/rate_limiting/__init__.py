from .services import RateLimiter

__all__ = ["RateLimiter"]
