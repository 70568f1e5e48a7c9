"""Storage API middleware package."""

from procstore.api.middleware.request_id import RequestIdMiddleware

__all__ = ["RequestIdMiddleware"]
