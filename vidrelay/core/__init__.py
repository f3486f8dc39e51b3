from .errors import ApiError, BadRequestError, ForbiddenError, NotFoundError, UpstreamError

__all__ = ["ApiError", "BadRequestError", "ForbiddenError", "NotFoundError", "UpstreamError"]
