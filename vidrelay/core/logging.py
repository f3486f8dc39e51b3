import logging
from typing import Any

from fastapi import Request
from rich.logging import RichHandler

from vidrelay.config.settings import LoggingConfig

logger = logging.getLogger("vidrelay")

def setup_logging(settings: LoggingConfig) -> None:
    """Install the root handler once (rich console or plain stream)."""
    root = logging.getLogger()
    if any(getattr(h, "_vidrelay", False) for h in root.handlers):
        return

    if settings.enable_rich:
        handler: logging.Handler = RichHandler(rich_tracebacks=True, show_path=False)
        handler.setFormatter(logging.Formatter(settings.format))
    else:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(settings.format))
    handler._vidrelay = True

    root.addHandler(handler)
    root.setLevel(settings.level)

def log_with_context(
    request: Request,
    level: int,
    message: str,
    **kwargs: Any
) -> None:
    """
    Log with request context.
    Automatically includes request_id for tracing.
    """
    request_id = getattr(request.state, "request_id", "unknown")
    extra = {
        "request_id": request_id,
        "path": request.url.path,
        **kwargs
    }
    logger.log(level, f"[{request_id}] {message}", extra=extra)

def log_info(request: Request, message: str, **kwargs: Any) -> None:
    log_with_context(request, logging.INFO, message, **kwargs)

def log_error(request: Request, message: str, **kwargs: Any) -> None:
    log_with_context(request, logging.ERROR, message, **kwargs)

def log_warning(request: Request, message: str, **kwargs: Any) -> None:
    log_with_context(request, logging.WARNING, message, **kwargs)

def log_debug(request: Request, message: str, **kwargs: Any) -> None:
    log_with_context(request, logging.DEBUG, message, **kwargs)
