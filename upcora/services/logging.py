"""
Structured logging configuration
"""
import functools
import logging
import os
import sys
import time

import structlog

LOG_LEVEL = os.getenv("UPCORA_LOG_LEVEL", "INFO").upper()


def configure_logging():
    """Configure structlog on top of the standard library logger"""

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer()
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, LOG_LEVEL, logging.INFO),
    )

    logging.getLogger("uvicorn").setLevel(logging.INFO)
    logging.getLogger("fastapi").setLevel(logging.INFO)
    logging.getLogger("sqlalchemy").setLevel(logging.WARNING)
    # pypdf warns on every malformed object
    logging.getLogger("pypdf").setLevel(logging.ERROR)


def get_logger(name: str = None):
    return structlog.get_logger(name)


def log_performance(func_name: str):
    """Decorator logging duration and outcome of the wrapped call"""
    def decorator(func):
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            logger = get_logger("performance")
            start_time = time.perf_counter()

            try:
                result = func(*args, **kwargs)
            except Exception as e:
                logger.warning(
                    "function_failed",
                    function=func_name,
                    duration_seconds=round(time.perf_counter() - start_time, 4),
                    error=str(e),
                    error_type=type(e).__name__,
                    status="error"
                )
                raise
            logger.info(
                "function_completed",
                function=func_name,
                duration_seconds=round(time.perf_counter() - start_time, 4),
                status="success"
            )
            return result
        return wrapper
    return decorator


def log_api_request(request, response=None, error=None, duration=None):
    """Log API requests and responses"""
    logger = get_logger("api")

    log_data = {
        "method": request.method,
        "path": request.url.path,
        "client_ip": request.client.host if request.client else "unknown",
        "user_agent": request.headers.get("user-agent", "unknown"),
    }

    if response is not None:
        log_data.update({
            "status_code": response.status_code,
            "response_time": duration,
        })
        logger.info("api_request_completed", **log_data)
    elif error is not None:
        log_data.update({
            "error": str(error),
            "status_code": getattr(error, "status_code", 500)
        })
        logger.error("api_request_failed", **log_data)
    else:
        logger.info("api_request_started", **log_data)
