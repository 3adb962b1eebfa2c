"""
Exception handlers for the facade application.

Any core error raised while serving a routed call becomes a 500 response
whose body is the error text, so a shell caller can read it directly.
"""

from fastapi import FastAPI, Request, status
from fastapi.responses import PlainTextResponse

from mash.core.exceptions import MashException
from mash.utils.logging import get_structured_logger

logger = get_structured_logger(__name__)


async def mash_exception_handler(request: Request, exc: MashException) -> PlainTextResponse:
    """Convert a core error into a plain-text 500 response."""
    logger.error(
        "Routed MCP call failed",
        exception_type=type(exc).__name__,
        path=request.url.path,
        details=exc.details
    )
    return PlainTextResponse(str(exc), status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)


def register_exception_handlers(app: FastAPI) -> None:
    """Register exception handlers with the FastAPI app."""
    app.add_exception_handler(MashException, mash_exception_handler)
