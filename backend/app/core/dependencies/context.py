"""
Log Context Dependencies
========================

Binds the case addressed by a request into the logging context, so every
event logged while handling it carries ``case_id``.
"""

from typing import Optional

from fastapi import Request

from app.core.logging import case_id_context

# Path parameters that name a case
CASE_PATH_PARAMS = ("case_id", "id_or_number")


async def bind_case_context(request: Request) -> Optional[str]:
    """
    Set ``case_id`` in the log context from the request path.

    Declared async so the value lands in the request's context rather
    than a worker thread's copy.
    """
    for name in CASE_PATH_PARAMS:
        value = request.path_params.get(name)
        if value:
            case_id_context.set(value)
            return value
    return None
