import time
import uuid
import logging
from fastapi import Request

logger = logging.getLogger("access")

REQUEST_ID_HEADER = "X-Request-ID"


async def request_logging_middleware(request: Request, call_next):
    """One access line per request, tagged with the operator and a request id.

    The id is taken from the caller when present so desk clients can correlate
    their own logs; it is echoed back on the response either way.
    """
    request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex[:12]
    operator = (request.headers.get("x-operator") or "").strip() or "system"
    request.state.request_id = request_id

    started = time.perf_counter()
    response = await call_next(request)
    elapsed_ms = (time.perf_counter() - started) * 1000

    response.headers[REQUEST_ID_HEADER] = request_id

    # rejected business rules are routine on the desk; server faults are not
    level = logging.ERROR if response.status_code >= 500 else logging.INFO
    logger.log(
        level,
        "",
        extra={
            "request_id": request_id,
            "operator": operator,
            "method": request.method,
            "path": request.url.path,
            "status_code": response.status_code,
            "process_time_ms": round(elapsed_ms, 2),
        },
    )

    return response
