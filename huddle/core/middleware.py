import time
import uuid
import logging
from fastapi import Request

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


async def logging_middleware(request: Request, call_next):
    # Reuse an upstream id when the proxy already set one
    request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
    started = time.perf_counter()

    logger.info(f"request_start id={request_id} method={request.method} path={request.url.path}")

    try:
        response = await call_next(request)
    except Exception:
        logger.exception(f"request_error id={request_id} path={request.url.path}")
        raise

    elapsed_ms = (time.perf_counter() - started) * 1000
    logger.info(
        f"request_end id={request_id} status={response.status_code} elapsed_ms={elapsed_ms:.1f}"
    )
    response.headers[REQUEST_ID_HEADER] = request_id
    return response
