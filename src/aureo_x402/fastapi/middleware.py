import logging
from typing import Callable, Optional, Union

from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from aureo_x402.constants import X_PAYMENT_HEADER
from aureo_x402.guard import PaymentGuard
from aureo_x402.path import path_is_match

logger = logging.getLogger(__name__)


def require_payment(
    guard: PaymentGuard,
    path: Union[str, list[str]] = "*",
    amount: Optional[int] = None,
    description: str = "",
):
    """Generate a FastAPI middleware that gates payments for an endpoint.

    Args:
        guard (PaymentGuard): Issues challenges and verifies payments.
        path (str | list[str], optional): Path to gate with payments. Defaults to "*" for all paths.
        amount (int, optional): Price in token minor units. Defaults to the guard's pricing.
        description (str, optional): Description of what is being purchased. Defaults to "".

    Returns:
        Callable: FastAPI middleware function. On success the payer address is
        available as ``request.state.payer``.

    Example:
        ```python
        app.middleware("http")(
            require_payment(guard, path="/api/premium/*", amount=10000)
        )
        ```
    """

    async def middleware(request: Request, call_next: Callable):
        # Skip if the path is not the same as the path in the middleware
        if not path_is_match(path, request.url.path):
            return await call_next(request)

        payment_header = request.headers.get(X_PAYMENT_HEADER, "")

        # Verification and settlement block on RPC round-trips
        decision = await run_in_threadpool(
            guard.evaluate,
            payment_header,
            request.url.path,
            amount,
            description,
        )

        if decision.response is not None:
            return JSONResponse(
                content=decision.response.body,
                status_code=decision.response.status_code,
                headers=decision.response.headers,
            )

        request.state.payer = decision.payer
        # The handler only learns who paid, not the signed authorization
        request.scope["headers"] = [
            (name, value)
            for name, value in request.scope["headers"]
            if name.lower() != X_PAYMENT_HEADER.lower().encode("latin-1")
        ]

        response = await call_next(request)
        for name, value in decision.headers.items():
            response.headers[name] = value
        return response

    return middleware


def get_payer(request: Request) -> Optional[str]:
    """Payer address admitted by :func:`require_payment`, if any."""
    return getattr(request.state, "payer", None)
