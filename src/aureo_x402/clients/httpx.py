"""httpx client with x402 payment handling."""

from __future__ import annotations

import inspect
import logging
from typing import Any, Optional

import httpx

from aureo_x402.clients.base import (
    ConfirmationCallback,
    PaymentAttempt,
    PaymentFlowState,
    decode_x_payment_response,
    x402Client,
)
from aureo_x402.constants import X_PAYMENT_HEADER, X_PAYMENT_RESPONSE_HEADER
from aureo_x402.errors import (
    InvalidFormatError,
    PaymentDeclinedError,
    PaymentError,
    PaymentTransportError,
    ProtocolViolationError,
)
from aureo_x402.types import SettleResponse

logger = logging.getLogger(__name__)


def _parse_body(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return response.text


class x402HttpxClient(httpx.AsyncClient):
    """AsyncClient that pays for 402 responses in :meth:`request_with_payment`.

    At most one payment is signed per call and at most two requests are sent.
    Plain ``get``/``post`` calls are left untouched.

    ``state`` and ``payment_response`` follow the most recently started call.
    Concurrent callers should use :meth:`send_with_payment`, which returns the
    outcome of each call on its own.

    Example:
        ```python
        from eth_account import Account
        from aureo_x402.clients import x402Client
        from aureo_x402.clients.httpx import x402HttpxClient

        x402 = x402Client(account=Account.from_key("0x..."), max_value=50000)
        async with x402HttpxClient(x402, base_url="https://api.example.com") as client:
            analysis = await client.request_with_payment("POST", "/api/market-analysis")
        ```
    """

    def __init__(
        self,
        client: x402Client,
        on_payment_required: Optional[ConfirmationCallback] = None,
        **kwargs: Any,
    ):
        super().__init__(**kwargs)
        self.x402_client = client
        self.on_payment_required = on_payment_required
        self.last_attempt = PaymentAttempt()

    @property
    def state(self) -> PaymentFlowState:
        return self.last_attempt.state

    @property
    def payment_response(self) -> Optional[SettleResponse]:
        return self.last_attempt.payment_response

    async def request_with_payment(
        self,
        method: str,
        url: httpx.URL | str,
        on_payment_required: Optional[ConfirmationCallback] = None,
        **kwargs: Any,
    ) -> Any:
        """Send a request, paying once if the server answers 402.

        Args:
            method: HTTP method
            url: Request URL
            on_payment_required: Overrides the client-wide confirmation callback
            **kwargs: Passed to ``httpx.AsyncClient.request`` for both attempts

        Returns:
            Parsed JSON body, or text when the body is not JSON

        Raises:
            ProtocolViolationError: 402 without a decodable requirement, or 402 after paying
            PaymentDeclinedError: The confirmation callback or max_value declined
            PaymentTransportError: Any other non-2xx response
        """
        attempt = await self.send_with_payment(method, url, on_payment_required, **kwargs)
        return attempt.body

    async def send_with_payment(
        self,
        method: str,
        url: httpx.URL | str,
        on_payment_required: Optional[ConfirmationCallback] = None,
        **kwargs: Any,
    ) -> PaymentAttempt:
        """Like :meth:`request_with_payment`, returning this call's :class:`PaymentAttempt`."""
        callback = on_payment_required or self.on_payment_required
        attempt = PaymentAttempt()
        self.last_attempt = attempt
        try:
            attempt.state = PaymentFlowState.REQUEST_SENT
            response = await self.request(method, url, **kwargs)
            if response.status_code != 402:
                return self._finish(attempt, response)

            requirement = self.x402_client.get_payment_requirement(response.headers)
            attempt.requirement = requirement
            self.x402_client.check_max_value(requirement)

            attempt.state = PaymentFlowState.AWAITING_CONFIRMATION
            if callback is not None:
                confirmed = callback(requirement)
                if inspect.isawaitable(confirmed):
                    confirmed = await confirmed
                if not confirmed:
                    raise PaymentDeclinedError("Payment declined")

            attempt.state = PaymentFlowState.SIGNING
            payment_header = self.x402_client.create_payment_header(requirement)

            attempt.state = PaymentFlowState.RETRYING_WITH_PAYMENT
            headers = dict(kwargs.pop("headers", None) or {})
            headers[X_PAYMENT_HEADER] = payment_header
            retry_response = await self.request(method, url, headers=headers, **kwargs)
            if retry_response.status_code == 402:
                raise ProtocolViolationError("Payment required again after paying")
            return self._finish(attempt, retry_response)
        except PaymentError:
            attempt.state = PaymentFlowState.FAILED
            raise

    def _finish(self, attempt: PaymentAttempt, response: httpx.Response) -> PaymentAttempt:
        attempt.status_code = response.status_code
        attempt.body = _parse_body(response)
        if not response.is_success:
            raise PaymentTransportError(response.status_code, attempt.body)

        header = response.headers.get(X_PAYMENT_RESPONSE_HEADER)
        if header:
            try:
                attempt.payment_response = decode_x_payment_response(header)
            except InvalidFormatError as e:
                logger.debug("Ignoring undecodable %s header: %s", X_PAYMENT_RESPONSE_HEADER, e)
        attempt.state = PaymentFlowState.DONE
        return attempt
