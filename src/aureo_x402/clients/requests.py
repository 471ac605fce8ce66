"""requests library wrapper with automatic x402 payment handling.

Provides an HTTPAdapter and a convenience Session factory for sync code.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Optional

import requests
from requests.adapters import HTTPAdapter

from aureo_x402.clients.base import PaymentFlowState, decode_x_payment_response, x402Client
from aureo_x402.constants import X_PAYMENT_RESPONSE_HEADER
from aureo_x402.errors import (
    InvalidFormatError,
    PaymentDeclinedError,
    PaymentError,
    ProtocolViolationError,
)
from aureo_x402.types import PaymentRequirement, SettleResponse

logger = logging.getLogger(__name__)


class x402HTTPAdapter(HTTPAdapter):
    """HTTP adapter that handles 402 Payment Required responses.

    Subclasses requests.HTTPAdapter to intercept 402 responses, sign a payment
    and resend the same request once with the X-PAYMENT header. Non-402
    responses, including failures after paying, are returned unchanged.

    ``state`` and ``payment_response`` describe the most recent request only.
    When a session is shared between threads, decode each response's
    X-PAYMENT-RESPONSE header with :func:`decode_x_payment_response` instead.
    """

    def __init__(
        self,
        client: x402Client,
        on_payment_required: Optional[Callable[[PaymentRequirement], bool]] = None,
        **kwargs: Any,
    ) -> None:
        """Initialize payment adapter.

        Args:
            client: x402Client holding the payer's signer.
            on_payment_required: Optional confirmation callback; False declines.
            **kwargs: Additional arguments for HTTPAdapter.
        """
        super().__init__(**kwargs)
        self._client = client
        self.on_payment_required = on_payment_required
        self.state = PaymentFlowState.IDLE
        self.payment_response: Optional[SettleResponse] = None

    def send(
        self,
        request: requests.PreparedRequest,
        **kwargs: Any,
    ) -> requests.Response:
        """Send request with automatic 402 payment handling.

        Raises:
            PaymentError: If payment handling fails.
        """
        self.payment_response = None
        self.state = PaymentFlowState.REQUEST_SENT
        response = super().send(request, **kwargs)

        # Not a 402, return as-is
        if response.status_code != 402:
            return self._finish(response)

        try:
            requirement = self._client.get_payment_requirement(response.headers)
            self._client.check_max_value(requirement)

            self.state = PaymentFlowState.AWAITING_CONFIRMATION
            if self.on_payment_required is not None and not self.on_payment_required(
                requirement
            ):
                raise PaymentDeclinedError("Payment declined")

            self.state = PaymentFlowState.SIGNING
            payment_headers = self._client.payment_headers(requirement)

            self.state = PaymentFlowState.RETRYING_WITH_PAYMENT
            retry_request = request.copy()
            retry_request.headers.update(payment_headers)
            retry_response = super().send(retry_request, **kwargs)

            if retry_response.status_code == 402:
                raise ProtocolViolationError("Payment required again after paying")
            return self._finish(retry_response)
        except PaymentError:
            self.state = PaymentFlowState.FAILED
            raise

    def _finish(self, response: requests.Response) -> requests.Response:
        header = response.headers.get(X_PAYMENT_RESPONSE_HEADER)
        if header:
            try:
                self.payment_response = decode_x_payment_response(header)
            except InvalidFormatError as e:
                logger.debug("Ignoring undecodable %s header: %s", X_PAYMENT_RESPONSE_HEADER, e)
        self.state = PaymentFlowState.DONE if response.ok else PaymentFlowState.FAILED
        return response


def x402_http_adapter(client: x402Client, **kwargs: Any) -> x402HTTPAdapter:
    """Create an HTTP adapter with 402 payment handling."""
    return x402HTTPAdapter(client, **kwargs)


def x402_requests(client: x402Client, **adapter_kwargs: Any) -> requests.Session:
    """Create a requests Session with x402 payment handling.

    Example:
        ```python
        from eth_account import Account
        from aureo_x402.clients import x402Client
        from aureo_x402.clients.requests import x402_requests

        session = x402_requests(x402Client(account=Account.from_key("0x...")))
        response = session.post("https://api.example.com/api/market-analysis")
        ```
    """
    session = requests.Session()
    adapter = x402HTTPAdapter(client, **adapter_kwargs)
    session.mount("https://", adapter)
    session.mount("http://", adapter)
    return session
