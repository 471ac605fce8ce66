"""
HTTP client integrations for x402 payment handling.

Core exports (always available):
    - x402Client: Base client for payment handling
    - PaymentFlowState: Observable state of a payment flow
    - PaymentAttempt: Per-call state and settlement outcome
    - decode_x_payment_response: Decode X-PAYMENT-RESPONSE header

Transports:
    from aureo_x402.clients.httpx import x402HttpxClient
    from aureo_x402.clients.requests import x402_requests
"""

from aureo_x402.clients.base import (
    PaymentAttempt,
    PaymentFlowState,
    decode_x_payment_response,
    x402Client,
)

__all__ = [
    "PaymentAttempt",
    "PaymentFlowState",
    "x402Client",
    "decode_x_payment_response",
]
