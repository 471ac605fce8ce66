import json
import logging
from typing import Any, Dict, Optional, Union

from flask import Flask, g, request

from aureo_x402.constants import X_PAYMENT_HEADER
from aureo_x402.guard import GuardResponse, PaymentGuard
from aureo_x402.path import path_is_match

logger = logging.getLogger(__name__)

PAYER_ENVIRON_KEY = "aureo_x402.payer"
PAYMENT_ENVIRON_KEY = "HTTP_" + X_PAYMENT_HEADER.upper().replace("-", "_")

_STATUS_TEXT = {
    400: "Bad Request",
    402: "Payment Required",
    503: "Service Unavailable",
}


def _send_json(response: GuardResponse, start_response):
    body = json.dumps(response.body).encode("utf-8")
    status = f"{response.status_code} {_STATUS_TEXT.get(response.status_code, '')}".strip()
    headers = [
        ("Content-Type", "application/json"),
        ("Content-Length", str(len(body))),
    ]
    headers.extend(response.headers.items())
    start_response(status, headers)
    return [body]


class PaymentMiddleware:
    """
    Flask middleware for x402 payment requirements.
    Allows multiple registrations with different path patterns and prices.

    On success the payer address is available as ``flask.g.payer``.

    Usage:
        middleware = PaymentMiddleware(app, guard)
        middleware.add(path="/api/market-analysis", amount=10000)
        middleware.add(path="/api/premium/*", description="Premium analysis")
    """

    def __init__(self, app: Flask, guard: PaymentGuard):
        self.app = app
        self.guard = guard
        self.middleware_configs = []
        self.original_wsgi_app = app.wsgi_app
        app.before_request(self._load_payer)

    @staticmethod
    def _load_payer():
        g.payer = request.environ.get(PAYER_ENVIRON_KEY)

    def add(
        self,
        path: Union[str, list[str]] = "*",
        amount: Optional[int] = None,
        description: str = "",
    ):
        """
        Add a payment middleware configuration.

        Args:
            path (str | list[str], optional): Path(s) to protect. Defaults to "*".
            amount (int, optional): Price in token minor units. Defaults to the guard's pricing.
            description (str, optional): Description of the resource
        """
        config = {
            "path": path,
            "amount": amount,
            "description": description,
        }
        self.middleware_configs.append(config)

        # Apply the middleware to the app
        self._apply_middleware()

    def _apply_middleware(self):
        """Apply all middleware configurations to the Flask app."""
        current_wsgi_app = self.original_wsgi_app

        for config in self.middleware_configs:
            middleware = self._create_middleware(config, current_wsgi_app)
            current_wsgi_app = middleware

        self.app.wsgi_app = current_wsgi_app

    def _create_middleware(self, config: Dict[str, Any], next_app):
        """Create a WSGI middleware function for the given configuration."""

        def middleware(environ, start_response):
            with self.app.request_context(environ):
                # Skip if the path is not the same as the path in the middleware
                if not path_is_match(config["path"], request.path):
                    return next_app(environ, start_response)

                decision = self.guard.evaluate(
                    request.headers.get(X_PAYMENT_HEADER, ""),
                    request.path,
                    config["amount"],
                    config["description"],
                )

            if decision.response is not None:
                return _send_json(decision.response, start_response)

            environ[PAYER_ENVIRON_KEY] = decision.payer
            # The handler only learns who paid, not the signed authorization
            environ.pop(PAYMENT_ENVIRON_KEY, None)

            def start_with_payment_headers(status, headers, exc_info=None):
                headers = list(headers) + list(decision.headers.items())
                return start_response(status, headers, exc_info)

            return next_app(environ, start_with_payment_headers)

        return middleware


def get_payer() -> Optional[str]:
    """Payer address admitted for the current request, if any."""
    return g.get("payer")
