"""
Flask middleware for x402 payment requirements.

Usage:   from aureo_x402.flask.middleware import PaymentMiddleware

Example:
    from flask import Flask
    from aureo_x402.flask.middleware import PaymentMiddleware
    from aureo_x402.server import build_payment_guard

    app = Flask(__name__)
    middleware = PaymentMiddleware(app, build_payment_guard())
    middleware.add(path="/api/premium", amount=10000)
"""
