"""
FastAPI middleware for x402 payment requirements.

Usage:   from aureo_x402.fastapi.middleware import require_payment

Example:
    from fastapi import FastAPI
    from aureo_x402.fastapi.middleware import require_payment
    from aureo_x402.server import build_payment_guard

    app = FastAPI()
    guard = build_payment_guard()
    app.middleware("http")(require_payment(guard, path="/api/premium", amount=10000))
"""
