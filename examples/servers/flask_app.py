import logging

from flask import Flask

from aureo_x402.config import get_settings
from aureo_x402.flask.middleware import PaymentMiddleware, get_payer
from aureo_x402.server import build_payment_guard

logging.basicConfig(level=logging.INFO)

app = Flask(__name__)

payment_middleware = PaymentMiddleware(app, build_payment_guard(get_settings()))
payment_middleware.add(path="/api/x402/analyze", description="Market analysis")
payment_middleware.add(path="/api/premium/*", amount=20000, description="Premium analysis")


@app.route("/api/x402/analyze", methods=["POST"])
def analyze():
    return {"signal": "accumulate", "payer": get_payer()}


@app.route("/api/premium/<topic>")
def premium(topic):
    return {"topic": topic, "report": "Gold outlook", "payer": get_payer()}


if __name__ == "__main__":
    app.run(host="0.0.0.0", port=4021)
