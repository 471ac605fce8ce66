import logging
from typing import Any, Dict

from fastapi import FastAPI, Request

from aureo_x402.config import get_settings
from aureo_x402.fastapi.middleware import get_payer, require_payment
from aureo_x402.server import build_payment_guard

logging.basicConfig(level=logging.INFO)

# Reads X402_* variables from the environment or .env
guard = build_payment_guard(get_settings())

app = FastAPI()

app.middleware("http")(
    require_payment(guard, path="/api/x402/analyze", description="Market analysis")
)
app.middleware("http")(
    require_payment(guard, path="/api/x402/smart-buy", description="Smart buy execution")
)


@app.post("/api/x402/analyze")
async def analyze(request: Request) -> Dict[str, Any]:
    return {
        "signal": "accumulate",
        "confidence": 0.72,
        "payer": get_payer(request),
    }


@app.post("/api/x402/smart-buy")
async def smart_buy(request: Request) -> Dict[str, Any]:
    return {"status": "queued", "payer": get_payer(request)}


@app.get("/health")
async def health() -> Dict[str, Any]:
    return {"status": "ok"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=4021)
