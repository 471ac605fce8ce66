"""Pays for a protected endpoint with httpx, asking before each payment."""

import asyncio
import os
import sys

from dotenv import load_dotenv
from eth_account import Account

from aureo_x402.clients import x402Client
from aureo_x402.clients.httpx import x402HttpxClient
from aureo_x402.errors import PaymentDeclinedError, PaymentError
from aureo_x402.utils import payment_summary

load_dotenv()


def confirm(requirement) -> bool:
    summary = payment_summary(requirement)
    answer = input(f"Pay {summary['amount']} to {summary['payee']} for '{summary['description']}'? [y/N] ")
    return answer.strip().lower() == "y"


async def main() -> None:
    private_key = os.getenv("PRIVATE_KEY")
    base_url = os.getenv("RESOURCE_SERVER_URL", "http://localhost:4021")
    if not private_key:
        print("Error: PRIVATE_KEY is not set")
        sys.exit(1)

    client = x402Client(account=Account.from_key(private_key), max_value=50000)
    async with x402HttpxClient(client, base_url=base_url, on_payment_required=confirm) as http:
        try:
            analysis = await http.request_with_payment("POST", "/api/x402/analyze")
        except PaymentDeclinedError as e:
            print(f"Not paid: {e}")
            return
        except PaymentError as e:
            print(f"Payment failed ({e.kind}, retryable={e.retryable}): {e}")
            return

    print(analysis)
    if http.payment_response is not None:
        print(f"Settled in {http.payment_response.transaction}")


if __name__ == "__main__":
    asyncio.run(main())
