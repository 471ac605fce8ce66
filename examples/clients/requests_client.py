import os
import sys

from dotenv import load_dotenv
from eth_account import Account

from aureo_x402.clients import x402Client
from aureo_x402.clients.requests import x402_requests

load_dotenv()


def main() -> None:
    private_key = os.getenv("PRIVATE_KEY")
    base_url = os.getenv("RESOURCE_SERVER_URL", "http://localhost:4021")
    if not private_key:
        print("Error: PRIVATE_KEY is not set")
        sys.exit(1)

    session = x402_requests(x402Client(account=Account.from_key(private_key)))
    response = session.post(f"{base_url}/api/x402/analyze")
    print(response.status_code, response.json())


if __name__ == "__main__":
    main()
