"""
Facilitator Main Entry Point
Starts the x402 relay FastAPI server (ERC-3009 relay, ERC-4337 bundler routes, gacha).
"""

from pathlib import Path

import uvicorn

from x402_relay.config import FacilitatorSettings
from x402_relay.fastapi import create_app
from x402_relay.logging_config import setup_logging

settings = FacilitatorSettings.from_env(str(Path(__file__).parent / ".env"))

setup_logging(settings.log_level)

app = create_app(settings)


def main():
    """Start the facilitator server"""
    services = app.state.services
    base = f"http://{settings.host}:{settings.port}"

    print("\n" + "=" * 80)
    print("Starting X402 Relay Server")
    print("=" * 80)
    print(f"Host: {settings.host}")
    print(f"Port: {settings.port}")
    if services.relayer is not None:
        print(f"Facilitator Address: {services.relayer.get_address()}")
    else:
        print("Facilitator Address: (FACILITATOR_PRIVATE_KEY not set)")
    print(f"Bundler: {settings.bundler_chain if services.bundler else '(not configured)'}")
    print(f"Gacha Recipient: {settings.gacha_recipient}")
    print(f"Gacha Price: ${settings.gacha_price_usd}")
    print("=" * 80)
    print("\nEndpoints:")
    print(f"  POST {base}/api/facilitator/erc3009")
    print(f"  GET  {base}/api/facilitator/erc3009")
    print(f"  POST {base}/api/facilitator/prepare")
    print(f"  POST {base}/api/facilitator/submit")
    print(f"  POST {base}/api/facilitator")
    print(f"  GET  {base}/api/gacha")
    print(f"  POST {base}/api/gacha")
    print(f"  GET  {base}/api/gacha/fortune")
    print(f"  POST {base}/api/gacha/passkey")
    print(f"  POST {base}/api/pimlico")
    print("=" * 80 + "\n")

    uvicorn.run(
        app,
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
