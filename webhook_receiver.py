"""
Simple webhook receiver for testing delivery locally.
Runs a local server on port 9000; point webhookUrl at http://localhost:9000/webhook/test.
"""

import asyncio

from fastapi import FastAPI, Request
from uvicorn import Config, Server

from lib.logger import setup_logger

logger = setup_logger(__name__)

app = FastAPI(title="Webhook Test Receiver")


@app.post("/webhook/{path:path}")
@app.post("/webhook-test/{path:path}")
async def receive_webhook(path: str, request: Request):
    """Receive a harvest and log its shape. Cookie values are never printed."""
    payload = await request.json()

    logger.info("=" * 80)
    logger.info(f"WEBHOOK RECEIVED on /{path}")
    logger.info("=" * 80)
    logger.info(f"Login URL: {payload.get('loginUrl')}")
    logger.info(f"Target URL: {payload.get('targetUrl')}")
    logger.info(f"Extraction method: {payload.get('extractionMethod')}")

    cookies = payload.get("cookies") or []
    names = [cookie.get("name") for cookie in cookies]
    logger.info(f"Cookies ({len(names)}): {names}")
    logger.info(f"Critical cookies: {payload.get('criticalCookies', [])}")

    tokens = payload.get("sessionTokens") or []
    logger.info(f"Session tokens: {[(t.get('name'), t.get('length')) for t in tokens]}")
    logger.info("=" * 80)

    return {"status": "received", "cookieCount": len(names)}


async def main():
    logger.info("Starting webhook receiver on http://localhost:9000")
    logger.info("   Webhook URL: http://localhost:9000/webhook/test")
    logger.info("\nPress Ctrl+C to stop\n")

    config = Config(app=app, host="0.0.0.0", port=9000, log_level="info")
    server = Server(config)
    await server.serve()


if __name__ == "__main__":
    asyncio.run(main())
