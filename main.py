from typing import Any

from dotenv import load_dotenv
from fastapi import Body, Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from lib.auth import verify_apikey
from lib.config import Settings, get_settings
from lib.logger import setup_logger
from services.automation import run_automation

# Load environment variables from .env file
load_dotenv()

logger = setup_logger(__name__)

app = FastAPI(title="Login Cookie Harvester")


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    """Malformed bodies get the same structured 400 as missing fields."""
    logger.warning(f"Rejected malformed request body on {request.url.path}")
    return JSONResponse(
        status_code=400,
        content={
            "status": "error",
            "message": "Request body must be a JSON object",
            "errorKind": "validation",
        },
    )


@app.get("/health")
async def health_check():
    return {"status": "healthy"}


@app.post("/api/start")
async def start(
    payload: dict[str, Any] = Body(...),
    settings: Settings = Depends(get_settings),
    _: None = Depends(verify_apikey),
) -> JSONResponse:
    """
    Log in to the target site, harvest its cookies and relay them to the webhook.
    Runs synchronously and returns the full outcome.
    """
    outcome = await run_automation(payload, settings)
    logger.info(f"Automation finished: {outcome.status} - {outcome.message}")
    return JSONResponse(status_code=outcome.http_status, content=outcome.to_response())


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
