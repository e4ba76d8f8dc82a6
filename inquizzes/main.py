# inquizzes/main.py
import logging
import os

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from inquizzes.api.quiz_routes import router as quiz_router
from inquizzes.llm_client import OpenRouterClient
from inquizzes.quiz_store import build_store

logging.basicConfig(
    level=os.environ.get("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

CORS_ORIGINS = os.environ.get("CORS_ORIGINS", "*").split(",")

# APP Initialization
app = FastAPI(title="inQuizzes")
app.state.store = build_store()
app.state.llm = OpenRouterClient()

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(quiz_router)

if not app.state.llm.configured:
    logger.warning("OPENROUTER_API_KEY is not set; quiz generation requests will fail")


@app.exception_handler(RequestValidationError)
async def invalid_request(request: Request, exc: RequestValidationError):
    logger.info("Rejected malformed request to %s: %d error(s)", request.url.path, len(exc.errors()))
    return JSONResponse(status_code=400, content={"detail": "Malformed request"})


@app.exception_handler(Exception)
async def unhandled_exception(request: Request, exc: Exception):
    # never leak tracebacks or upstream payloads to the client
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


@app.on_event("shutdown")
async def shutdown_event():
    await app.state.store.close()


if __name__ == "__main__":
    uvicorn.run("inquizzes.main:app", host="0.0.0.0", port=int(os.getenv("PORT", 8080)))
