from dotenv import load_dotenv
load_dotenv()

import logging
import os

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from routes import recording, sessions

logging.basicConfig(
    level=os.environ.get("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
)

app = FastAPI(title="Pair Interviewer API", version="0.1.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=os.environ.get("CORS_ORIGINS", "http://localhost:3000").split(","),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(RequestValidationError)
async def invalid_payload(request: Request, exc: RequestValidationError):
    # Malformed payloads are a client error, rejected before any write.
    return JSONResponse(
        status_code=400,
        content={"detail": "Invalid request payload", "errors": jsonable_encoder(exc.errors())},
    )


app.include_router(sessions.router)
app.include_router(recording.router)


@app.get("/")
def health():
    return {"status": "ok", "service": "pair-interviewer"}
