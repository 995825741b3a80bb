import os
from pathlib import Path

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.routes import uploads
from api.services.storage import describe_upload_target

app = FastAPI(title="Image Upload API", version="0.1.0")

default_origins = [
    "http://localhost:5173",
    "http://localhost:3000",
    "http://localhost:8000",
]
cors_origins = [
    origin.strip()
    for origin in os.getenv("CORS_ALLOWED_ORIGINS", ",".join(default_origins)).split(",")
    if origin.strip()
]

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/")
async def root() -> dict[str, object]:
    return {
        "service": "image-upload",
        "status": "ok",
        "docs": "/docs",
        "health": "/health",
    }


@app.get("/health")
def health(upload_root: Path = Depends(uploads.get_upload_root)) -> dict[str, object]:
    return {
        "status": "ok",
        "upload": describe_upload_target(upload_root),
    }


app.include_router(uploads.router, prefix="/uploads", tags=["uploads"])
