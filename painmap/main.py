# painmap/main.py
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from painmap.config import get_settings
from painmap.services import init_db
from painmap.api.routes import router as api_router


logging.basicConfig(
    level=get_settings().log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = FastAPI(title="Painmap API", version="1.0.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # for dev; tighten in prod
    allow_methods=["*"],
    allow_headers=["*"],
    allow_credentials=True,
)


@app.on_event("startup")
def on_startup() -> None:
    init_db()


@app.get("/")
def root():
    return {"message": "Painmap API is running"}


app.include_router(api_router, prefix="/api")
