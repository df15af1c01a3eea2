# backend/main.py
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from pathlib import Path
from dotenv import load_dotenv

load_dotenv()

from config import settings
from database import init_db
from utils.errors import register_error_handlers

# Import routerów
from routes.stock import router as stock_router
from routes.logs import router as logs_router

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

# Inicjalizacja
init_db()

app = FastAPI(title="Stock API", version="1.0.0")

# Blob area for photos - make sure the directory exists before mounting
Path(settings.STORAGE_DIR).mkdir(parents=True, exist_ok=True)
app.mount(settings.STORAGE_URL, StaticFiles(directory=settings.STORAGE_DIR), name="storage")

# CORS Configuration
origins = [
    "http://localhost:5173",
    "http://127.0.0.1:5173",
]

if settings.FRONTEND_URL:
    origins.append(settings.FRONTEND_URL)

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_error_handlers(app)

# Rejestracja routerów
app.include_router(stock_router, prefix="/stock")
app.include_router(logs_router)

@app.get("/")
def read_root():
    return {"message": "Stock API is running"}
