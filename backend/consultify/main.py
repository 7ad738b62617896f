# consultify/main.py
import asyncio
import logging

from fastapi import FastAPI

from consultify import models  # noqa: F401  registers tables with Base
from consultify.database import Base, engine
from consultify.endpoints import consultations, messages, prescriptions, translate, users
from consultify.services.email_queue import run_email_worker

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

app = FastAPI(title="Consultify API", version="1.0.0")


@app.on_event("startup")
async def startup_event():
    # Create database tables
    Base.metadata.create_all(bind=engine)

    # Launch the prescription email worker
    try:
        asyncio.create_task(run_email_worker())
        logger.info("✅ Prescription email worker started")
    except Exception as e:
        logger.error(f"⚠️ Failed to start prescription email worker: {e}")


# Include HTTP routers
app.include_router(consultations)
app.include_router(messages)
app.include_router(prescriptions)
app.include_router(translate)
app.include_router(users)


@app.get("/")
def root():
    return {"message": "API is running"}
