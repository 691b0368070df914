import logging

from fastapi import FastAPI
from .api import router
from .config import settings
from .db import init_db

logging.basicConfig(
    level=getattr(logging, settings.log_level, logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)

app = FastAPI(title="Workload Dashboard")


@app.on_event('startup')
def startup_event():
    init_db()


app.include_router(router, prefix='/api')
