import os

from sqlswitch.config import config
from .utils.logger import setup_logger

# Ensure the directories defined in settings.yaml exist at import time.
for key, path in config.get('base_dirs', {}).items():
    os.makedirs(path, exist_ok=True)

setup_logger('sqlswitch_init').info('sqlswitch package initialised with FastAPI backend.')

# ------------------------- FastAPI application ---------------------------

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

app = FastAPI(title="SQL Switch API", version=config.get('api', {}).get('version', 'v1'))

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


from .api.routes import api_router

app.include_router(api_router)

route_logger = setup_logger('routes')
for route in app.routes:
    if hasattr(route, 'methods'):
        route_logger.info(f"{list(route.methods)}  {route.path}")
