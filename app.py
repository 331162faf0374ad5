"""Entry-point script – simply delegates to Uvicorn with the FastAPI app that
lives in the ``sqlswitch`` package."""

import uvicorn

from sqlswitch import app as fastapi_app, config  # app object is created in package __init__


if __name__ == "__main__":
    # For development: uvicorn sqlswitch:app --reload --port 5001
    uvicorn.run(
        "sqlswitch:app",
        host=config.get('api', {}).get('host', "127.0.0.1"),
        port=config.get('api', {}).get('port', 5001),
        reload=config.get('api', {}).get('debug', False),
    )
