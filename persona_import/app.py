import logging
import os

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from persona_import.routes import imports, personas


def create_app() -> FastAPI:
    app = FastAPI(title="Persona Dataset Import API", version="0.1.0")

    log_level = os.getenv("PERSONA_IMPORT_LOG_LEVEL")
    if log_level:
        logging.getLogger("persona_import").setLevel(log_level.upper())

    origins_env = os.getenv("API_CORS_ORIGINS", "")
    origins = [origin.strip() for origin in origins_env.split(",") if origin.strip()]
    if not origins:
        origins = ["http://localhost:5173", "http://127.0.0.1:5173"]

    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(imports.router, prefix="/api")
    app.include_router(personas.router, prefix="/api")

    @app.get("/", include_in_schema=False)
    async def root() -> JSONResponse:
        """Provide a lightweight landing page for container checks."""
        return JSONResponse(
            {
                "message": "Persona Dataset Import API",
                "docs": "/docs",
                "health": "/api/import/parsers",
            }
        )

    return app


app = create_app()
