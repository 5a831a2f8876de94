from fastapi import FastAPI, HTTPException

from htmlpdf_converter import __version__
from htmlpdf_converter.api import create_app

try:
    app = create_app(require_enabled=True)
except RuntimeError:
    app = FastAPI(title="Local HTML to PDF Converter", version=__version__)

    @app.get("/")
    async def api_disabled() -> dict[str, str]:
        raise HTTPException(
            status_code=503,
            detail="Local API disabled. Enable by setting enable_local_api = true in config.toml or HTMLPDF_ENABLE_LOCAL_API=1",
        )
