"""
HTTP service for the NMS Glyph Generator.
FastAPI application exposing glyph generation and region selection as JSON.
"""

import logging
import threading
from concurrent.futures import Future
from typing import Optional

from fastapi import FastAPI, HTTPException

from .address_builder import AddressStatus, build_address
from .config import get_default_data_path, load_config
from .directory import Directory, merge_directories
from .glyph_codec import coordinates_to_glyphs, format_glyph, glyph_names, glyph_names_to_code
from .pipeline import DirectoryPipeline

logger = logging.getLogger('nms_glyphs.api')

app = FastAPI(title="NMS Glyph Generator", docs_url=None, redoc_url=None)

# Global state
_config: dict = {}
_pipeline: Optional[DirectoryPipeline] = None
_directory: Optional[Directory] = None
_directory_lock = threading.Lock()
_refresh_future: Optional[Future] = None


def get_config() -> dict:
    """Get current configuration."""
    global _config
    if not _config:
        _config = load_config()
    return _config


def get_pipeline() -> DirectoryPipeline:
    """Get the pipeline instance."""
    global _pipeline
    if _pipeline is None:
        _pipeline = DirectoryPipeline.from_config(get_config())
    return _pipeline


def set_pipeline(pipeline: Optional[DirectoryPipeline], directory: Optional[Directory] = None):
    """Set the pipeline (and optionally the loaded directory)."""
    global _pipeline, _directory, _refresh_future
    _pipeline = pipeline
    _refresh_future = None
    with _directory_lock:
        _directory = directory


def get_directory() -> Directory:
    """Get the loaded directory, seeding it from defaults and cache on first use."""
    global _directory
    with _directory_lock:
        if _directory is None:
            _directory = get_pipeline().load_seed(get_default_data_path(get_config()))
        return _directory


def _glyph_payload(glyphs: str) -> dict:
    return {
        "glyphs": glyphs,
        "formatted": format_glyph(glyphs),
        "names": glyph_names(glyphs),
    }


@app.get("/api/glyphs")
async def api_generate_glyphs(suffix: str = "", names: str = ""):
    """
    Generate a portal address, optionally keeping the coordinates of ``suffix``.

    ``names`` gives the suffix as comma or space separated glyph names instead.
    """
    if names:
        try:
            suffix = glyph_names_to_code(names)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))

    result = build_address(suffix)
    if result.status == AddressStatus.INVALID:
        raise HTTPException(status_code=400, detail=result.message)

    payload = _glyph_payload(result.glyphs)
    payload["status"] = result.status.value
    payload["message"] = result.message
    return payload


@app.get("/api/galaxies")
async def api_galaxies():
    return {"galaxies": get_directory().galaxies}


@app.get("/api/galaxies/{galaxy}/civilizations")
async def api_civilizations(galaxy: str):
    directory = get_directory()
    if galaxy not in directory.data:
        raise HTTPException(status_code=404, detail=f"Unknown galaxy: {galaxy}")
    return {"galaxy": galaxy, "civilizations": directory.civilizations(galaxy)}


@app.get("/api/galaxies/{galaxy}/civilizations/{civilization}/regions")
async def api_regions(galaxy: str, civilization: str):
    directory = get_directory()
    if civilization not in directory.civilizations(galaxy):
        raise HTTPException(status_code=404, detail=f"Unknown civilization: {civilization}")
    return {
        "galaxy": galaxy,
        "civilization": civilization,
        "regions": [region.to_dict() for region in directory.regions(galaxy, civilization)]
    }


@app.get("/api/region-glyphs")
async def api_region_glyphs(galaxy: str, civilization: str, region: str):
    """Portal address of a listed region."""
    coordinates = get_directory().coordinates(galaxy, civilization, region)
    if coordinates is None:
        raise HTTPException(status_code=404, detail=f"Unknown region: {region}")

    glyphs = coordinates_to_glyphs(coordinates)
    if not glyphs:
        raise HTTPException(status_code=422, detail=f"Malformed coordinates: {coordinates}")

    payload = _glyph_payload(glyphs)
    payload.update({"region": region, "coordinates": coordinates})
    return payload


def _on_refresh_done(future: Future):
    global _directory
    if future.cancelled():
        return
    error = future.exception()
    if error is not None:
        logger.error(f"Directory refresh failed: {error}")
        return
    with _directory_lock:
        base = _directory or Directory()
        _directory = merge_directories(base, future.result())
    logger.info("Directory refresh merged")


@app.post("/api/directory/refresh")
async def api_refresh_directory():
    """Queue a refresh; the result is merged into the loaded directory when done."""
    global _refresh_future
    get_directory()
    if _refresh_future is not None and not _refresh_future.done():
        return {"queued": False, "message": "Refresh already in progress"}

    _refresh_future = get_pipeline().fetch_directory_async(force_refresh=True)
    _refresh_future.add_done_callback(_on_refresh_done)
    return {"queued": True, "message": "Refresh queued"}


@app.get("/api/directory/progress")
async def api_directory_progress():
    pipeline = get_pipeline()
    progress = pipeline.last_progress
    return {
        "running": pipeline.crawling,
        "pending": pipeline.scheduler.pending(),
        "current": progress[0] if progress else 0,
        "total": progress[1] if progress else pipeline.estimated_total,
        "start_time": progress[2] if progress else None,
    }


def run_server(config: dict):
    """
    Run the HTTP server.

    Args:
        config: Configuration dictionary
    """
    import uvicorn

    global _config
    _config = config

    host = config.get('server', {}).get('host', '127.0.0.1')
    port = config.get('server', {}).get('port', 8010)

    logger.info(f"Starting server at http://{host}:{port}")

    uvicorn.run(
        app,
        host=host,
        port=port,
        log_level="warning"
    )
