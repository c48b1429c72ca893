"""Read-only viewer API over the segment store."""

import asyncio
import logging

from aiohttp import web

from ..errors import ManifestNotFound, SegmentNotFound
from ..models.segment import SEGMENT_CONTENT_TYPE
from ..services.liveness import LivenessTracker
from ..storage.segment_store import MANIFEST_CONTENT_TYPE, MANIFEST_NAME, SegmentStore

logger = logging.getLogger(__name__)

STORE_KEY = web.AppKey("segment_store", SegmentStore)
TRACKER_KEY = web.AppKey("liveness_tracker", LivenessTracker)


async def _run_sync(func, *args):
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(None, func, *args)


async def status(request: web.Request) -> web.Response:
    tracker = request.app[TRACKER_KEY]
    try:
        stream_status = await _run_sync(tracker.status)
    except OSError as e:
        logger.error(f"Error getting status: {e}")
        return web.json_response({"error": "Failed to get status"}, status=500)
    return web.json_response(stream_status.to_dict())


async def list_segments(request: web.Request) -> web.Response:
    store = request.app[STORE_KEY]
    try:
        segments = await _run_sync(store.list)
    except OSError as e:
        logger.error(f"Error reading segments: {e}")
        return web.json_response({"error": "Failed to read segments"}, status=500)
    return web.json_response([s.to_listing() for s in segments])


async def get_segment(request: web.Request) -> web.Response:
    store = request.app[STORE_KEY]
    filename = request.match_info["filename"]
    if filename == MANIFEST_NAME:
        return await get_manifest(request)
    try:
        segment = await _run_sync(store.get_by_filename, filename)
    except SegmentNotFound:
        return web.json_response({"error": "Segment not found"}, status=404)
    except OSError as e:
        logger.error(f"Error reading segment {filename}: {e}")
        return web.json_response({"error": "Failed to read segment"}, status=500)
    return web.Response(body=segment.data, content_type=SEGMENT_CONTENT_TYPE)


async def get_manifest(request: web.Request) -> web.Response:
    store = request.app[STORE_KEY]
    try:
        manifest = await _run_sync(store.get_manifest)
    except ManifestNotFound:
        return web.json_response({"error": "Manifest not found"}, status=404)
    except OSError as e:
        logger.error(f"Error reading manifest: {e}")
        return web.json_response({"error": "Failed to read manifest"}, status=500)
    return web.Response(
        text=manifest,
        content_type=MANIFEST_CONTENT_TYPE,
        headers={"Cache-Control": "no-cache"},
    )


def create_app(store: SegmentStore, tracker: LivenessTracker) -> web.Application:
    app = web.Application()
    app[STORE_KEY] = store
    app[TRACKER_KEY] = tracker
    app.router.add_get("/api/status", status)
    app.router.add_get("/api/segments", list_segments)
    app.router.add_get("/api/segments/{filename}", get_segment)
    app.router.add_get("/api/manifest", get_manifest)
    # Path used by HLS players
    app.router.add_get("/liveresults/{filename}", get_segment)
    return app


def run_server(store: SegmentStore, tracker: LivenessTracker,
               host: str = "0.0.0.0", port: int = 3000) -> None:
    app = create_app(store, tracker)
    logger.info(f"Viewer API on http://{host}:{port} (manifest at /liveresults/{MANIFEST_NAME})")
    web.run_app(app, host=host, port=port, print=None)
