import asyncio
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from faceguide import __version__
from faceguide.api.channel import HostBroadcaster
from faceguide.api.routes import router
from faceguide.config import Settings, settings as default_settings
from faceguide.pipeline import FramingPipeline
from faceguide.presentation.sink import HostSink, SnapshotThrottle, StatusBoard


def create_app(
    config: Settings | None = None,
    pipeline: FramingPipeline | None = None,
    start_pipeline: bool = True,
) -> FastAPI:
    """
    Build the host-channel API around a framing pipeline.

    The pipeline runs on a background thread for the lifetime of the app and
    publishes to the status board and to WebSocket subscribers.
    """
    config = config or default_settings
    pipeline = pipeline or FramingPipeline.from_settings(config)

    board = StatusBoard()
    broadcaster = HostBroadcaster()
    pipeline.add_sink(board)
    pipeline.add_sink(HostSink(broadcaster, SnapshotThrottle(config.snapshot_interval)))

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        broadcaster.bind(asyncio.get_running_loop())
        if start_pipeline:
            pipeline.start()
        yield
        await asyncio.to_thread(pipeline.stop)

    app = FastAPI(title="Face Framing Guide API", version=__version__, lifespan=lifespan)
    app.state.settings = config
    app.state.pipeline = pipeline
    app.state.board = board
    app.state.broadcaster = broadcaster

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(router, prefix="/api")

    @app.get("/")
    def health_check():
        return {"status": "ok", "service": "Face Framing Guide API", "state": board.latest.state.value}

    return app


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(create_app(), host=default_settings.api_host, port=default_settings.api_port)
