from contextlib import asynccontextmanager
from typing import Optional
import logging

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from .config import Settings, get_settings
from .engine import Recommender
from .errors import StoreBusyError
from .models import Popularity, Recommendations, UserHistory, WatchEvent, WatchResult
from .server import build_server, configure_logging
from .store import WatchStore

load_dotenv()
logger = logging.getLogger(__name__)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()
    # One store per app; the TCP server started in lifespan shares it.
    store = WatchStore(lock_timeout=settings.lock_timeout_seconds)
    recommender = Recommender(store, limit=settings.recommendation_limit)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        configure_logging(settings.log_level)
        server = None
        if settings.tcp_enabled:
            server = build_server(settings, recommender)
            server.serve_in_background()
        try:
            yield
        finally:
            if server is not None:
                server.shutdown()
                server.server_close()
                logger.info("watch server stopped")

    app = FastAPI(title="Watch Recommendation API", version="0.3.0", lifespan=lifespan)
    app.state.store = store
    app.state.recommender = recommender

    @app.exception_handler(StoreBusyError)
    async def store_busy(request: Request, exc: StoreBusyError):
        logger.warning("store busy on %s: %s", request.url.path, exc)
        return JSONResponse(status_code=503, content={"detail": "Store busy"})

    # Handlers are sync so the blocking store lock is taken in the threadpool.
    @app.get("/health")
    def health():
        return {"status": "ok", **store.stats().model_dump()}

    @app.post("/watch", response_model=WatchResult)
    def record_watch(payload: WatchEvent):
        ranked = recommender.watch_and_recommend(payload.user_id, payload.video_id)
        return WatchResult(updated=True, recommendations=ranked)

    @app.get("/recommendations/{video_id}", response_model=Recommendations)
    def recommend_for_video(video_id: str):
        return Recommendations(video_id=video_id, recommendations=recommender.recommend(video_id))

    @app.get("/videos/{video_id}/popularity", response_model=Popularity)
    def video_popularity(video_id: str):
        return Popularity(video_id=video_id, views=store.popularity(video_id))

    @app.get("/users/{user_id}/history", response_model=UserHistory)
    def user_history(user_id: str):
        return UserHistory(user_id=user_id, videos=sorted(store.history(user_id)))

    return app


app = create_app()

if __name__ == "__main__":
    import uvicorn
    s = get_settings()
    configure_logging(s.log_level)
    uvicorn.run("watchrec.main:app", host=s.http_host, port=s.http_port)
