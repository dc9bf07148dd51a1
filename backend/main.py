import asyncio
import logging
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse

load_dotenv()

from api.config import cors_origins, log_level  # noqa: E402
from api.errors import BhuvanError  # noqa: E402
from api.places import router as places_router  # noqa: E402
from api.places_live import router as places_live_router  # noqa: E402
from api.places_stream import SessionRegistry  # noqa: E402
from api.translate import router as translate_router  # noqa: E402
from engine.factory import get_store  # noqa: E402
from translate.client import LingvanexClient  # noqa: E402

logging.basicConfig(
    level=log_level(),
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
)
logger = logging.getLogger(__name__)


async def _check_store() -> None:
    store = get_store()
    try:
        rows = await asyncio.to_thread(store.count)
    except BhuvanError as exc:
        logger.error("Startup store check failed (%s): %s", store.name, exc.message)
        return
    logger.info("Connected to %s store, places rows: %d", store.name, rows)


@asynccontextmanager
async def lifespan(app: FastAPI):
    app.state.sessions = SessionRegistry()
    app.state.translator = LingvanexClient()
    await _check_store()
    yield
    closed = app.state.sessions.close_all()
    logger.info("Shutting down, closed %d open stream session(s)", closed)
    await app.state.translator.aclose()


app = FastAPI(title="Bhuvan Live Map API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins(),
    allow_methods=["GET", "POST"],
    allow_headers=["Content-Type", "Authorization"],
)


@app.exception_handler(BhuvanError)
async def bhuvan_error_handler(request: Request, exc: BhuvanError):
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload())


app.include_router(places_router)
app.include_router(places_live_router)
app.include_router(translate_router)


@app.get("/", response_class=PlainTextResponse)
def root():
    return "Bhuvan live map backend is running"


@app.get("/api/health")
def health():
    return {"status": "ok"}
