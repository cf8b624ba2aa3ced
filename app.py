import logging
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from coin_mirror.api.coins import coin_price, list_coins
from coin_mirror.config import Settings
from coin_mirror.context import TrackerContext
from coin_mirror.errors import AmbiguousSymbol, NotFound, StoreRejected, StoreUnavailable
from coin_mirror.scheduler import get_scheduler_status, start_scheduler, stop_scheduler

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s [%(name)s] %(message)s")
log = logging.getLogger("coin-mirror")

INTERNAL_ERROR = {"error": "Internal server error"}
NOT_FOUND      = {"error": "Coin not found"}


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = Settings.from_env()
    for problem in settings.validate():
        log.warning(f"Config: {problem}")
    ctx = TrackerContext.create(settings)
    app.state.tracker   = ctx
    app.state.scheduler = start_scheduler(ctx)
    yield
    stop_scheduler(app.state.scheduler)
    await ctx.aclose()


app = FastAPI(
    title="Coin Mirror",
    description="Top crypto prices mirrored into Airtable and served from there.",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def get_tracker(request: Request) -> TrackerContext:
    return request.app.state.tracker


@app.get("/")
async def root():
    return {"status": "ok", "docs": "/docs", "api": "/coins"}


@app.get("/health")
async def health(request: Request):
    ctx = get_tracker(request)
    return {
        "status":    "healthy",
        "tracked":   len(ctx.registry),
        "anomalies": len(ctx.registry.anomalies),
        "scheduler": get_scheduler_status(getattr(request.app.state, "scheduler", None)),
        "passes":    ctx.recent_passes(),
        "timestamp": int(time.time()),
    }


@app.get("/coins", tags=["Coins"])
async def get_coins(request: Request):
    log.info("GET /coins")
    ctx = get_tracker(request)
    try:
        return await list_coins(ctx.store, view=ctx.settings.airtable_view)
    except (StoreUnavailable, StoreRejected) as e:
        log.error(f"GET /coins failed: {e}")
        return JSONResponse(status_code=500, content=INTERNAL_ERROR)
    except Exception:
        log.exception("GET /coins: unexpected error")
        return JSONResponse(status_code=500, content=INTERNAL_ERROR)


@app.get("/coins/price/{coin_id}", tags=["Coins"])
async def get_coin_price(coin_id: str, request: Request):
    log.info(f"GET /coins/price/{coin_id}")
    ctx = get_tracker(request)
    try:
        return await coin_price(ctx.store, coin_id)
    except NotFound:
        return JSONResponse(status_code=404, content=NOT_FOUND)
    except AmbiguousSymbol as e:
        log.error(f"GET /coins/price/{coin_id}: {e}")
        return JSONResponse(status_code=500, content=INTERNAL_ERROR)
    except (StoreUnavailable, StoreRejected) as e:
        log.error(f"GET /coins/price/{coin_id} failed: {e}")
        return JSONResponse(status_code=500, content=INTERNAL_ERROR)
    except Exception:
        log.exception(f"GET /coins/price/{coin_id}: unexpected error")
        return JSONResponse(status_code=500, content=INTERNAL_ERROR)


if __name__ == "__main__":
    import uvicorn
    port = Settings.from_env().port
    log.info(f"Server starting on port {port}")
    uvicorn.run("app:app", host="0.0.0.0", port=port, reload=False, log_level="info")
