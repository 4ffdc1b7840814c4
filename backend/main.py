import logging
import sys
import time

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from myshelf.routers import backup, insights, library, settings

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s - %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)

logger = logging.getLogger(__name__)

app = FastAPI(title="My Shelf API", version="1.0.0")


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """One line per request with the namespace, status and duration."""
    started = time.perf_counter()
    response = await call_next(request)
    user = request.headers.get("x-user-id") or "guest"
    logger.info(
        f"{request.method} {request.url.path} [{user}] -> {response.status_code} "
        f"({time.perf_counter() - started:.3f}s)"
    )
    return response


app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/")
async def read_root():
    return {"message": "My Shelf API", "status": "running"}


@app.get("/health")
async def health_check():
    return {"status": "healthy"}


app.include_router(library.router)
app.include_router(settings.router)
app.include_router(backup.router)
app.include_router(insights.router)

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
