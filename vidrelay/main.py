import os

from fastapi import FastAPI
from rich.console import Console

from vidrelay.api import health, innertube, proxy, site, ytdlp
from vidrelay.api.deps import get_ytdlp_service
from vidrelay.api.errors import register_error_handlers
from vidrelay.api.middleware import register_middleware
from vidrelay.config.settings import config, CONFIG_PATH
from vidrelay.core.logging import setup_logging
from vidrelay.core.state import state
from vidrelay.infra.redis import init_redis, close_redis

console = Console()

setup_logging(config.logging)

app = FastAPI(
    title=config.api.title,
    description=config.api.description,
    version=config.api.version,
    docs_url="/docs" if config.api.debug else None,
    redoc_url=None
)

register_error_handlers(app)
register_middleware(app)

# Routes (/proxy/url must be registered before /proxy/{encoded_url:path})
app.include_router(health.router, tags=["Health"])
app.include_router(site.router, tags=["Site"])
app.include_router(proxy.router, tags=["Proxy"])
app.include_router(innertube.router, tags=["InnerTube"])
app.include_router(ytdlp.router, tags=["yt-dlp"])

@app.on_event("startup")
async def startup_event():
    # Write a default config file on first start
    config_dir = os.path.dirname(CONFIG_PATH)
    if config_dir and not os.path.exists(config_dir):
        os.makedirs(config_dir, exist_ok=True)

    if not os.path.exists(CONFIG_PATH):
        config.save_to_file(CONFIG_PATH)

    state.redis = await init_redis()

    state.ytdlp_version = await get_ytdlp_service().version()
    console.print(f"[green]✓ yt-dlp {state.ytdlp_version}[/green]")

@app.on_event("shutdown")
async def shutdown_event():
    if state.http_client is not None:
        await state.http_client.aclose()
        state.http_client = None
    await close_redis()
