"""
Mock OAuth 2.0 Authorization Server: authorization code + PKCE, refresh token rotation,
and a 10% injected server_error on token/userinfo. All state in memory.
Port 3001; the exercise client runs on :5173.
"""
import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware

from oauth_server.audit import router as audit_router
from oauth_server.authorize import router as authorize_router
from oauth_server.config import CORS_ORIGINS, HOST, PORT, SWEEP_INTERVAL_SECONDS
from oauth_server.database import init_db
from oauth_server.errors import OAuthError, oauth_error_handler
from oauth_server.store import TokenStore, get_store
from oauth_server.token_endpoint import router as token_router
from oauth_server.userinfo import router as userinfo_router
from oauth_server.well_known import router as well_known_router

logger = logging.getLogger(__name__)


async def sweep_expired(store: TokenStore, interval: float) -> None:
    """Purge expired codes and access tokens every `interval` seconds until cancelled."""
    while True:
        await asyncio.sleep(interval)
        store.purge_expired()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create audit tables; run the expiry sweep while the app is up."""
    init_db()
    task = None
    if SWEEP_INTERVAL_SECONDS > 0:
        task = asyncio.create_task(sweep_expired(get_store(), SWEEP_INTERVAL_SECONDS))
        logger.info("Expiry sweep every %ss", SWEEP_INTERVAL_SECONDS)
    yield
    if task is not None:
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass


app = FastAPI(title="Mock OAuth Server", version="1.0.0", lifespan=lifespan)
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["*"],
)
app.add_exception_handler(OAuthError, oauth_error_handler)
app.include_router(authorize_router, tags=["authorize"])
app.include_router(token_router, tags=["token"])
app.include_router(userinfo_router, tags=["userinfo"])
app.include_router(well_known_router, tags=["well-known"])
app.include_router(audit_router, tags=["audit"])


@app.get("/health")
def health(store: TokenStore = Depends(get_store)):
    """Health check endpoint, with live record counts."""
    return {"status": "ok", "service": "oauth_server", "store": store.counts()}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "oauth_server.main:app",
        host=HOST,
        port=PORT,
        reload=True,
    )
