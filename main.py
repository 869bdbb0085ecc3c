from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.exceptions import RequestValidationError
from chainxchange.core.config import settings
from chainxchange.core.database import init_db
from chainxchange.core.exceptions import MarketDataError
from chainxchange.core.logging import configure_logging
from chainxchange.core.scheduler import start_scheduler, stop_scheduler
from chainxchange.endpoints import cache_admin, crypto, home, portfolio, users, wallet
from chainxchange.middleware.exceptions import (
    global_exception_handler,
    http_exception_handler,
    market_data_exception_handler,
    validation_exception_handler,
)
from chainxchange.middleware.logging import RequestLoggingMiddleware
from chainxchange.services.market_data import MarketDataService
import logging

logger = logging.getLogger(__name__)

app = FastAPI(
    title=settings.PROJECT_NAME,
    version=settings.VERSION,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["*"],
)

app.add_middleware(GZipMiddleware, minimum_size=1000)
app.add_middleware(RequestLoggingMiddleware)

app.add_exception_handler(Exception, global_exception_handler)
app.add_exception_handler(HTTPException, http_exception_handler)
app.add_exception_handler(MarketDataError, market_data_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)

app.include_router(home.router, tags=["Home"])
app.include_router(users.router, prefix="/users", tags=["Users"])
app.include_router(crypto.router, prefix="/crypto", tags=["Crypto"])
app.include_router(portfolio.router, prefix="/portfolio", tags=["Portfolio"])
app.include_router(wallet.router, prefix="/payment", tags=["Wallet"])
app.include_router(cache_admin.router, prefix="/admin", tags=["Cache Admin"])

@app.on_event("startup")
async def startup_event():
    configure_logging()
    init_db()

    market_data = getattr(app.state, "market_data", None)
    if market_data is None:
        market_data = MarketDataService.create()
        app.state.market_data = market_data
    await market_data.connect()

    start_scheduler(market_data)
    logger.info(f"{settings.PROJECT_NAME} {settings.VERSION} started ({settings.ENVIRONMENT})")

@app.on_event("shutdown")
async def shutdown_event():
    stop_scheduler()
    market_data = getattr(app.state, "market_data", None)
    if market_data is not None:
        await market_data.close()
        app.state.market_data = None

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
