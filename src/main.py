import logging

from fastapi import FastAPI
from mangum import Mangum

from src.config.settings import settings
from src.routes import BacktestRouter, MarketDataRouter

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

app = FastAPI(title="Portfolio Backtester")

app.include_router(BacktestRouter.router, prefix="/tools", tags=["Backtester"])
app.include_router(MarketDataRouter.router, prefix="/market", tags=["Market Data"])

@app.get("/")
def read_root():
    return {"Health": "OK"}

handler = Mangum(app)
