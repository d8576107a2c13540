from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger

from budget_ledger.api.routes import router as api_router
from budget_ledger.core.config import AppConfig
from budget_ledger.core.errors import LedgerError
from budget_ledger.db.session import init_db

app_config = AppConfig()
app = FastAPI(title=app_config.description, version=app_config.version)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_router)


@app.exception_handler(LedgerError)
async def ledger_error_handler(request: Request, exc: LedgerError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.warning("Request failed", path=request.url.path, error=exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.on_event("startup")
async def on_startup() -> None:
    await init_db()


@app.get("/")
async def root():
    return {"message": "budget-ledger up", "version": app_config.version}
