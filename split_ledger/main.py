import logging
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from split_ledger.config import get_settings
from split_ledger.db.database import Base, engine, check_db_connection
from split_ledger.models import expenses, groups  # noqa: F401  (register tables)
from split_ledger.api.v1.routes.groups import router as groups_router
from split_ledger.api.v1.routes.expenses import router as expenses_router
from split_ledger.api.v1.routes.settlements import router as settlements_router
from split_ledger.utils.errors import SettlementError, SettlementErrorKind

logging.basicConfig(
    level=get_settings().log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s"
)
logger = logging.getLogger(__name__)

Base.metadata.create_all(bind=engine)

app = FastAPI(
    title="Split Ledger - Group Settlements",
    description="Tracks shared group expenses and computes who should pay whom",
    version="1.0.0"
)

ERROR_STATUS = {
    SettlementErrorKind.inconsistent_expense: 409,
    SettlementErrorKind.unknown_member: 409,
    SettlementErrorKind.invariant_violation: 500,
}


@app.exception_handler(SettlementError)
def settlement_error_handler(request: Request, exc: SettlementError):
    status_code = ERROR_STATUS[exc.kind]
    if status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    else:
        logger.warning(f"{request.method} {request.url.path} rejected: {exc.message}")
    return JSONResponse(status_code=status_code, content={"detail": exc.message, "kind": exc.kind.value})


app.include_router(groups_router)
app.include_router(expenses_router)
app.include_router(settlements_router)

@app.get("/")
def read_root():
    return {"message": "Split Ledger API", "version": "1.0.0"}

@app.get("/health")
def health_check():
    return {"status": "healthy" if check_db_connection() else "degraded"}
