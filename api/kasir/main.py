from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from kasir.core.config import settings
from kasir.core.exceptions import KasirError
from kasir.core.logging import configure_logging
from kasir.db.session import get_db, init_db
from kasir.schemas.inventory import ProductOut
from kasir.schemas.sales import CheckoutRequest, SalesSummary, TransactionOut
from kasir.services.checkout import checkout
from kasir.services.deps import ReportWindow, report_window
from kasir.services.inventory import get_product, get_transaction, list_products
from kasir.services.reports import sales_summary


@asynccontextmanager
async def lifespan(_: FastAPI):
    configure_logging(settings.log_level)
    if settings.create_schema:
        init_db()
    yield


app = FastAPI(title="Kasir API", version="0.1.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(KasirError)
async def kasir_error_handler(_: Request, exc: KasirError):
    headers = {"Retry-After": "1"} if exc.retryable else None
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.to_dict()}, headers=headers)


@app.get("/health")
def health():
    return {"status": "ok"}


@app.post("/transactions/checkout", response_model=TransactionOut, status_code=status.HTTP_201_CREATED)
def create_checkout(payload: CheckoutRequest, db: Session = Depends(get_db)):
    return checkout(db, payload.items)


@app.get("/transactions/{transaction_id}", response_model=TransactionOut)
def read_transaction(transaction_id: int, db: Session = Depends(get_db)):
    return get_transaction(db, transaction_id)


@app.get("/products", response_model=list[ProductOut])
def read_products(db: Session = Depends(get_db)):
    return list_products(db)


@app.get("/products/{product_id}", response_model=ProductOut)
def read_product(product_id: int, db: Session = Depends(get_db)):
    return get_product(db, product_id)


@app.get("/report/today", response_model=SalesSummary)
def report_today(db: Session = Depends(get_db)):
    return sales_summary(db)


@app.get("/report", response_model=SalesSummary)
def report(window: ReportWindow = Depends(report_window), db: Session = Depends(get_db)):
    return sales_summary(db, window.start, window.end)
