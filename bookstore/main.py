import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from bookstore.config import settings
from bookstore.database import create_db_and_tables
from bookstore.exceptions import BookstoreError, PartialCheckoutFailure
from bookstore.routes import cart, checkout, orders

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    # Run DB creation ONLY in local, alembic owns the schema elsewhere
    if settings.ENV == "local":
        create_db_and_tables()
    yield


app = FastAPI(title="Bookstore API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:5173",
        "http://localhost:3000",
        "http://127.0.0.1:5173",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(BookstoreError)
async def bookstore_error_handler(request: Request, exc: BookstoreError):
    body = {"detail": exc.detail}
    if isinstance(exc, PartialCheckoutFailure):
        body["order_id"] = exc.order_id
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.detail}")
    return JSONResponse(status_code=exc.status_code, content=body)


app.include_router(cart.router, prefix="/cart", tags=["Cart"])
app.include_router(checkout.router, prefix="/checkout", tags=["Checkout"])
app.include_router(orders.router, prefix="/orders", tags=["Orders"])


@app.get("/")
def root():
    return {
        "cart": [
            "/cart", "/cart/add", "/cart/update", "/cart/remove/{book_id}",
            "/cart/clear", "/cart/check", "/cart/check-all"
        ],
        "checkout": [
            "/checkout", "/checkout/address", "/checkout/resume",
            "/checkout/orders/{order_id}/confirm-payment"
        ],
        "orders": [
            "/orders", "/orders/{order_id}", "/orders/{order_id}/shipping",
            "/orders/{order_id}/cancel"
        ]
    }
