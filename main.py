import os
from contextlib import asynccontextmanager
from typing import Any, Dict, List, Optional

import structlog
from fastapi import Depends, FastAPI, Form, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, JSONResponse, PlainTextResponse, RedirectResponse
from pydantic import BaseModel, ConfigDict, Field
from pymongo.database import Database
from pymongo.errors import PyMongoError

import admin
import cart
import catalog
import database
import orders
from auth import (
    SESSION_COOKIE,
    SessionContext,
    authenticate,
    create_session,
    destroy_session,
    get_session,
    register_user,
    require_session,
)
from database import SESSION_TTL_MINUTES, ensure_indexes, get_db
from errors import ShopError
from schemas import Cart, Order, Product
from seed import ensure_admin_exists, seed_products

PUBLIC_DIR = os.getenv("PUBLIC_DIR", "public")

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    if database.db is not None:
        try:
            ensure_indexes(database.db)
            seed_products(database.db)
            ensure_admin_exists(database.db)
        except PyMongoError:
            logger.exception("startup_seed_failed")
    else:
        logger.warning("database_not_configured")
    yield


app = FastAPI(title="TrendPrints API", version="1.0.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# --------------------- Errors ---------------------

@app.exception_handler(ShopError)
async def shop_error_handler(request: Request, exc: ShopError):
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(status_code=400, content={"error": "Invalid request"})


@app.exception_handler(PyMongoError)
async def store_error_handler(request: Request, exc: PyMongoError):
    logger.error("store_error", path=request.url.path, error=str(exc)[:200])
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


# --------------------- Models ---------------------

class CartAddRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    product_id: Optional[str] = Field(None, alias="productId")
    name: Optional[str] = None
    price: Any = None
    image: Optional[str] = None
    size: Optional[str] = None


class CartRemoveRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    product_id: Optional[str] = Field(None, alias="productId")
    size: Optional[str] = None


class OrderRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    items: List[Any] = Field(default_factory=list)
    total: Any = None
    address: Optional[Dict[str, Any]] = None
    payment_method: Optional[str] = Field(None, alias="paymentMethod")


class StatusUpdateRequest(BaseModel):
    status: Any = None


def admin_context(db: Database = Depends(get_db), session: Optional[SessionContext] = Depends(get_session)):
    return admin.require_admin(db, session)


def _user_id(session: Optional[SessionContext]) -> Optional[str]:
    return session.user_id if session else None


# --------------------- Pages ---------------------

def _page(name: str):
    path = os.path.join(PUBLIC_DIR, f"{name}.html")
    if os.path.isfile(path):
        return FileResponse(path)
    return None


@app.get("/")
def root():
    return _page("index") or {"message": "TrendPrints API is running"}


@app.get("/support")
def support_page():
    return _page("support") or PlainTextResponse("Not found", status_code=404)


@app.get("/signup")
def signup_page():
    return _page("signup") or PlainTextResponse("Not found", status_code=404)


@app.get("/login")
def login_page():
    return _page("login") or PlainTextResponse("Not found", status_code=404)


@app.get("/dashboard")
def dashboard_page(session: Optional[SessionContext] = Depends(get_session)):
    if session is None:
        return RedirectResponse("/login", status_code=302)
    return _page("dashboard") or PlainTextResponse(f"Welcome, {session.username}")


# --------------------- Auth (form posts, plain-text errors) ---------------------

def _start_session(db: Database, user: Dict[str, Any]) -> RedirectResponse:
    token = create_session(db, user)
    response = RedirectResponse(f"/dashboard?user={user['username']}", status_code=302)
    response.set_cookie(
        SESSION_COOKIE,
        token,
        max_age=SESSION_TTL_MINUTES * 60,
        httponly=True,
        samesite="lax",
    )
    return response


@app.post("/signup")
def signup(username: str = Form(""), email: str = Form(""), password: str = Form(""),
           db: Database = Depends(get_db)):
    try:
        user = register_user(db, username.strip(), email.strip(), password)
        return _start_session(db, user)
    except ShopError as e:
        return PlainTextResponse(e.message)
    except PyMongoError:
        logger.exception("signup_failed")
        return PlainTextResponse("Signup error")


@app.post("/login")
def login(email: str = Form(""), password: str = Form(""), db: Database = Depends(get_db)):
    try:
        user = authenticate(db, email.strip(), password)
        return _start_session(db, user)
    except ShopError as e:
        return PlainTextResponse(e.message)
    except PyMongoError:
        logger.exception("login_failed")
        return PlainTextResponse("Login error")


@app.get("/logout")
def logout(request: Request, db: Database = Depends(get_db)):
    destroy_session(db, request.cookies.get(SESSION_COOKIE))
    response = RedirectResponse("/", status_code=302)
    response.delete_cookie(SESSION_COOKIE)
    return response


@app.get("/api/check-session")
def check_session(session: Optional[SessionContext] = Depends(get_session)):
    return {
        "loggedIn": session is not None,
        "username": session.username if session else None,
        "isAdmin": bool(session and session.is_admin),
    }


# --------------------- Products ---------------------

@app.get("/api/products", response_model=List[Product])
def list_products():
    return catalog.list_products(database.db)


@app.get("/api/products/{product_id}", response_model=Product)
def get_product(product_id: str, db: Database = Depends(get_db)):
    return catalog.get_product(db, product_id)


# --------------------- Cart ---------------------

@app.get("/api/cart", response_model=Cart, response_model_exclude_none=True)
def get_cart(session: Optional[SessionContext] = Depends(get_session)):
    if session is None:
        return Cart()
    return cart.get_cart(get_db(), session.user_id)


@app.post("/api/cart/add", response_model=Cart)
def add_to_cart(body: CartAddRequest, db: Database = Depends(get_db),
                session: SessionContext = Depends(require_session)):
    return cart.add_item(db, session.user_id, body.product_id, body.name, body.price, body.image, body.size)


@app.post("/api/cart/remove", response_model=Cart)
def remove_from_cart(body: CartRemoveRequest, db: Database = Depends(get_db),
                     session: SessionContext = Depends(require_session)):
    return cart.remove_item(db, session.user_id, body.product_id, body.size)


# --------------------- Orders ---------------------

@app.post("/api/orders")
def create_order(body: OrderRequest, db: Database = Depends(get_db),
                 session: Optional[SessionContext] = Depends(get_session)):
    order_id = orders.place_order(db, _user_id(session), body.items, body.total, body.address, body.payment_method)
    return {"success": True, "orderId": order_id}


@app.get("/api/my-orders", response_model=List[Order])
def my_orders(session: Optional[SessionContext] = Depends(get_session)):
    return orders.list_orders(database.db, _user_id(session))


# --------------------- Admin ---------------------

@app.get("/api/admin/orders", response_model=List[Order])
def admin_orders(ctx: admin.AdminContext = Depends(admin_context)):
    return admin.list_all_orders(ctx)


@app.put("/api/admin/orders/{order_id}", response_model=Order)
def admin_update_order(order_id: str, body: StatusUpdateRequest, ctx: admin.AdminContext = Depends(admin_context)):
    return admin.update_order_status(ctx, order_id, body.status)


@app.get("/api/admin/stats")
def admin_stats(ctx: admin.AdminContext = Depends(admin_context)):
    return admin.get_stats(ctx)


if __name__ == "__main__":
    import uvicorn
    port = int(os.getenv("PORT", 8000))
    uvicorn.run(app, host="0.0.0.0", port=port)
