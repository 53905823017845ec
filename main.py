import logging
import os
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import List

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from pymongo.errors import DuplicateKeyError

import database
from auth import (
    Identity,
    get_current_identity,
    hash_password,
    issue_credential,
    require_admin,
    verify_password,
)
from database import create_document, find_by_id, get_collection, get_documents, save_document, serialize_doc
from errors import Forbidden, NotFound, Unauthorized, ValidationFailure, register_error_handlers
from schemas import (
    LoginBody,
    Order as OrderSchema,
    OrderCreateBody,
    OrderItem,
    PaymentResult,
    Product as ProductSchema,
    ProductCreateBody,
    ProductUpdateBody,
    ProfileUpdateBody,
    RegisterBody,
    User as UserSchema,
    apply_product_fields,
)

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    database.connect_db()
    logger.info("Closet Cater API started")
    yield
    logger.info("Shutting down server...")
    database.disconnect_db()


app = FastAPI(title="Closet Cater API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_error_handlers(app)


# ----------------------- Utils -----------------------
def public_user(doc: dict) -> dict:
    user = serialize_doc(doc)
    return {"id": user["id"], "name": user["name"], "email": user["email"], "isAdmin": user.get("isAdmin", False)}


def with_token(doc: dict) -> dict:
    user = public_user(doc)
    return {"token": issue_credential(user["id"], user["isAdmin"]), **user}


def register_user(body: RegisterBody, is_admin: bool) -> dict:
    users = get_collection("user")
    if users.find_one({"email": body.email}):
        raise ValidationFailure("User already exists")
    user = UserSchema(
        name=body.name,
        email=body.email,
        password_hash=hash_password(body.password),
        isAdmin=is_admin,
    )
    try:
        user_id = create_document("user", user)
    except DuplicateKeyError:
        raise ValidationFailure("User already exists")
    return find_by_id("user", user_id)


def get_order_for(order_id: str, identity: Identity) -> dict:
    order = find_by_id("order", order_id)
    if not order:
        raise NotFound("Order not found")
    if order.get("user") != identity.id and not identity.isAdmin:
        raise Forbidden("Not authorized to view this order")
    return order


# ----------------------- Health -----------------------
@app.get("/")
def root():
    return {"message": "Closet Cater API is running"}


# ----------------------- Auth -----------------------
@app.post("/api/auth/login")
def login(body: LoginBody):
    user = get_collection("user").find_one({"email": body.email})
    if not user or not verify_password(body.password, user.get("password_hash")):
        logger.info("Failed login for %s", body.email)
        raise Unauthorized("Invalid email or password")
    return with_token(user)


@app.post("/api/auth/register", status_code=201)
def register_admin(body: RegisterBody):
    user = register_user(body, is_admin=True)
    logger.info("Admin created: %s", body.email)
    return {"message": "Admin created successfully", **with_token(user)}


# ----------------------- Users -----------------------
@app.post("/api/users", status_code=201)
def register_customer(body: RegisterBody):
    user = register_user(body, is_admin=False)
    return {"message": "User registered successfully", **with_token(user)}


@app.get("/api/users/profile")
def get_profile(identity: Identity = Depends(get_current_identity)):
    user = find_by_id("user", identity.id)
    if not user:
        raise NotFound("User not found")
    return public_user(user)


@app.put("/api/users/profile")
def update_profile(body: ProfileUpdateBody, identity: Identity = Depends(get_current_identity)):
    user = find_by_id("user", identity.id)
    if not user:
        raise NotFound("User not found")
    if body.email and body.email != user["email"]:
        if get_collection("user").find_one({"email": body.email}):
            raise ValidationFailure("User already exists")
        user["email"] = body.email
    if body.name:
        user["name"] = body.name
    if body.password:
        user["password_hash"] = hash_password(body.password)
    try:
        saved = save_document("user", user)
    except DuplicateKeyError:
        raise ValidationFailure("User already exists")
    return with_token(saved)


@app.get("/api/users")
def list_users(identity: Identity = Depends(require_admin)):
    return [public_user(u) for u in get_documents("user")]


# ----------------------- Products -----------------------
@app.get("/api/products")
def list_products():
    return [serialize_doc(p) for p in get_documents("product")]


@app.get("/api/products/{product_id}")
def get_product(product_id: str):
    product = find_by_id("product", product_id)
    if not product:
        raise NotFound("Product not found")
    return serialize_doc(product)


@app.post("/api/products", status_code=201)
def create_product(body: ProductCreateBody, identity: Identity = Depends(require_admin)):
    fields = apply_product_fields({}, body.model_dump(), fill_defaults=True)
    product = ProductSchema(**fields, numReviews=0, user=identity.id)
    pid = create_document("product", product)
    logger.info("Product %s created by %s", pid, identity.id)
    return serialize_doc(find_by_id("product", pid))


@app.put("/api/products/{product_id}")
def update_product(product_id: str, body: ProductUpdateBody, identity: Identity = Depends(require_admin)):
    product = find_by_id("product", product_id)
    if not product:
        raise NotFound("Product not found")
    apply_product_fields(product, body.model_dump(), fill_defaults=False)
    updated = save_document("product", product)
    logger.info("Product %s updated by %s", product_id, identity.id)
    return serialize_doc(updated)


# ----------------------- Orders -----------------------
@app.post("/api/orders", status_code=201)
def create_order(body: OrderCreateBody, identity: Identity = Depends(get_current_identity)):
    if not body.orderItems:
        raise ValidationFailure("No order items")
    items: List[OrderItem] = []
    for item in body.orderItems:
        product = find_by_id("product", item.product)
        if not product:
            raise NotFound("Product not found")
        # price is copied so later catalog changes do not touch the order
        items.append(OrderItem(
            product=str(product["_id"]),
            name=product.get("name", ""),
            image=product.get("image"),
            qty=item.qty,
            price=float(product.get("price") or 0),
        ))
    order = OrderSchema(
        user=identity.id,
        orderItems=items,
        shippingAddress=body.shippingAddress,
        paymentMethod=body.paymentMethod,
        totalPrice=round(sum(i.qty * i.price for i in items), 2),
    )
    oid = create_document("order", order)
    logger.info("Order %s created by %s", oid, identity.id)
    return serialize_doc(find_by_id("order", oid))


@app.get("/api/orders/myorders")
def list_my_orders(identity: Identity = Depends(get_current_identity)):
    return [serialize_doc(o) for o in get_documents("order", {"user": identity.id})]


@app.get("/api/orders")
def list_orders(identity: Identity = Depends(require_admin)):
    return [serialize_doc(o) for o in get_documents("order")]


@app.get("/api/orders/{order_id}")
def get_order(order_id: str, identity: Identity = Depends(get_current_identity)):
    return serialize_doc(get_order_for(order_id, identity))


@app.put("/api/orders/{order_id}/pay")
def pay_order(order_id: str, body: PaymentResult, identity: Identity = Depends(get_current_identity)):
    order = get_order_for(order_id, identity)
    order["isPaid"] = True
    order["paidAt"] = datetime.now(timezone.utc)
    order["paymentResult"] = body.model_dump()
    logger.info("Order %s paid", order_id)
    return serialize_doc(save_document("order", order))


if __name__ == "__main__":
    import uvicorn
    port = int(os.getenv("PORT", 8000))
    uvicorn.run(app, host="0.0.0.0", port=port)
