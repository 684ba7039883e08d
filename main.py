import logging
from typing import Optional

from fastapi import APIRouter, Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse
from pydantic import EmailStr
from pymongo import DESCENDING
from pymongo.errors import DuplicateKeyError, PyMongoError

import config
from auth import authenticate_caller, create_access_token, get_database, require_admin, verify_token
from database import Database, connect, serialize
from errors import Conflict, Forbidden, NotFound, register_error_handlers
from payments import StripeGateway, get_gateway
from schemas import (
    CartItem,
    ClassStatus,
    FeedbackRequest,
    Payment,
    PaymentIntentRequest,
    Role,
    SportsClass,
    User,
)

logger = logging.getLogger(__name__)

router = APIRouter()


# ----- Utilities -----

def insert_result(inserted_id: str) -> dict:
    return {"acknowledged": True, "insertedId": inserted_id}


def update_result(res) -> dict:
    return {"acknowledged": res.acknowledged, "matchedCount": res.matched_count, "modifiedCount": res.modified_count}


def delete_result(res) -> dict:
    return {"acknowledged": res.acknowledged, "deletedCount": res.deleted_count}


def serialize_all(docs) -> list:
    return [serialize(d) for d in docs]


def own_email(email: Optional[str], claims: dict) -> bool:
    return email == claims.get("email")


# ----- Health -----

@router.get("/", response_class=PlainTextResponse)
def root():
    return "Sports Plus is Running"


@router.get("/test")
def test_database(db: Database = Depends(get_database)):
    response = {"backend": "Running", "database": "Connected"}
    try:
        db.ping()
        response["collections"] = db.collection_names()
    except PyMongoError:
        response["database"] = "Not Available"
    return response


# ----- Tokens -----

@router.post("/jwt")
def issue_token(claims: dict = Depends(authenticate_caller)):
    return {"token": create_access_token(claims)}


# ----- Users -----

@router.get("/users", dependencies=[Depends(require_admin)])
def list_users(db: Database = Depends(get_database)):
    return serialize_all(db.users.find())


@router.post("/users")
def create_user(user: User, db: Database = Depends(get_database)):
    if db.users.find_one({"email": user.email}):
        return {"message": "user already exists"}
    try:
        inserted_id = db.users.insert(user.model_dump(exclude_none=True))
    except DuplicateKeyError:
        return {"message": "user already exists"}
    return insert_result(inserted_id)


@router.get("/users/admin/{email}")
def is_admin(email: EmailStr, claims: dict = Depends(verify_token), db: Database = Depends(get_database)):
    if not own_email(email, claims):
        return {"admin": False}
    user = db.users.find_one({"email": email})
    return {"admin": bool(user) and user.get("role") == Role.admin.value}


@router.get("/users/instructor/{email}")
def is_instructor(email: EmailStr, claims: dict = Depends(verify_token), db: Database = Depends(get_database)):
    if not own_email(email, claims):
        return {"instructor": False}
    user = db.users.find_one({"email": email})
    return {"instructor": bool(user) and user.get("role") == Role.instructor.value}


@router.get("/allUsers/{role}")
def users_by_role(role: Role, db: Database = Depends(get_database)):
    return serialize_all(db.users.find({"role": role.value}))


def set_role(db: Database, id: str, role: Role) -> dict:
    res = db.users.update(id, {"role": role.value})
    if res.matched_count == 0:
        raise NotFound("User not found")
    return update_result(res)


@router.patch("/users/admin/{id}")
def make_admin(id: str, db: Database = Depends(get_database)):
    return set_role(db, id, Role.admin)


@router.patch("/users/instructor/{id}")
def make_instructor(id: str, db: Database = Depends(get_database)):
    return set_role(db, id, Role.instructor)


# ----- Classes -----

@router.get("/allClasses/{status}")
def classes_by_status(status: ClassStatus, db: Database = Depends(get_database)):
    return serialize_all(db.classes.find({"status": status.value}))


@router.post("/classes")
def create_class(payload: SportsClass, db: Database = Depends(get_database)):
    inserted_id = db.classes.insert(payload.model_dump())
    return insert_result(inserted_id)


@router.get("/myclasses")
def my_classes(email: Optional[EmailStr] = None, db: Database = Depends(get_database)):
    query = {"email": email} if email else {}
    return serialize_all(db.classes.find(query))


@router.get("/classes", dependencies=[Depends(require_admin)])
def list_classes(db: Database = Depends(get_database)):
    return serialize_all(db.classes.find())


@router.patch("/classes/{id}")
def set_class_status(id: str, status: ClassStatus, db: Database = Depends(get_database)):
    res = db.classes.update(id, {"status": status.value})
    if res.matched_count == 0:
        raise NotFound("Class not found")
    return update_result(res)


@router.patch("/all-classes/seats/{id}")
def enroll_student(id: str, db: Database = Depends(get_database)):
    updated = db.classes.take_seat(id)
    if updated is None:
        if db.classes.get(id) is None:
            logger.info("Seat update for missing class %s", id)
            raise NotFound("Class not found")
        logger.info("Class %s is sold out", id)
        raise Conflict("No seats available")
    logger.info("Seat taken in class %s, %s left", id, updated["seats"])
    return {
        "acknowledged": True,
        "matchedCount": 1,
        "modifiedCount": 1,
        "seats": updated["seats"],
        "student": updated["student"],
    }


@router.get("/popularClass/{status}")
def popular_classes(status: ClassStatus, db: Database = Depends(get_database)):
    return serialize_all(db.classes.find({"status": status.value}, sort=[("student", DESCENDING)]))


@router.put("/addClasses/{id}")
def add_feedback(id: str, payload: FeedbackRequest, db: Database = Depends(get_database)):
    res = db.classes.push(id, "feedback", payload.feedback)
    if res.matched_count == 0:
        raise NotFound("Class not found")
    return update_result(res)


# ----- Cart -----

@router.post("/selectClass")
def select_class(item: CartItem, db: Database = Depends(get_database)):
    inserted_id = db.carts.insert(item.model_dump())
    logger.info("Class %s added to cart of %s", item.class_id, item.email)
    return insert_result(inserted_id)


@router.get("/selectClass")
def my_cart(email: Optional[EmailStr] = None, claims: dict = Depends(verify_token), db: Database = Depends(get_database)):
    if not email:
        return []
    if not own_email(email, claims):
        raise Forbidden()
    return serialize_all(db.carts.find({"email": email}))


@router.get("/selectClass/{id}")
def get_cart_item(id: str, db: Database = Depends(get_database)):
    item = db.carts.get(id)
    if item is None:
        raise NotFound("Cart item not found")
    return serialize(item)


@router.delete("/selectClass/{id}")
def remove_cart_item(id: str, db: Database = Depends(get_database)):
    res = db.carts.delete(id)
    if res.deleted_count == 0:
        raise NotFound("Cart item not found")
    return delete_result(res)


# ----- Payments -----

@router.post("/create-payment-intent", dependencies=[Depends(verify_token)])
def create_payment_intent(payload: PaymentIntentRequest, gateway: StripeGateway = Depends(get_gateway)):
    return {"clientSecret": gateway.create_card_intent(payload.price)}


@router.post("/payments")
def checkout(payment: Payment, claims: dict = Depends(verify_token), db: Database = Depends(get_database)):
    if not own_email(payment.email, claims):
        raise Forbidden()
    already_enrolled = {"message": "Already Enrolled This Class"}
    if db.payments.find_one({"id": payment.id}):
        return already_enrolled

    cart_item_id = payment.cart_reference
    cart_item = db.carts.get(cart_item_id)
    if cart_item is not None and not own_email(cart_item.get("email"), claims):
        raise Forbidden()

    document = payment.model_dump()
    document["cart_item_id"] = cart_item_id
    try:
        inserted_id = db.payments.insert(document)
    except DuplicateKeyError:
        return already_enrolled
    try:
        deleted = db.carts.delete(cart_item_id)
    except PyMongoError:
        logger.warning("Removing payment %s after failed cart delete for %s", payment.id, cart_item_id)
        db.payments.delete(inserted_id)
        raise
    logger.info("Payment %s recorded for %s", payment.id, payment.email)
    return {"insertResult": insert_result(inserted_id), "deleteResult": delete_result(deleted)}


@router.get("/payments")
def my_payments(email: Optional[EmailStr] = None, claims: dict = Depends(verify_token), db: Database = Depends(get_database)):
    if not email:
        return []
    if not own_email(email, claims):
        raise Forbidden()
    return serialize_all(db.payments.find({"email": email}, sort=[("date", DESCENDING)]))


# ----- Application -----

def create_app(database: Optional[Database] = None, gateway: Optional[StripeGateway] = None) -> FastAPI:
    app = FastAPI(title="Sports Plus API")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_error_handlers(app)
    app.include_router(router)

    app.state.database = database
    app.state.gateway = gateway or StripeGateway()

    @app.on_event("startup")
    def open_database() -> None:
        config.validate_runtime_config()
        if app.state.database is None:
            app.state.database = connect()
        try:
            app.state.database.ping()
            app.state.database.ensure_indexes()
            logger.info("Pinged MongoDB deployment, connection is ready")
        except PyMongoError:
            logger.exception("MongoDB is not reachable. Check DATABASE_URL.")

    @app.on_event("shutdown")
    def close_database() -> None:
        if app.state.database is not None:
            app.state.database.close()
            logger.info("MongoDB connection closed")

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    logging.basicConfig(level=config.LOG_LEVEL)
    uvicorn.run(app, host="0.0.0.0", port=config.PORT)
