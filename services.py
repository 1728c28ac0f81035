"""
Entity services.

Every entity shares one protocol (list, get, create, partial update) keyed by
its domain id, the `<entity>_id` string that mirrors the document's ObjectId.
Subclasses only declare where they live, what they reference, and which
defaults they fill in.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel

from auth import (
    AuthenticationError,
    Identity,
    generate_tokens,
    hash_password,
    verify_password,
)
from database import Store, new_object_id, serialize_doc
from schemas import LoginRequest, SignupRequest

logger = logging.getLogger(__name__)

PAYMENT_TERM = timedelta(days=30)
LOGIN_FAILED = "login or password is incorrect"


class ServiceError(Exception):
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(ServiceError):
    status_code = 400


class ReferenceNotFound(ServiceError):
    status_code = 400


class NotFound(ServiceError):
    status_code = 404


class Conflict(ServiceError):
    status_code = 409


@dataclass
class Page:
    total_count: int
    page: int
    page_size: int
    items: List[dict] = field(default_factory=list)


def utcnow() -> datetime:
    # MongoDB keeps millisecond precision
    now = datetime.now(timezone.utc)
    return now.replace(microsecond=now.microsecond // 1000 * 1000)


class EntityService:
    collection: str = ""
    id_field: str = ""
    label: str = "document"
    # field -> (collection holding it as domain id, message when missing)
    references: Dict[str, Tuple[str, str]] = {}

    def __init__(self, store: Store):
        self.store = store

    def present(self, doc: dict) -> dict:
        return serialize_doc(doc)

    def list(self, page: int = 1, page_size: int = 10,
             filter_dict: Optional[dict] = None) -> Page:
        if page < 1 or page_size < 1:
            raise ValidationError("page and page size must be positive")
        total = self.store.count_documents(self.collection, filter_dict)
        docs = self.store.find_documents(
            self.collection, filter_dict, skip=(page - 1) * page_size, limit=page_size
        )
        return Page(total, page, page_size, [self.present(d) for d in docs])

    def get(self, domain_id: str) -> dict:
        doc = self.store.find_document(self.collection, {self.id_field: domain_id})
        if doc is None:
            raise NotFound(f"{self.label} was not found")
        return self.present(doc)

    def resolve_references(self, data: Dict[str, Any]) -> Dict[str, dict]:
        resolved = {}
        for ref_field, (collection, message) in self.references.items():
            value = data.get(ref_field)
            if value is None:
                continue
            doc = self.store.find_document(collection, {ref_field: value})
            if doc is None:
                raise ReferenceNotFound(message)
            resolved[ref_field] = doc
        return resolved

    def apply_defaults(self, document: dict, resolved: Dict[str, dict], now: datetime) -> None:
        pass

    def validate_update(self, fields: Dict[str, Any], now: datetime) -> None:
        pass

    def create(self, payload: BaseModel) -> dict:
        data = payload.model_dump()
        resolved = self.resolve_references(data)

        now = utcnow()
        oid = new_object_id()
        document = {"_id": oid, self.id_field: str(oid), **data}
        document["created_at"] = now
        document["updated_at"] = now
        self.apply_defaults(document, resolved, now)

        self.store.insert_document(self.collection, document)
        logger.info("Created %s %s", self.label, document[self.id_field])
        return self.present(document)

    def update(self, domain_id: str, payload: BaseModel) -> dict:
        fields = {
            key: value
            for key, value in payload.model_dump(exclude_unset=True).items()
            if value is not None
        }
        now = utcnow()
        self.validate_update(fields, now)
        self.resolve_references(fields)
        fields["updated_at"] = now

        doc = self.store.update_document(self.collection, {self.id_field: domain_id}, fields)
        if doc is None:
            logger.info("Update of unknown %s %s", self.label, domain_id)
            raise NotFound(f"{self.label} was not found")
        return self.present(doc)


class MenuService(EntityService):
    collection = "menus"
    id_field = "menu_id"
    label = "menu"

    def validate_update(self, fields, now):
        start, end = fields.get("start_date"), fields.get("end_date")
        if start is not None and end is not None:
            if not (start < now < end):
                raise ValidationError("please retype the time")
        elif start is not None or end is not None:
            raise ValidationError("start_date and end_date must be updated together")


class FoodService(EntityService):
    collection = "foods"
    id_field = "food_id"
    label = "food item"
    references = {"menu_id": ("menus", "menu was not found")}


class TableService(EntityService):
    collection = "tables"
    id_field = "table_id"
    label = "table"


class OrderService(EntityService):
    collection = "orders"
    id_field = "order_id"
    label = "order"
    references = {"table_id": ("tables", "table was not found")}

    def apply_defaults(self, document, resolved, now):
        if document.get("order_date") is None:
            document["order_date"] = now


class OrderItemService(EntityService):
    collection = "orderItems"
    id_field = "order_item_id"
    label = "order item"
    references = {
        "order_id": ("orders", "order was not found"),
        "food_id": ("foods", "food item was not found"),
    }

    def apply_defaults(self, document, resolved, now):
        if document.get("unit_price") is None:
            document["unit_price"] = resolved["food_id"].get("price")

    def list_by_order(self, order_id: str) -> List[dict]:
        docs = self.store.find_documents(self.collection, {"order_id": order_id})
        return [self.present(d) for d in docs]


class InvoiceService(EntityService):
    collection = "invoices"
    id_field = "invoice_id"
    label = "invoice"
    references = {"order_id": ("orders", "order was not found")}

    def apply_defaults(self, document, resolved, now):
        if document.get("payment_due") is None:
            document["payment_due"] = now + PAYMENT_TERM


class NoteService(EntityService):
    collection = "notes"
    id_field = "note_id"
    label = "note"


class UserService(EntityService):
    collection = "users"
    id_field = "user_id"
    label = "user"
    # Never returned by reads; session tokens only go back to signup/login
    hidden_fields = ("password", "token", "refresh_token")

    def present(self, doc):
        d = serialize_doc(doc)
        for name in self.hidden_fields:
            d.pop(name, None)
        return d

    def present_session(self, doc: dict) -> dict:
        d = self.present(doc)
        d["token"] = doc["token"]
        d["refresh_token"] = doc["refresh_token"]
        return d

    def signup(self, payload: SignupRequest) -> dict:
        if self.store.count_documents(self.collection, {"email": payload.email}):
            raise Conflict("email already exists")
        if self.store.count_documents(self.collection, {"phone": payload.phone}):
            raise Conflict("phone number already exists")

        now = utcnow()
        oid = new_object_id()
        user = payload.model_dump()
        user["password"] = hash_password(payload.password)
        user.update({"_id": oid, "user_id": str(oid), "created_at": now, "updated_at": now})
        user["token"], user["refresh_token"] = generate_tokens(
            user["email"], user["first_name"], user["last_name"], user["user_id"]
        )

        self.store.insert_document(self.collection, user)
        logger.info("Signed up user %s", user["email"])
        return self.present_session(user)

    def login(self, payload: LoginRequest) -> dict:
        found = self.store.find_document(self.collection, {"email": payload.email})
        digest = found.get("password") if found else None
        if not digest or not verify_password(payload.password, digest):
            logger.info("Failed login for %s", payload.email)
            raise AuthenticationError(LOGIN_FAILED)

        token, refresh_token = generate_tokens(
            found["email"], found["first_name"], found["last_name"], found["user_id"]
        )
        updated = self.store.update_document(
            self.collection,
            {"user_id": found["user_id"]},
            {"token": token, "refresh_token": refresh_token, "updated_at": utcnow()},
        )
        if updated is None:
            logger.info("User %s vanished during login", found["email"])
            raise AuthenticationError(LOGIN_FAILED)
        logger.info("User %s logged in", found["email"])
        return self.present_session(updated)

    def logout(self, identity: Identity) -> dict:
        logger.info("User %s logged out", identity.email)
        return {"message": "Successfully logged out"}
