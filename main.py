import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Annotated, Optional, Type

from bson.errors import BSONError
from fastapi import APIRouter, Depends, FastAPI, Header, Query, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from pymongo.errors import PyMongoError

import config
from auth import AuthenticationError, Identity, validate_token
from database import Store, connect
from schemas import (
    FoodCreate, FoodUpdate,
    InvoiceCreate, InvoiceUpdate,
    LoginRequest,
    MenuCreate, MenuUpdate,
    NoteCreate, NoteUpdate,
    OrderCreate, OrderUpdate,
    OrderItemCreate, OrderItemUpdate,
    SignupRequest,
    TableCreate, TableUpdate,
)
from services import (
    EntityService,
    FoodService,
    InvoiceService,
    MenuService,
    NoteService,
    OrderItemService,
    OrderService,
    Page,
    ServiceError,
    TableService,
    UserService,
)

logging.basicConfig(level=config.LOG_LEVEL)
logger = logging.getLogger(__name__)

# Keeps (page - 1) * recordPerPage inside a BSON int64 skip
MAX_PAGE = 2 ** 53
MAX_RECORD_PER_PAGE = 100


@dataclass
class Services:
    store: Store
    users: UserService
    menus: MenuService
    foods: FoodService
    tables: TableService
    orders: OrderService
    order_items: OrderItemService
    invoices: InvoiceService
    notes: NoteService


def build_services(store: Store) -> Services:
    return Services(
        store=store,
        users=UserService(store),
        menus=MenuService(store),
        foods=FoodService(store),
        tables=TableService(store),
        orders=OrderService(store),
        order_items=OrderItemService(store),
        invoices=InvoiceService(store),
        notes=NoteService(store),
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    if getattr(app.state, "services", None) is not None:
        # Store was injected by the caller, who owns its lifetime
        yield
        return
    store = connect()
    # Refuse to start without a reachable store
    store.ping()
    logger.info("Connected to MongoDB database %r", config.DATABASE_NAME)
    app.state.services = build_services(store)
    yield
    store.close()
    logger.info("Disconnected from MongoDB")


# ===================== Dependencies =====================
def get_services(request: Request) -> Services:
    return request.app.state.services


def require_identity(token: Annotated[Optional[str], Header()] = None) -> Identity:
    if not token:
        raise AuthenticationError("no authorization header provided")
    return validate_token(token)


ServicesDep = Annotated[Services, Depends(get_services)]
IdentityDep = Annotated[Identity, Depends(require_identity)]


def page_params(
    page: int = Query(1, ge=1, le=MAX_PAGE),
    record_per_page: int = Query(10, ge=1, le=MAX_RECORD_PER_PAGE, alias="recordPerPage"),
) -> dict:
    return {"page": page, "page_size": record_per_page}


PageDep = Annotated[dict, Depends(page_params)]


def page_response(result: Page) -> dict:
    return {
        "total_count": result.total_count,
        "page": result.page,
        "record_per_page": result.page_size,
        "items": result.items,
    }


# ===================== Error handlers =====================
def service_error_handler(request: Request, exc: ServiceError):
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


def authentication_error_handler(request: Request, exc: AuthenticationError):
    return JSONResponse(status_code=status.HTTP_401_UNAUTHORIZED, content={"detail": exc.message})


def store_error_handler(request: Request, exc: Exception):
    logger.error("Store failure on %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content={"detail": "internal error"})


# ===================== Public Endpoints =====================
system_router = APIRouter()


@system_router.get("/")
def root():
    return {"message": "Restaurant Management API running"}


@system_router.get("/health")
def health(services: ServicesDep):
    services.store.ping()
    return {"status": "ok", "database": config.DATABASE_NAME}


# ===================== Users =====================
users_router = APIRouter(prefix="/users")


@users_router.post("/signup", status_code=status.HTTP_201_CREATED)
def signup(payload: SignupRequest, services: ServicesDep):
    return services.users.signup(payload)


@users_router.post("/login")
def login(payload: LoginRequest, services: ServicesDep):
    return services.users.login(payload)


@users_router.post("/logout")
def logout(identity: IdentityDep, services: ServicesDep):
    return services.users.logout(identity)


@users_router.get("")
def list_users(identity: IdentityDep, paging: PageDep, services: ServicesDep):
    return page_response(services.users.list(**paging))


@users_router.get("/{user_id}")
def get_user(user_id: str, services: ServicesDep):
    return services.users.get(user_id)


# ===================== Entity collections =====================
def crud_router(prefix: str, service_name: str,
                create_model: Type[BaseModel], update_model: Type[BaseModel]) -> APIRouter:
    """Build the list/get/create/update routes shared by every protected collection."""
    router = APIRouter(prefix=prefix, dependencies=[Depends(require_identity)])

    def service(services: Services) -> EntityService:
        return getattr(services, service_name)

    @router.get("")
    def list_documents(paging: PageDep, services: ServicesDep):
        return page_response(service(services).list(**paging))

    @router.get("/{domain_id}")
    def get_document(domain_id: str, services: ServicesDep):
        return service(services).get(domain_id)

    @router.post("", status_code=status.HTTP_201_CREATED)
    def create_document(payload: create_model, services: ServicesDep):
        return service(services).create(payload)

    @router.patch("/{domain_id}")
    def update_document(domain_id: str, payload: update_model, services: ServicesDep):
        return service(services).update(domain_id, payload)

    return router


order_items_router = APIRouter(prefix="/orderItems", dependencies=[Depends(require_identity)])


@order_items_router.get("/order/{order_id}")
def list_order_items_for_order(order_id: str, services: ServicesDep):
    return services.order_items.list_by_order(order_id)


def create_app(store: Optional[Store] = None) -> FastAPI:
    """Build the API. Without a store, one is connected when the app starts."""
    app = FastAPI(title="Restaurant Management API", version="1.0.0", lifespan=lifespan)
    if store is not None:
        app.state.services = build_services(store)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(ServiceError, service_error_handler)
    app.add_exception_handler(AuthenticationError, authentication_error_handler)
    app.add_exception_handler(PyMongoError, store_error_handler)
    app.add_exception_handler(BSONError, store_error_handler)

    app.include_router(system_router)
    app.include_router(users_router)
    app.include_router(crud_router("/menus", "menus", MenuCreate, MenuUpdate))
    app.include_router(crud_router("/foods", "foods", FoodCreate, FoodUpdate))
    app.include_router(crud_router("/tables", "tables", TableCreate, TableUpdate))
    app.include_router(crud_router("/orders", "orders", OrderCreate, OrderUpdate))
    app.include_router(order_items_router)
    app.include_router(crud_router("/orderItems", "order_items", OrderItemCreate, OrderItemUpdate))
    app.include_router(crud_router("/invoices", "invoices", InvoiceCreate, InvoiceUpdate))
    app.include_router(crud_router("/notes", "notes", NoteCreate, NoteUpdate))
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=config.PORT)
