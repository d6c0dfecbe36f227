import asyncio
import logging
import os
from contextlib import asynccontextmanager
from typing import List, Optional

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from auth import AuthError, AuthPending, AuthProvider, IdentityBootstrap
from catalog import CATALOG_SOURCE, CatalogService, find_item
from catalog_filter import ALL_TAGS, filter_items, tag_universe
from config import Settings, settings, validate_settings
from database import DocumentStore, TransientStoreError, connect
from expansion import DetailExpansion
from schemas import ContentItem, Identity
from visits import VisitCounter

logging.basicConfig(level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))
logger = logging.getLogger(__name__)


def configure(app: FastAPI, store: DocumentStore, config: Settings) -> None:
    """Attach the shared store and the services built on it. Called once per process."""
    app.state.settings = config
    app.state.store = store
    app.state.bootstrap = IdentityBootstrap(AuthProvider(store), timeout=config.AUTH_TIMEOUT_SECONDS)
    app.state.visit_counter = VisitCounter(store, config.APP_ID)
    app.state.catalog = CatalogService(store, config.APP_ID)
    # one expanded-item view per signed-in uid
    app.state.expansions = {}


@asynccontextmanager
async def lifespan(app: FastAPI):
    validate_settings(settings)
    configure(app, connect(settings.DATABASE_URL, settings.DATABASE_NAME), settings)
    bootstrap_task = asyncio.create_task(app.state.bootstrap.start(settings.INITIAL_AUTH_TOKEN))
    yield
    bootstrap_task.cancel()
    for expansion in app.state.expansions.values():
        expansion.close()
    app.state.bootstrap.close()


app = FastAPI(title="CloudVerify Demo API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# -----------------
# Dependencies
# -----------------

def require_identity(request: Request) -> Identity:
    """Block store access until sign-in has finished."""
    bootstrap: IdentityBootstrap = request.app.state.bootstrap
    try:
        return bootstrap.require()
    except AuthPending:
        raise HTTPException(status_code=503, detail={"state": IdentityBootstrap.LOADING, "error": None})
    except AuthError as e:
        raise HTTPException(status_code=503, detail={"state": IdentityBootstrap.ERROR, "error": str(e)})


def get_visit_counter(request: Request) -> VisitCounter:
    return request.app.state.visit_counter


def get_catalog(request: Request) -> CatalogService:
    return request.app.state.catalog


def get_expansion(request: Request, identity: Identity = Depends(require_identity)) -> DetailExpansion:
    expansions = request.app.state.expansions
    if identity.uid not in expansions:
        delay = request.app.state.settings.DETAIL_FETCH_DELAY_MS / 1000
        expansions[identity.uid] = DetailExpansion(delay=delay)
    return expansions[identity.uid]

# -----------------
# Response models
# -----------------
class SessionStatus(BaseModel):
    state: str
    uid: Optional[str] = None
    is_anonymous: Optional[bool] = None
    error: Optional[str] = None

class DisplayStats(BaseModel):
    total_visits: int
    last_visit: Optional[str] = None

class DashboardPage(BaseModel):
    title: str
    notice: str
    source: str
    stats: DisplayStats
    stale: bool = False

class CatalogEntry(BaseModel):
    id: str
    type: str
    type_label: str
    type_icon: str
    title: str
    summary: str
    date: str
    tags: List[str]

class CatalogDetail(CatalogEntry):
    content: str
    source: str

class LearningPage(BaseModel):
    source: str
    search: str
    selected_tag: str
    tags: List[str]
    count: int
    items: List[CatalogEntry]
    empty_message: Optional[str] = None

class ExpansionState(BaseModel):
    expanded_id: Optional[str] = None
    fetching: bool = False
    item: Optional[CatalogDetail] = None


def serialize_entry(item: ContentItem) -> CatalogEntry:
    kind = item.content_type
    return CatalogEntry(
        id=str(item.id),
        type=kind.value,
        type_label=kind.label,
        type_icon=kind.icon,
        title=item.title,
        summary=item.summary,
        date=item.date,
        tags=item.tags,
    )


def serialize_detail(item: ContentItem) -> CatalogDetail:
    return CatalogDetail(**serialize_entry(item).model_dump(), content=item.content, source=item.source)


def serialize_expansion(expansion: DetailExpansion, items: List[ContentItem]) -> ExpansionState:
    """Full content only once the simulated fetch for the current target has finished."""
    item = None
    if expansion.expanded_id is not None and expansion.is_loaded(expansion.expanded_id):
        found = find_item(items, expansion.expanded_id)
        item = serialize_detail(found) if found else None
    return ExpansionState(expanded_id=expansion.expanded_id, fetching=expansion.fetching, item=item)

# -----------------
# Basic routes
# -----------------
@app.get("/")
def read_root():
    return {"message": "CloudVerify Demo Backend Running"}

@app.get("/test")
def test_database(request: Request):
    config = getattr(request.app.state, "settings", settings)
    response = {
        "backend": "✅ Running",
        "database": "❌ Not Available",
        "database_url": "✅ Set" if config.DATABASE_URL else "❌ Not Set",
        "database_name": "✅ Set" if config.DATABASE_NAME else "❌ Not Set",
        "connection_status": "Not Connected",
        "collections": []
    }
    store = getattr(request.app.state, "store", None)
    if store is None:
        response["database"] = "❌ Not Initialized"
        return response
    response["database"] = "✅ Available"
    try:
        response["collections"] = store.list_collection_names()
        response["connection_status"] = "Connected"
        response["database"] = "✅ Connected & Working"
    except TransientStoreError as e:
        response["database"] = f"⚠️ Connected but Error: {str(e)[:80]}"
    return response

@app.get("/api/session", response_model=SessionStatus)
def session_status(request: Request):
    bootstrap: IdentityBootstrap = request.app.state.bootstrap
    identity = bootstrap.identity if bootstrap.state == IdentityBootstrap.READY else None
    return SessionStatus(
        state=bootstrap.state,
        uid=identity.uid if identity else None,
        is_anonymous=identity.is_anonymous if identity else None,
        error=str(bootstrap.error) if bootstrap.error else None,
    )

# -----------------
# Dashboard (simulated Redis counter)
# -----------------
@app.get("/api/dashboard", response_model=DashboardPage)
def dashboard(
    identity: Identity = Depends(require_identity),
    counter: VisitCounter = Depends(get_visit_counter),
):
    stats = counter.record_visit()
    return DashboardPage(
        title="访问行为分析",
        notice="注意：每次刷新页面都会触发一次云端计数器原子递增",
        source="分布式缓存 (Redis)",
        stats=DisplayStats(**counter.display(stats)),
        stale=counter.stale,
    )

# -----------------
# Learning (simulated OBS catalog)
# -----------------
@app.get("/api/learning", response_model=LearningPage)
def learning(
    search: str = "",
    tag: str = ALL_TAGS,
    identity: Identity = Depends(require_identity),
    catalog: CatalogService = Depends(get_catalog),
):
    items = catalog.load_catalog()
    visible = filter_items(items, search, tag)
    return LearningPage(
        source=CATALOG_SOURCE,
        search=search,
        selected_tag=tag,
        tags=tag_universe(items),
        count=len(visible),
        items=[serialize_entry(item) for item in visible],
        empty_message=None if visible else "未找到相关内容",
    )

@app.get("/api/learning/expansion", response_model=ExpansionState)
async def learning_expansion(
    catalog: CatalogService = Depends(get_catalog),
    expansion: DetailExpansion = Depends(get_expansion),
):
    items = await asyncio.to_thread(catalog.load_catalog)
    return serialize_expansion(expansion, items)

@app.post("/api/learning/{item_id}/toggle", response_model=ExpansionState)
async def toggle_learning_item(
    item_id: str,
    catalog: CatalogService = Depends(get_catalog),
    expansion: DetailExpansion = Depends(get_expansion),
):
    """Expand or collapse one entry; expanding simulates an object-storage fetch of its content."""
    items = await asyncio.to_thread(catalog.load_catalog)
    item = find_item(items, item_id)
    if item is None:
        raise HTTPException(status_code=404, detail="Content not found")
    expansion.toggle(str(item.id))
    return serialize_expansion(expansion, items)

# -----------------
# About
# -----------------
@app.get("/api/about")
def about():
    return {
        "title": "项目状态说明",
        "subtitle": "Project Status & Background",
        "background": (
            "本项目是一个用于技术验证的个人学习站点。主要目的是演示如何在实际 Web 项目中集成云原生的存储与计算服务。"
            "本站采用“对象存储 + 分布式缓存”架构，以实现动静分离和高性能读写。"
        ),
        "status": [
            {"badge": "ACTIVE", "text": "后端服务运行正常"},
            {"badge": "CONNECTED", "text": "云资源 (MongoDB Simulation) 连接正常"},
            {"badge": "DEMO", "text": "当前处于演示/开发模式，不用于商业生产"},
        ],
        "disclaimer": (
            "本演示使用文档数据库的原子操作来模拟 Redis 的计数器行为，"
            "使用文档存储来模拟 OBS 的 JSON 文件存储。"
        ),
        "production_note": (
            "In a real production environment, this would be replaced by AWS S3 / Huawei OBS "
            "and AWS ElastiCache / Huawei DCS."
        ),
    }


if __name__ == "__main__":
    import uvicorn
    port = int(os.getenv("PORT", 8000))
    uvicorn.run(app, host="0.0.0.0", port=port)
