"""
Content catalog standing in for an object-storage bucket listing.

The collection is seeded with a fixed dataset the first time it is read empty.
Seed documents are keyed ``doc_<id>``, so two first-loads racing each other
overwrite the same four keys instead of duplicating entries.
"""

import logging
from typing import List, Optional

from pydantic import ValidationError

from database import DocumentStore, TransientStoreError, collection_path
from schemas import ContentItem

logger = logging.getLogger(__name__)

CATALOG_COLLECTION = "simulated_obs_content_v2"
CATALOG_SOURCE = "obs://bucket-learning/public"

SEED_ITEMS = [
    {
        "id": 1,
        "type": "article",
        "title": "分布式缓存 Redis 核心原理",
        "summary": "深入剖析 Redis 的数据结构、持久化机制（RDB/AOF）以及在微服务架构中的应用场景。",
        "content": (
            "Redis (Remote Dictionary Server) 是一个开源的、使用 C 语言编写的、支持网络、"
            "可基于内存亦可持久化的日志型、Key-Value 数据库。\n\n"
            "关键特性：\n"
            "1. 速度快：基于内存操作，QPS 可达 10w+。\n"
            "2. 数据类型丰富：String, List, Set, ZSet, Hash。\n"
            "3. 原子性：所有操作都是原子性的。"
        ),
        "date": "2023-10-24",
        "source": "obs://bucket-learning/docs/redis-core.md",
        "tags": ["Redis", "Backend", "Architecture"],
    },
    {
        "id": 2,
        "type": "code",
        "title": "Node.js 上传文件到 OBS 示例代码",
        "summary": "一段用于演示如何在 Node.js 环境中使用 SDK 将本地文件上传至对象存储桶的代码片段。",
        "content": (
            "const ObsClient = require('esdk-obs-nodejs');\n\n"
            "const obsClient = new ObsClient({\n"
            "  access_key_id: '***',\n"
            "  secret_access_key: '***',\n"
            "  server: 'https://obs.region.mycloud.com'\n"
            "});\n\n"
            "await obsClient.putObject({\n"
            "  Bucket: 'my-bucket',\n"
            "  Key: 'images/logo.png',\n"
            "  SourceFile: './logo.png'\n"
            "});\n"
            "// 上传成功"
        ),
        "date": "2023-10-25",
        "source": "obs://bucket-code/snippets/upload-demo.js",
        "tags": ["Node.js", "SDK", "Storage"],
    },
    {
        "id": 3,
        "type": "video",
        "title": "React Hooks 最佳实践 (视频演示)",
        "summary": "视频教程：如何正确使用 useEffect 处理副作用，避免常见的闭包陷阱和无限循环问题。",
        "content": "Video resource placeholder.\nDuration: 15:30\nResolution: 1080p\nTranscoding status: Completed",
        "date": "2023-10-26",
        "source": "obs://bucket-media/videos/react-hooks.mp4",
        "tags": ["React", "Frontend", "Video"],
    },
    {
        "id": 4,
        "type": "article",
        "title": "Serverless 无服务器架构入门",
        "summary": "Function as a Service (FaaS) 的概念介绍，以及如何利用云函数构建低成本的 API 服务。",
        "content": (
            "Serverless 并不意味着没有服务器，而是开发者不再需要关心服务器的管理和运维。\n\n"
            "优势：\n- 按量付费，成本低\n- 自动扩缩容\n- 快速迭代上线"
        ),
        "date": "2023-10-28",
        "source": "obs://bucket-learning/docs/serverless.json",
        "tags": ["Cloud", "Serverless"],
    },
]


def seed_key(item_id) -> str:
    return f"doc_{item_id}"


class CatalogService:
    def __init__(self, store: DocumentStore, app_id: str):
        self.store = store
        self.path = collection_path(app_id, CATALOG_COLLECTION)

    def seed(self) -> int:
        """Write every seed item under its deterministic key."""
        for item in SEED_ITEMS:
            self.store.set(self.path, seed_key(item["id"]), dict(item))
        logger.info("Seeded %d catalog items into %s", len(SEED_ITEMS), self.path)
        return len(SEED_ITEMS)

    def load_catalog(self) -> List[ContentItem]:
        """
        Seed-if-empty, then return every entry in store order.

        Store failures are logged and yield an empty catalog.
        """
        try:
            docs = self.store.list_all(self.path)
            if not docs:
                self.seed()
                docs = self.store.list_all(self.path)
        except TransientStoreError:
            logger.exception("Fetch error while loading catalog")
            return []

        items = []
        for doc in docs:
            try:
                items.append(ContentItem.model_validate(doc))
            except ValidationError as e:
                logger.warning("Skipping malformed catalog entry %r: %s", doc.get("id"), e)
        return items


def find_item(items: List[ContentItem], item_id: str) -> Optional[ContentItem]:
    """Look up an entry by id; ids compare as strings since routes receive text."""
    for item in items:
        if str(item.id) == str(item_id):
            return item
    return None
