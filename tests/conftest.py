import pytest
from datetime import datetime, timedelta
from unittest.mock import MagicMock, AsyncMock

VALID_REPLY = """---
Title: OpenAI 發表新模型
Excerpt: 這是一篇關於新模型的摘要。
---
# OpenAI 發表新模型

新模型在多項基準測試中表現優異。

## 產業影響

分析師認為這將改變市場格局。
"""

BASE_TIME = datetime(2025, 1, 6, 8, 0, 0)


@pytest.fixture
def pipeline_settings():
    from src.config import Settings

    return Settings(
        _env_file=None,
        openai_api_key=None,
        anthropic_api_key=None,
        generation_timeout_seconds=5,
        feed_fetch_timeout_seconds=2,
        feed_fetch_concurrency=5,
        feed_max_items_per_source=10,
        generation_batch_size=5,
        auto_publish_quota_window="invocation",
        scheduler_enabled=False,
    )


@pytest.fixture
def mock_llm_service():
    service = MagicMock()
    service.generate = AsyncMock(return_value=VALID_REPLY)
    return service


@pytest.fixture
def test_db():
    from sqlalchemy import create_engine
    from sqlalchemy.orm import sessionmaker
    from sqlalchemy.pool import StaticPool
    from src.core.database import Base
    from src import models  # noqa: F401

    # Use in-memory SQLite for tests; StaticPool shares the one connection across threads
    SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"
    engine = create_engine(
        SQLALCHEMY_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    Base.metadata.create_all(bind=engine)

    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def make_source(test_db):
    from src.models import FeedSource, FeedSourceKind

    counter = {"n": 0}

    def _make(name=None, url=None, is_active=True, kind=FeedSourceKind.RSS):
        counter["n"] += 1
        source = FeedSource(
            name=name or f"Source {counter['n']}",
            url=url or f"https://feeds.example.com/{counter['n']}.xml",
            kind=kind,
            is_active=is_active,
        )
        test_db.add(source)
        test_db.commit()
        test_db.refresh(source)
        return source

    return _make


@pytest.fixture
def make_item(test_db, make_source):
    from src.models import FetchedItem, FetchedItemStatus

    state = {"n": 0, "source": None}

    def _make(
        status=FetchedItemStatus.PENDING,
        title=None,
        content="Original body text about AI.",
        fetched_offset_minutes=None,
        processed_offset_minutes=None,
        generated=None,
        source=None,
    ):
        state["n"] += 1
        n = state["n"]
        if source is None:
            if state["source"] is None:
                state["source"] = make_source(name="AI Feed")
            source = state["source"]

        minutes = n if fetched_offset_minutes is None else fetched_offset_minutes
        item = FetchedItem(
            source_id=source.id,
            original_url=f"https://news.example.com/articles/{n}",
            original_title=title or f"Original title {n}",
            original_content=content,
            original_excerpt=f"Original excerpt {n}",
            status=status,
            fetched_at=BASE_TIME + timedelta(minutes=minutes),
        )
        if generated is None:
            generated = status in (FetchedItemStatus.APPROVED, FetchedItemStatus.PUBLISHED)
        if generated:
            item.generated_title = f"Generated title {n}"
            item.generated_content = f"# Generated title {n}\n\nGenerated body {n}."
            item.generated_excerpt = f"Generated excerpt {n}"
            offset = n if processed_offset_minutes is None else processed_offset_minutes
            item.processed_at = BASE_TIME + timedelta(hours=1, minutes=offset)

        test_db.add(item)
        test_db.commit()
        test_db.refresh(item)
        return item

    return _make


@pytest.fixture
async def async_client(test_db, mock_llm_service):
    from httpx import AsyncClient, ASGITransport
    from src.main import app
    from src.api.dependencies import get_db, get_llm_service

    def override_get_db():
        try:
            yield test_db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_llm_service] = lambda: mock_llm_service

    # Use ASGITransport for direct app interaction
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c

    app.dependency_overrides.clear()
