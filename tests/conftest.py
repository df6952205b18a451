"""
Shared fixtures: a throwaway SQLite database per test, user factories and an
HTTP client bound to the FastAPI app.
"""
import os
import tempfile

# Settings are read at import time
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("UPLOAD_DIR", tempfile.mkdtemp(prefix="wallnest-uploads-"))
os.environ.setdefault("SECRET_KEY", "test-secret")
os.environ.setdefault("LOG_LEVEL", "WARNING")
os.environ.setdefault("AWS_S3_BUCKET", "")

import pytest  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402

import wallnest.models  # noqa: E402,F401
from wallnest.auth.service import AuthService  # noqa: E402
from wallnest.database import Base, configure_sqlite, get_db  # noqa: E402
from wallnest.posts.models import Post, PostStatus  # noqa: E402
from wallnest.storage import ImageUploadService, LocalStorageService  # noqa: E402
from wallnest.users.models import User, UserRole  # noqa: E402
from wallnest.wallpapers.schemas import UploadedImage, WallpaperMetadata  # noqa: E402
from wallnest.wallpapers.service import WallpaperService  # noqa: E402


@pytest.fixture
async def engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'wallnest.db'}")
    configure_sqlite(engine)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def make_user(db):
    counter = {"n": 0}

    async def _make(username=None, role=UserRole.USER, is_active=True, password_hash="not-a-real-hash"):
        counter["n"] += 1
        user = User(
            username=username or f"user{counter['n']}",
            email=f"{username or 'user' + str(counter['n'])}@example.com",
            hashed_password=password_hash,
            role=role,
            is_active=is_active,
        )
        db.add(user)
        await db.flush()
        await db.refresh(user)
        await db.commit()
        return user

    return _make


@pytest.fixture
async def user(make_user):
    return await make_user("alice")


@pytest.fixture
async def other_user(make_user):
    return await make_user("bob")


@pytest.fixture
async def admin(make_user):
    return await make_user("admin", role=UserRole.ADMIN)


@pytest.fixture
def make_post(db):
    async def _make(author, title="Hello", tags=None, status=PostStatus.PUBLISHED, **fields):
        post = Post(
            title=title,
            content=fields.pop("content", "Body text"),
            tags=tags,
            status=status.value,
            author_id=author.id,
            **fields,
        )
        db.add(post)
        await db.flush()
        await db.refresh(post)
        await db.commit()
        return post

    return _make


@pytest.fixture
def wallpaper_service(tmp_path):
    return WallpaperService(uploads=ImageUploadService(LocalStorageService(str(tmp_path / "uploads"), "/uploads")))


@pytest.fixture
def make_wallpaper(db, wallpaper_service):
    async def _make(uploader, title="Mountains", tags=(), width=1920, height=1080, **meta):
        upload = UploadedImage(
            file_url=f"/uploads/wallpapers/{uploader.id}/{title}.jpg",
            thumbnail_url=f"/uploads/thumbnails/{uploader.id}/{title}.webp",
            file_size=1024,
            width=width,
            height=height,
            format="jpeg",
            aspect_ratio=round(width / height, 2),
        )
        wallpaper = await wallpaper_service.create(WallpaperMetadata(title=title, **meta), upload, uploader.id, db)
        if tags:
            await wallpaper_service.tag_service.attach_tags(wallpaper.id, list(tags), db)
            wallpaper = await wallpaper_service.get_wallpaper(wallpaper.id, db)
        # Release the read transaction so other connections can write
        await db.commit()
        return wallpaper

    return _make


@pytest.fixture
def auth_headers():
    def _headers(user):
        token = AuthService().create_access_token({"sub": str(user.id)})
        return {"Authorization": f"Bearer {token}"}

    return _headers


@pytest.fixture
async def client(session_factory):
    from wallnest.main import app

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()
