"""
Shared test fixtures for the PaperDesk backend test suite.

Sets up an async SQLite in-memory database, swaps the MinIO blob store for an
in-memory one, and provides pre-authenticated HTTP clients for the customer,
shop_owner and authorized_signatory roles. Source PDFs and overlay images are
generated on the fly with reportlab and Pillow.
"""

import base64
import os
import uuid
from io import BytesIO
from typing import Optional

import factory
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from PIL import Image
from reportlab.lib.pagesizes import A4
from reportlab.pdfgen import canvas
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

# ---- Environment overrides MUST come before any app imports ----
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["SECRET_KEY"] = "test-secret-key-for-unit-tests"
os.environ["ENVIRONMENT"] = "test"
os.environ["LOG_LEVEL"] = "WARNING"

from paperdesk.auth.models import User, UserRole  # noqa: E402
from paperdesk.auth.service import create_access_token, hash_password  # noqa: E402
from paperdesk.database import Base, get_db  # noqa: E402
from paperdesk.esign.models import EndorsementRequest  # noqa: E402
from paperdesk.esign.schemas import EndorsementRequestCreate  # noqa: E402
from paperdesk.esign.service import create_endorsement_request  # noqa: E402
from paperdesk.main import app  # noqa: E402
from paperdesk.storage.blobs import get_blob_store, new_file_id  # noqa: E402
from paperdesk.storage.service import record_file_metadata  # noqa: E402

# ---------------------------------------------------------------------------
# Async engine & session factory for the test database
# ---------------------------------------------------------------------------
TEST_DATABASE_URL = "sqlite+aiosqlite://"

test_engine = create_async_engine(TEST_DATABASE_URL, echo=False, poolclass=StaticPool)
TestSession = async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


# SQLite does not enforce FK constraints by default, so enable them.
@event.listens_for(test_engine.sync_engine, "connect")
def _enable_sqlite_fk(dbapi_conn, _connection_record):
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


# ---------------------------------------------------------------------------
# Database lifecycle
# ---------------------------------------------------------------------------
@pytest_asyncio.fixture(autouse=True)
async def setup_database():
    """Create all tables before each test, drop them afterward."""
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest_asyncio.fixture
async def db_session() -> AsyncSession:
    """Provide a session for direct service-layer tests (rolled back on close)."""
    async with TestSession() as session:
        yield session


async def _override_get_db():
    async with TestSession() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


app.dependency_overrides[get_db] = _override_get_db


# ---------------------------------------------------------------------------
# In-memory blob store
# ---------------------------------------------------------------------------
class InMemoryBlobStore:
    """Dict-backed stand-in for the MinIO store."""

    def __init__(self):
        self.blobs: dict[str, bytes] = {}
        self.content_types: dict[str, str] = {}

    def get(self, file_id: str) -> Optional[bytes]:
        return self.blobs.get(file_id)

    def store(self, data: bytes, content_type: str) -> str:
        file_id = new_file_id()
        self.blobs[file_id] = data
        self.content_types[file_id] = content_type
        return file_id

    def get_url(self, file_id: str) -> str:
        return f"http://blobs.test/{file_id}"


@pytest.fixture
def blobs() -> InMemoryBlobStore:
    store = InMemoryBlobStore()
    app.dependency_overrides[get_blob_store] = lambda: store
    yield store
    app.dependency_overrides.pop(get_blob_store, None)


# ---------------------------------------------------------------------------
# Generated documents and images
# ---------------------------------------------------------------------------
def make_pdf(pages: int = 1, pagesize: tuple[float, float] = A4) -> bytes:
    """A plain text-only PDF with ``pages`` pages."""
    buf = BytesIO()
    c = canvas.Canvas(buf, pagesize=pagesize)
    for number in range(1, pages + 1):
        c.drawString(72, 72, f"Page {number}")
        c.showPage()
    c.save()
    return buf.getvalue()


def make_png(size: tuple[int, int] = (120, 60), color=(0, 0, 0, 255)) -> bytes:
    buf = BytesIO()
    Image.new("RGBA", size, color).save(buf, format="PNG")
    return buf.getvalue()


def make_jpeg(size: tuple[int, int] = (120, 60), color=(200, 30, 30)) -> bytes:
    buf = BytesIO()
    Image.new("RGB", size, color).save(buf, format="JPEG")
    return buf.getvalue()


def png_data_url(data: bytes) -> str:
    return "data:image/png;base64," + base64.b64encode(data).decode("ascii")


# ---------------------------------------------------------------------------
# Helper: create a user directly in the database
# ---------------------------------------------------------------------------
async def _create_test_user(
    email: str,
    password: str,
    role: UserRole,
    name: str = "Test User",
    is_active: bool = True,
) -> User:
    """Insert a user into the test database and return it."""
    user = User(
        id=uuid.uuid4(),
        email=email,
        password_hash=hash_password(password),
        name=name,
        mobile="9876543210",
        role=role,
        is_active=is_active,
    )
    async with TestSession() as session:
        session.add(user)
        await session.commit()
        await session.refresh(user)
    return user


def _auth_header(user: User) -> dict[str, str]:
    token = create_access_token(str(user.id), user.role.value)
    return {"Authorization": f"Bearer {token}"}


@pytest_asyncio.fixture
async def customer_user() -> User:
    return await _create_test_user(
        email="customer@paperdesk-test.com",
        password="CustomerPass123!",
        role=UserRole.customer,
        name="  Jane   Doe  ",
    )


@pytest_asyncio.fixture
async def shop_owner_user() -> User:
    return await _create_test_user(
        email="shop@paperdesk-test.com",
        password="ShopOwnerPass123!",
        role=UserRole.shop_owner,
        name="Sam Shop",
    )


@pytest_asyncio.fixture
async def signatory_user() -> User:
    return await _create_test_user(
        email="signatory@paperdesk-test.com",
        password="SignatoryPass123!",
        role=UserRole.authorized_signatory,
        name="Officer Rao",
    )


# ---------------------------------------------------------------------------
# Authenticated clients
# ---------------------------------------------------------------------------
@pytest_asyncio.fixture
async def client() -> AsyncClient:
    """Unauthenticated httpx async client wired to the FastAPI app."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest_asyncio.fixture
async def customer_client(customer_user: User, blobs: InMemoryBlobStore) -> AsyncClient:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        ac.headers.update(_auth_header(customer_user))
        yield ac


@pytest_asyncio.fixture
async def shop_owner_client(shop_owner_user: User, blobs: InMemoryBlobStore) -> AsyncClient:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        ac.headers.update(_auth_header(shop_owner_user))
        yield ac


@pytest_asyncio.fixture
async def signatory_client(signatory_user: User, blobs: InMemoryBlobStore) -> AsyncClient:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        ac.headers.update(_auth_header(signatory_user))
        yield ac


# ---------------------------------------------------------------------------
# Factory Boy factories
# ---------------------------------------------------------------------------
class UserFactory(factory.Factory):
    class Meta:
        model = dict

    email = factory.LazyFunction(lambda: f"user-{uuid.uuid4().hex[:8]}@paperdesk-test.com")
    password = "SecurePass123!"
    name = factory.Faker("name")
    mobile = "9123456780"
    role = "customer"


class RequesterDetailsFactory(factory.Factory):
    class Meta:
        model = dict

    name = factory.Faker("name")
    mobile = "9876543210"
    address = factory.Faker("address")
    shop_number = None


class EndorsementRequestFactory(factory.Factory):
    class Meta:
        model = dict

    details = factory.SubFactory(RequesterDetailsFactory)
    document_file_id = factory.LazyFunction(lambda: uuid.uuid4().hex)
    purpose = "Address proof for bank account"
    require_signature = True
    require_seal = False


# ---------------------------------------------------------------------------
# Convenience: a request already in the DB
# ---------------------------------------------------------------------------
async def make_request(
    db: AsyncSession,
    user: User,
    blobs: InMemoryBlobStore,
    pdf: Optional[bytes] = None,
    **overrides,
) -> EndorsementRequest:
    """Store ``pdf`` (default: one A4 page) and open a pending request for it."""
    content = pdf if pdf is not None else make_pdf()
    document_file_id = blobs.store(content, "application/pdf")
    await record_file_metadata(
        db,
        storage_id=document_file_id,
        original_name="document.pdf",
        file_type="application/pdf",
        file_size=len(content),
        uploaded_by=user.id,
    )
    data = EndorsementRequestCreate(**EndorsementRequestFactory(document_file_id=document_file_id, **overrides))
    return await create_endorsement_request(db, user, data, ip_address="127.0.0.1")
