import os
from datetime import date
from decimal import Decimal
from typing import AsyncGenerator, Dict
from uuid import UUID, uuid4

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("AUTH_JWT_SECRET", "test-secret")

import pytest
from httpx import ASGITransport, AsyncClient
from jose import jwt
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from sfms.core.config import settings
from sfms.core.models import FeeType, FeeTypeClassLink, School, SchoolClass
from sfms.db.session import Base, build_engine, get_db
from sfms.main import app


TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

PAST = date(2020, 4, 1)
FUTURE = date(2999, 4, 1)


def make_token(school_id: UUID, nested: bool = False) -> str:
    claims = {"sub": str(uuid4())}
    if nested:
        claims["app_metadata"] = {"school_id": str(school_id)}
    else:
        claims["school_id"] = str(school_id)
    return jwt.encode(claims, settings.auth_jwt_secret, algorithm=settings.auth_jwt_algorithm)


@pytest.fixture()
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Fresh in-memory database per test; the app's get_db is overridden to use it."""
    engine = build_engine(TEST_DATABASE_URL)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async_session = async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async with async_session() as session:

        async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
            yield session

        app.dependency_overrides[get_db] = override_get_db
        yield session

    app.dependency_overrides.clear()
    await engine.dispose()


@pytest.fixture()
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client bound to the FastAPI app."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


async def _add_school(db: AsyncSession, name: str) -> UUID:
    school = School(name=name, timezone="Asia/Kolkata")
    db.add(school)
    await db.commit()
    return school.id


@pytest.fixture()
async def school_id(db_session: AsyncSession) -> UUID:
    return await _add_school(db_session, "Green Valley School")


@pytest.fixture()
async def other_school_id(db_session: AsyncSession) -> UUID:
    return await _add_school(db_session, "Hill Top School")


@pytest.fixture()
def auth_headers(school_id: UUID) -> Dict[str, str]:
    return {"Authorization": f"Bearer {make_token(school_id)}"}


@pytest.fixture()
def other_auth_headers(other_school_id: UUID) -> Dict[str, str]:
    return {"Authorization": f"Bearer {make_token(other_school_id)}"}


@pytest.fixture()
async def catalog(db_session: AsyncSession, school_id: UUID) -> Dict[str, UUID]:
    """
    Class "10th" with Tuition 5000 (due), Exam 1000 (due), Bus 1500 (not yet due);
    class "9th" with only Library 300 (due).
    """
    tenth = SchoolClass(school_id=school_id, name="10th")
    ninth = SchoolClass(school_id=school_id, name="9th")
    db_session.add_all([tenth, ninth])
    await db_session.flush()

    fee_types = {
        "tuition": FeeType(school_id=school_id, name="Tuition", default_amount=Decimal("5000"), scheduled_date=PAST),
        "exam": FeeType(school_id=school_id, name="Exam", default_amount=Decimal("1000"), scheduled_date=PAST),
        "bus": FeeType(school_id=school_id, name="Bus", default_amount=Decimal("1500"), scheduled_date=FUTURE),
        "library": FeeType(school_id=school_id, name="Library", default_amount=Decimal("300"), scheduled_date=PAST),
    }
    db_session.add_all(fee_types.values())
    await db_session.flush()

    for key in ("tuition", "exam", "bus"):
        db_session.add(FeeTypeClassLink(fee_type_id=fee_types[key].id, class_id=tenth.id, school_id=school_id))
    db_session.add(FeeTypeClassLink(fee_type_id=fee_types["library"].id, class_id=ninth.id, school_id=school_id))
    await db_session.commit()

    ids = {key: ft.id for key, ft in fee_types.items()}
    ids["tenth"] = tenth.id
    ids["ninth"] = ninth.id
    return ids


@pytest.fixture()
def token_factory():
    return make_token
