from typing import Dict
from uuid import UUID, uuid4

import pytest
from httpx import AsyncClient
from jose import jwt

from sfms.core.config import settings


@pytest.mark.asyncio
async def test_missing_token_is_rejected(client: AsyncClient, school_id: UUID) -> None:
    response = await client.get("/api/v1/classes")
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_token_with_wrong_signature_is_rejected(client: AsyncClient, school_id: UUID) -> None:
    token = jwt.encode({"sub": str(uuid4()), "school_id": str(school_id)}, "not-the-secret", algorithm="HS256")
    response = await client.get("/api/v1/classes", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_token_without_school_claim_is_rejected(client: AsyncClient, school_id: UUID) -> None:
    token = jwt.encode({"sub": str(uuid4())}, settings.auth_jwt_secret, algorithm=settings.auth_jwt_algorithm)
    response = await client.get("/api/v1/classes", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_unknown_school_is_not_found(client: AsyncClient, school_id: UUID, token_factory) -> None:
    headers = {"Authorization": f"Bearer {token_factory(uuid4())}"}
    response = await client.get("/api/v1/classes", headers=headers)
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_school_id_from_app_metadata(client: AsyncClient, school_id: UUID, token_factory) -> None:
    headers = {"Authorization": f"Bearer {token_factory(school_id, nested=True)}"}
    response = await client.get("/api/v1/classes", headers=headers)
    assert response.status_code == 200
    assert response.json() == []


@pytest.mark.asyncio
async def test_valid_token_reaches_route(client: AsyncClient, auth_headers: Dict[str, str]) -> None:
    response = await client.get("/api/v1/students", headers=auth_headers)
    assert response.status_code == 200
    assert response.json() == []
