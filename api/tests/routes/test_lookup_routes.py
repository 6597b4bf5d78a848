"""HTTP tests for the generated lookup CRUD endpoints.

Requests go through the full app (validation, error handlers, get_db
commit/rollback) against the in-memory database.
"""

import pytest
from httpx import AsyncClient

DESCRICAO_PREFIXES = [
    "/api/componentes",
    "/api/tipo-estabelecimento",
    "/api/natureza",
    "/api/turnos",
    "/api/escolaridades",
    "/api/racas",
    "/api/paises",
]


async def _create(client: AsyncClient, prefix: str, **body) -> dict:
    response = await client.post(prefix, json=body)
    assert response.status_code == 201, response.text
    return response.json()


@pytest.mark.parametrize("prefix", DESCRICAO_PREFIXES)
class TestDescricaoLookupCrud:
    async def test_full_lifecycle(self, client: AsyncClient, prefix: str):
        created = await _create(client, prefix, descricao="  Primeiro  ")
        assert created["descricao"] == "Primeiro"
        item_url = f"{prefix}/{created['id']}"

        fetched = await client.get(item_url)
        assert fetched.status_code == 200
        assert fetched.json() == created

        updated = await client.put(item_url, json={"descricao": "Segundo"})
        assert updated.status_code == 200
        assert updated.json()["descricao"] == "Segundo"

        listed = await client.get(prefix)
        assert [item["descricao"] for item in listed.json()] == ["Segundo"]

        deleted = await client.delete(item_url)
        assert deleted.status_code == 200
        assert deleted.json()["message"].endswith("deleted successfully")

        missing = await client.get(item_url)
        assert missing.status_code == 404
        assert missing.json()["code"] == "NOT_FOUND"

    async def test_duplicate_returns_409(self, client: AsyncClient, prefix: str):
        await _create(client, prefix, descricao="Igual")

        response = await client.post(prefix, json={"descricao": "Igual"})

        assert response.status_code == 409
        assert response.json()["code"] == "DUPLICATE"

    async def test_check_existing(self, client: AsyncClient, prefix: str):
        created = await _create(client, prefix, descricao="Marcado")

        taken = await client.get(
            f"{prefix}/check-existing", params={"descricao": "Marcado"}
        )
        own = await client.get(
            f"{prefix}/check-existing",
            params={"descricao": "Marcado", "excludeId": created["id"]},
        )
        free = await client.get(
            f"{prefix}/check-existing", params={"descricao": "Livre"}
        )

        assert taken.json() == {"exists": True}
        assert own.json() == {"exists": False}
        assert free.json() == {"exists": False}


class TestPagination:
    async def test_envelope_and_meta(self, client: AsyncClient):
        for i in range(12):
            await _create(client, "/api/racas", descricao=f"Raça {i:02d}")

        response = await client.get(
            "/api/racas/paginated", params={"page": 2, "limit": 5}
        )

        assert response.status_code == 200
        body = response.json()
        assert len(body["data"]) == 5
        assert body["meta"] == {"total": 12, "totalPages": 3, "page": 2, "limit": 5}

    async def test_defaults(self, client: AsyncClient):
        response = await client.get("/api/paises/paginated")

        assert response.json()["meta"] == {
            "total": 0,
            "totalPages": 0,
            "page": 1,
            "limit": 10,
        }

    async def test_search(self, client: AsyncClient):
        await _create(client, "/api/escolaridades", descricao="Ensino Médio")
        await _create(client, "/api/escolaridades", descricao="Superior")

        response = await client.get(
            "/api/escolaridades/paginated", params={"search": "ensino"}
        )

        body = response.json()
        assert [item["descricao"] for item in body["data"]] == ["Ensino Médio"]
        assert body["meta"]["total"] == 1

    async def test_limit_is_capped(self, client: AsyncClient):
        response = await client.get("/api/turnos/paginated", params={"limit": 1000})

        assert response.json()["meta"]["limit"] == 100

    @pytest.mark.parametrize("params", [{"page": 0}, {"limit": 0}, {"page": -3}])
    async def test_invalid_values_return_400(self, client: AsyncClient, params):
        response = await client.get("/api/turnos/paginated", params=params)

        assert response.status_code == 400
        assert response.json()["code"] == "VALIDATION_ERROR"


class TestEstados:
    async def test_check_existing_by_codigo_or_descricao(self, client: AsyncClient):
        await _create(client, "/api/estados", codigo="SP", descricao="São Paulo")

        by_codigo = await client.get(
            "/api/estados/check-existing", params={"codigo": "SP"}
        )
        by_descricao = await client.get(
            "/api/estados/check-existing", params={"descricao": "São Paulo"}
        )
        neither = await client.get("/api/estados/check-existing")

        assert by_codigo.json() == {"exists": True}
        assert by_descricao.json() == {"exists": True}
        assert neither.status_code == 400

    async def test_update_to_taken_codigo(self, client: AsyncClient):
        await _create(client, "/api/estados", codigo="RJ", descricao="Rio")
        es = await _create(client, "/api/estados", codigo="ES", descricao="Espírito")

        response = await client.put(
            f"/api/estados/{es['id']}", json={"codigo": "RJ", "descricao": "Espírito"}
        )

        assert response.status_code == 409

    async def test_delete_referenced_estado_returns_409(self, client: AsyncClient):
        estado = await _create(client, "/api/estados", codigo="PB", descricao="PB")
        await _create(
            client,
            "/api/municipios",
            codigo="2507507",
            descricao="João Pessoa",
            estado_id=estado["id"],
        )

        response = await client.delete(f"/api/estados/{estado['id']}")

        assert response.status_code == 409
        assert response.json()["code"] == "DEPENDENCY_ERROR"
        # The failed delete was rolled back
        assert (await client.get(f"/api/estados/{estado['id']}")).status_code == 200


class TestCbo:
    async def test_create_and_search_by_codigo(self, client: AsyncClient):
        await _create(client, "/api/cbo", codigo="2235-05", descricao="Enfermeiro")
        await _create(client, "/api/cbo", codigo="2251-25", descricao="Médico")

        response = await client.get("/api/cbo", params={"search": "2235"})

        assert [item["descricao"] for item in response.json()] == ["Enfermeiro"]


class TestRequestValidation:
    async def test_missing_body_field(self, client: AsyncClient):
        response = await client.post("/api/componentes", json={})

        assert response.status_code == 400
        body = response.json()
        assert body["code"] == "VALIDATION_ERROR"
        assert body["errors"][0]["field"] == "body.descricao"

    async def test_blank_descricao(self, client: AsyncClient):
        response = await client.post("/api/componentes", json={"descricao": "   "})

        assert response.status_code == 400

    async def test_non_numeric_id(self, client: AsyncClient):
        response = await client.get("/api/componentes/abc")

        assert response.status_code == 400

    async def test_unknown_route(self, client: AsyncClient):
        response = await client.get("/api/nao-existe")

        assert response.status_code == 404
        assert response.json() == {"detail": "Not Found", "code": "NOT_FOUND"}
