"""HTTP tests for habilitation type endpoints."""

from httpx import AsyncClient

PREFIX = "/api/tipo-habilitacao"


async def _habilitacao(client: AsyncClient, codigo: str, descricao: str) -> dict:
    response = await client.post(
        PREFIX, json={"codigo": codigo, "descricao": descricao}
    )
    assert response.status_code == 201, response.text
    return response.json()


class TestHabilitacaoRoutes:
    async def test_codigo_is_uppercased(self, client: AsyncClient):
        created = await _habilitacao(client, " uti-02 ", "UTI Adulto Tipo II")

        assert created["codigo"] == "UTI-02"

    async def test_codigo_rejects_invalid_characters(self, client: AsyncClient):
        response = await client.post(
            PREFIX, json={"codigo": "UTI 02!", "descricao": "Inválida"}
        )

        assert response.status_code == 400
        assert response.json()["errors"][0]["field"] == "body.codigo"

    async def test_duplicate_codigo_in_other_case(self, client: AsyncClient):
        await _habilitacao(client, "ONC-1", "Oncologia")

        response = await client.post(
            PREFIX, json={"codigo": "onc-1", "descricao": "Oncologia Clínica"}
        )

        assert response.status_code == 409

    async def test_list_is_ordered_by_codigo(self, client: AsyncClient):
        await _habilitacao(client, "ZZ-9", "Última")
        await _habilitacao(client, "AA-1", "Primeira")

        response = await client.get(PREFIX)

        assert [h["codigo"] for h in response.json()] == ["AA-1", "ZZ-9"]

    async def test_check_existing_codigo_ignores_case(self, client: AsyncClient):
        created = await _habilitacao(client, "CAR-3", "Cardiologia")

        taken = await client.get(
            f"{PREFIX}/check-existing-codigo", params={"codigo": "car-3"}
        )
        own = await client.get(
            f"{PREFIX}/check-existing-codigo",
            params={"codigo": "CAR-3", "excludeId": created["id"]},
        )

        assert taken.json() == {"exists": True}
        assert own.json() == {"exists": False}

    async def test_check_existing_descricao(self, client: AsyncClient):
        await _habilitacao(client, "NEF-1", "Nefrologia")

        response = await client.get(
            f"{PREFIX}/check-existing-descricao", params={"descricao": "Nefrologia"}
        )

        assert response.json() == {"exists": True}

    async def test_check_existing_requires_value(self, client: AsyncClient):
        response = await client.get(f"{PREFIX}/check-existing-codigo")

        assert response.status_code == 400
