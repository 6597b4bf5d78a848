"""HTTP tests for establishment endpoints."""

from types import SimpleNamespace

import pytest
import pytest_asyncio
from httpx import AsyncClient

PREFIX = "/api/estabelecimentos"


async def _post(client: AsyncClient, url: str, body: dict) -> dict:
    response = await client.post(url, json=body)
    assert response.status_code == 201, response.text
    return response.json()


@pytest_asyncio.fixture
async def refs(client: AsyncClient) -> SimpleNamespace:
    """Reference rows created through the API."""
    tipo = await _post(client, "/api/tipo-estabelecimento", {"descricao": "UBS"})
    natureza = await _post(client, "/api/natureza", {"descricao": "Pública"})
    turno = await _post(client, "/api/turnos", {"descricao": "Integral"})
    componente = await _post(client, "/api/componentes", {"descricao": "APS"})
    quals = [
        await _post(
            client,
            "/api/tipo-qualificacao",
            {"descricao": f"Qualificação {i}", "componente_id": componente["id"]},
        )
        for i in range(3)
    ]
    habs = [
        await _post(
            client,
            "/api/tipo-habilitacao",
            {"codigo": f"HAB-{i}", "descricao": f"Habilitação {i}"},
        )
        for i in range(3)
    ]
    return SimpleNamespace(
        tipo=tipo,
        natureza=natureza,
        turno=turno,
        qual_ids=[q["id"] for q in quals],
        hab_ids=[h["id"] for h in habs],
    )


def _body(refs: SimpleNamespace, **overrides) -> dict:
    body = {
        "codigo_unidade": "0001",
        "nome": "UBS Central",
        "cnes": "2269311",
        "cnpj": "08778201000126",
        "cidade": "Salvador",
        "logradouro": "Av. Sete de Setembro",
        "bairro": "Centro",
        "numero": "12",
        "ativo": "N",
        "tipo_estabelecimento_id": refs.tipo["id"],
        "tipo_natureza_id": refs.natureza["id"],
        "tipo_turno_id": refs.turno["id"],
    }
    body.update(overrides)
    return body


class TestReferenceLists:
    @pytest.mark.parametrize(
        "path",
        ["tipo-estabelecimento", "natureza", "turnos", "tipo-qualificacao"],
    )
    async def test_reference_lists(self, client: AsyncClient, refs, path: str):
        response = await client.get(f"{PREFIX}/{path}")

        assert response.status_code == 200
        items = response.json()
        assert items
        assert set(items[0]) == {"id", "descricao"}

    async def test_habilitacao_reference_includes_codigo(
        self, client: AsyncClient, refs
    ):
        response = await client.get(f"{PREFIX}/tipo-habilitacao")

        items = response.json()
        assert [h["id"] for h in items] == refs.hab_ids
        assert items[0]["codigo"] == "HAB-0"


class TestCreate:
    async def test_create_with_associations(self, client: AsyncClient, refs):
        response = await client.post(
            PREFIX,
            json=_body(
                refs,
                qualificacoes=refs.qual_ids[:2],
                habilitacoes=refs.hab_ids[1:],
            ),
        )

        assert response.status_code == 201
        body = response.json()
        assert body["nome"] == "UBS Central"
        assert body["tipo_estabelecimento_descricao"] == "UBS"
        assert body["tipo_natureza_descricao"] == "Pública"
        assert body["tipo_turno_descricao"] == "Integral"
        assert body["qualificacoes"] == refs.qual_ids[:2]
        assert {h["codigo"] for h in body["habilitacoes"]} == {"HAB-1", "HAB-2"}

    async def test_numeric_coordinates_are_accepted(self, client: AsyncClient, refs):
        response = await client.post(
            PREFIX,
            json=_body(refs, ativo="S", latitude=-12.97, longitude=-38.5),
        )

        assert response.status_code == 201
        assert response.json()["latitude"] == "-12.97"

    async def test_activation_without_coordinates(self, client: AsyncClient, refs):
        response = await client.post(PREFIX, json=_body(refs, ativo="S"))

        assert response.status_code == 400
        assert "Latitude and longitude" in response.json()["detail"]

    async def test_missing_required_fields(self, client: AsyncClient):
        response = await client.post(PREFIX, json={"nome": "  "})

        assert response.status_code == 400
        detail = response.json()["detail"]
        assert "Nome is required" in detail
        assert "Natureza is required" in detail

    async def test_padded_values_are_trimmed_before_length_check(
        self, client: AsyncClient, refs
    ):
        nome = "A" * 255
        response = await client.post(
            PREFIX, json=_body(refs, nome=f"  {nome}  ", cnes=" 2269311 ")
        )

        assert response.status_code == 201, response.text
        assert response.json()["nome"] == nome
        assert response.json()["cnes"] == "2269311"

    async def test_null_ativo_is_stored_as_inactive(self, client: AsyncClient, refs):
        response = await client.post(PREFIX, json=_body(refs, ativo=None))

        assert response.status_code == 201
        assert response.json()["ativo"] == "N"

    async def test_invalid_ativo_flag(self, client: AsyncClient, refs):
        response = await client.post(PREFIX, json=_body(refs, ativo="Y"))

        assert response.status_code == 400

    async def test_duplicate_codigo_unidade(self, client: AsyncClient, refs):
        await _post(client, PREFIX, _body(refs))

        response = await client.post(
            PREFIX, json=_body(refs, cnes="9999999", cnpj="00000000000191")
        )

        assert response.status_code == 409
        assert response.json()["code"] == "DUPLICATE"

    async def test_unknown_habilitacao_rolls_back(self, client: AsyncClient, refs):
        response = await client.post(PREFIX, json=_body(refs, habilitacoes=[4040]))

        assert response.status_code == 400
        assert response.json()["detail"] == "Habilitação not found: 4040"
        assert (await client.get(PREFIX)).json() == []


class TestReadUpdateDelete:
    async def test_get_and_missing(self, client: AsyncClient, refs):
        created = await _post(client, PREFIX, _body(refs))

        found = await client.get(f"{PREFIX}/{created['id']}")
        missing = await client.get(f"{PREFIX}/99999")

        assert found.json()["id"] == created["id"]
        assert missing.status_code == 404
        assert missing.json()["code"] == "NOT_FOUND"

    async def test_update_keeps_or_clears_associations(
        self, client: AsyncClient, refs
    ):
        created = await _post(
            client,
            PREFIX,
            _body(refs, qualificacoes=refs.qual_ids, habilitacoes=refs.hab_ids),
        )
        url = f"{PREFIX}/{created['id']}"

        kept = await client.put(url, json=_body(refs, nome="UBS Renovada"))
        assert kept.status_code == 200
        assert kept.json()["nome"] == "UBS Renovada"
        assert kept.json()["qualificacoes"] == refs.qual_ids
        assert len(kept.json()["habilitacoes"]) == 3

        changed = await client.put(
            url,
            json=_body(refs, qualificacoes=[refs.qual_ids[2]], habilitacoes=[]),
        )
        assert changed.json()["qualificacoes"] == [refs.qual_ids[2]]
        assert changed.json()["habilitacoes"] == []

    async def test_update_missing(self, client: AsyncClient, refs):
        response = await client.put(f"{PREFIX}/424242", json=_body(refs))

        assert response.status_code == 404

    async def test_delete(self, client: AsyncClient, refs):
        created = await _post(
            client, PREFIX, _body(refs, habilitacoes=refs.hab_ids[:1])
        )

        response = await client.delete(f"{PREFIX}/{created['id']}")

        assert response.status_code == 200
        assert response.json() == {"message": "Estabelecimento deleted successfully"}
        assert (await client.get(f"{PREFIX}/{created['id']}")).status_code == 404
        # Habilitation itself is untouched
        habs = await client.get("/api/tipo-habilitacao")
        assert len(habs.json()) == 3

    async def test_referenced_lookup_cannot_be_deleted(
        self, client: AsyncClient, refs
    ):
        await _post(client, PREFIX, _body(refs))

        response = await client.delete(f"/api/natureza/{refs.natureza['id']}")

        assert response.status_code == 409


class TestListing:
    async def _seed(self, client: AsyncClient, refs) -> None:
        for i, (nome, cidade) in enumerate(
            (("Hospital B", "Feira"), ("Clínica A", "Ilhéus"), ("Posto C", "Feira"))
        ):
            await _post(
                client,
                PREFIX,
                _body(
                    refs,
                    nome=nome,
                    cidade=cidade,
                    codigo_unidade=f"C{i}",
                    cnes=f"{i}",
                    cnpj=f"{i}",
                ),
            )

    async def test_list_search(self, client: AsyncClient, refs):
        await self._seed(client, refs)

        response = await client.get(PREFIX, params={"search": "feira"})

        assert [e["nome"] for e in response.json()] == ["Hospital B", "Posto C"]

    async def test_paginated_sorting(self, client: AsyncClient, refs):
        await self._seed(client, refs)

        response = await client.get(
            f"{PREFIX}/paginated",
            params={"sortKey": "nome", "sortOrder": "DESC", "limit": 2},
        )

        body = response.json()
        assert [e["nome"] for e in body["data"]] == ["Posto C", "Hospital B"]
        assert body["meta"] == {"total": 3, "totalPages": 2, "page": 1, "limit": 2}

    async def test_unknown_sort_key_uses_id(self, client: AsyncClient, refs):
        await self._seed(client, refs)

        response = await client.get(
            f"{PREFIX}/paginated", params={"sortKey": "nope"}
        )

        assert [e["nome"] for e in response.json()["data"]] == [
            "Hospital B",
            "Clínica A",
            "Posto C",
        ]


class TestCheckDuplicate:
    async def test_check_duplicate(self, client: AsyncClient, refs):
        created = await _post(client, PREFIX, _body(refs))
        url = f"{PREFIX}/check-duplicate"

        taken = await client.post(url, json={"field": "cnes", "value": "2269311"})
        own = await client.post(
            url,
            json={"field": "cnes", "value": "2269311", "excludeId": created["id"]},
        )

        assert taken.json() == {"isDuplicate": True, "field": "cnes"}
        assert own.json() == {"isDuplicate": False, "field": "cnes"}

    async def test_rejects_unknown_field(self, client: AsyncClient):
        response = await client.post(
            f"{PREFIX}/check-duplicate", json={"field": "nome", "value": "x"}
        )

        assert response.status_code == 400
