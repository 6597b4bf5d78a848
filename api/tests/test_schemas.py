"""Tests for request/response schema validation."""

import pytest
from pydantic import ValidationError

from schemas import (
    CheckDuplicateRequest,
    CheckDuplicateResponse,
    EstabelecimentoWrite,
    HabilitacaoCreate,
    MunicipioCreate,
    Page,
    PaginationMeta,
    RacaCreate,
)

pytestmark = pytest.mark.unit


class TestLookupInputs:
    def test_strips_whitespace(self):
        assert RacaCreate(descricao="  Parda ").descricao == "Parda"

    def test_respects_column_length(self):
        with pytest.raises(ValidationError):
            RacaCreate(descricao="x" * 16)

    def test_habilitacao_codigo_normalized(self):
        assert HabilitacaoCreate(codigo=" abc-1 ", descricao="A").codigo == "ABC-1"

    @pytest.mark.parametrize("codigo", ["", "AB C", "AB_1", "ÁB"])
    def test_habilitacao_codigo_pattern(self, codigo):
        with pytest.raises(ValidationError):
            HabilitacaoCreate(codigo=codigo, descricao="A")

    def test_municipio_requires_positive_estado(self):
        with pytest.raises(ValidationError):
            MunicipioCreate(codigo="1", descricao="X", estado_id=0)


class TestEstabelecimentoWrite:
    def test_defaults(self):
        body = EstabelecimentoWrite()
        assert body.ativo == "N"
        assert body.qualificacoes is None
        assert body.habilitacoes is None

    def test_coordinates_become_strings(self):
        body = EstabelecimentoWrite(latitude=-9.66, longitude=-35)
        assert body.latitude == "-9.66"
        assert body.longitude == "-35"

    def test_rejects_unknown_ativo(self):
        with pytest.raises(ValidationError):
            EstabelecimentoWrite(ativo="s")

    def test_strips_before_length_limit(self):
        body = EstabelecimentoWrite(nome=" " + "A" * 255 + "  ", cnes=" 123 ")
        assert body.nome == "A" * 255
        assert body.cnes == "123"

    def test_accepts_null_ativo(self):
        assert EstabelecimentoWrite(ativo=None).ativo is None


class TestEnvelopes:
    def test_page_meta_uses_camel_case_total_pages(self):
        page = Page[int](
            data=[1, 2],
            meta=PaginationMeta(total=2, total_pages=1, page=1, limit=10),
        )

        dumped = page.model_dump(by_alias=True)

        assert dumped["meta"] == {"total": 2, "totalPages": 1, "page": 1, "limit": 10}

    def test_check_duplicate_accepts_alias_and_name(self):
        by_alias = CheckDuplicateRequest.model_validate(
            {"field": "cnpj", "value": " 1 ", "excludeId": 4}
        )
        by_name = CheckDuplicateRequest(field="cnpj", value="1", exclude_id=4)

        assert by_alias == by_name
        assert by_alias.value == "1"

    def test_check_duplicate_response_alias(self):
        response = CheckDuplicateResponse(is_duplicate=True, field="cnes")
        assert response.model_dump(by_alias=True) == {
            "isDuplicate": True,
            "field": "cnes",
        }
