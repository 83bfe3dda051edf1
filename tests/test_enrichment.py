"""
Tests for CNPJ/CEP enrichment.

The HTTP session is replaced with a MagicMock whose `get` answers from a
URL-keyed table, so no registry is contacted.
"""
from unittest.mock import MagicMock, patch

import pytest
import requests

from app.models import Company
from app.services.enrichment_service import (
    EnrichmentService,
    enrichment_service,
    match_cnae_to_category,
    calculate_enrichment_score,
)
from app.utils.exceptions import (
    CnpjNotFoundError,
    ExternalServiceError,
    ValidationError,
    NotFoundError,
)

CNPJ = '11222333000181'

BRASILAPI_PAYLOAD = {
    'razao_social': 'MARCA BELA COSMETICOS LTDA',
    'nome_fantasia': 'Marca Bela',
    'cep': '01310-100',
    'logradouro': 'AVENIDA PAULISTA',
    'numero': '1000',
    'bairro': 'BELA VISTA',
    'municipio': 'SAO PAULO',
    'uf': 'SP',
    'ddd_telefone_1': '(11) 3333-4444',
    'email': 'CONTATO@MARCABELA.COM.BR',
    'descricao_situacao_cadastral': 'ATIVA',
    'cnae_fiscal_descricao': 'Comércio varejista de cosméticos',
    'data_inicio_atividade': '2015-03-01',
    'capital_social': 50000,
    'qsa': [{'nome_socio': 'PAULA MARCA', 'qualificacao_socio': 'Sócio-Administrador'}],
}

RECEITAWS_PAYLOAD = {
    'status': 'OK',
    'nome': 'MARCA BELA COSMETICOS LTDA',
    'fantasia': '',
    'cep': '01.310-100',
    'municipio': 'SAO PAULO',
    'uf': 'SP',
    'situacao': 'ATIVA',
    'atividade_principal': [{'text': 'Comércio varejista de cosméticos'}],
    'abertura': '01/03/2015',
}


def make_response(status_code=200, payload=None):
    response = MagicMock()
    response.status_code = status_code
    response.json.return_value = payload
    return response


def make_session(routes):
    """Session whose get() answers by URL substring; unmatched URLs return 404."""
    session = MagicMock()

    def get(url, params=None, timeout=None):
        for fragment, answer in routes.items():
            if fragment in url:
                if isinstance(answer, Exception):
                    raise answer
                return answer
        return make_response(404)

    session.get.side_effect = get
    return session


class TestHelpers:

    @pytest.mark.parametrize('description, category', [
        ('Comércio varejista de cosméticos', 'beleza'),
        ('COMÉRCIO VAREJISTA DE ARTIGOS DO VESTUÁRIO E ACESSÓRIOS', 'moda'),
        ('Fabricação de móveis com predominância de madeira', 'casa'),
        ('Serviços de estética e outros serviços de cuidados com a beleza', 'beleza'),
        ('Confecção de roupas', 'moda'),
        ('Desenvolvimento de software', 'tecnologia'),
        ('Serviços de contabilidade', 'outros'),
        (None, 'outros'),
    ])
    def test_cnae_category(self, description, category):
        assert match_cnae_to_category(description) == category

    def test_empty_company_score(self):
        assert calculate_enrichment_score(Company(name='X')) == 5


class TestCnpjLookup:
    """Tests for lookup_cnpj."""

    def test_brasilapi(self, app):
        session = make_session({'brasilapi': make_response(200, BRASILAPI_PAYLOAD)})
        data = EnrichmentService(session=session).lookup_cnpj('11.222.333/0001-81')

        assert data['fonte'] == 'brasilapi'
        assert data['razaoSocial'] == 'MARCA BELA COSMETICOS LTDA'
        assert data['cep'] == '01310100'
        assert data['telefone'] == '1133334444'
        assert data['email'] == 'contato@marcabela.com.br'
        assert data['suggestedCategory'] == 'beleza'
        assert data['situacaoOk'] is True
        assert data['tempoMercado'].endswith('anos de mercado')
        assert data['qsa'] == [{'nome': 'PAULA MARCA', 'qual': 'Sócio-Administrador'}]

    def test_falls_back_to_receitaws_on_404(self, app):
        session = make_session({'receitaws': make_response(200, RECEITAWS_PAYLOAD)})
        data = EnrichmentService(session=session).lookup_cnpj(CNPJ)

        assert data['fonte'] == 'receitaws'
        assert data['nomeFantasia'] is None
        assert data['cep'] == '01310100'
        assert session.get.call_count == 2

    def test_falls_back_when_brasilapi_is_down(self, app):
        session = make_session({
            'brasilapi': requests.ConnectionError('boom'),
            'receitaws': make_response(200, RECEITAWS_PAYLOAD),
        })
        assert EnrichmentService(session=session).lookup_cnpj(CNPJ)['fonte'] == 'receitaws'

    def test_unknown_everywhere(self, app):
        session = make_session({'receitaws': make_response(200, {'status': 'ERROR', 'message': 'CNPJ inválido'})})
        with pytest.raises(CnpjNotFoundError):
            EnrichmentService(session=session).lookup_cnpj(CNPJ)

    def test_both_registries_down(self, app):
        session = make_session({
            'brasilapi': make_response(500),
            'receitaws': make_response(503),
        })
        with pytest.raises(ExternalServiceError):
            EnrichmentService(session=session).lookup_cnpj(CNPJ)

    def test_invalid_check_digits_skip_network(self, app):
        session = make_session({})
        with pytest.raises(ValidationError):
            EnrichmentService(session=session).lookup_cnpj('11222333000182')
        session.get.assert_not_called()

    def test_result_is_cached(self, app):
        session = make_session({'brasilapi': make_response(200, BRASILAPI_PAYLOAD)})
        service = EnrichmentService(session=session)
        service.lookup_cnpj(CNPJ)
        service.lookup_cnpj(CNPJ)
        assert session.get.call_count == 1


class TestCompanyEnrichment:

    def test_fills_blank_fields_only(self, app, sample_company):
        sample_company.city = 'Campinas'
        session = make_session({'brasilapi': make_response(200, BRASILAPI_PAYLOAD)})

        assert EnrichmentService(session=session).enrich_company_cnpj(sample_company) is True
        company = Company.query.get(sample_company.id)
        assert company.cnpj_razao_social == 'MARCA BELA COSMETICOS LTDA'
        assert company.city == 'Campinas'
        assert company.street == 'AVENIDA PAULISTA'
        assert company.enrichment_score > 0

    def test_recent_refresh_is_skipped(self, app, sample_company):
        session = make_session({'brasilapi': make_response(200, BRASILAPI_PAYLOAD)})
        service = EnrichmentService(session=session)
        service.enrich_company_cnpj(sample_company)
        assert service.enrich_company_cnpj(sample_company) is False
        assert service.enrich_company_cnpj(sample_company, force=True) is True


class TestCep:

    def test_lookup_cep(self, app):
        session = make_session({'viacep': make_response(200, {
            'cep': '01310-100', 'logradouro': 'Avenida Paulista', 'bairro': 'Bela Vista',
            'localidade': 'São Paulo', 'uf': 'SP', 'ibge': '3550308',
        })})
        data = EnrichmentService(session=session).lookup_cep('01310-100')
        assert data['city'] == 'São Paulo'
        assert data['complement'] is None

    def test_unknown_cep(self, app):
        session = make_session({'viacep': make_response(200, {'erro': True})})
        with pytest.raises(NotFoundError):
            EnrichmentService(session=session).lookup_cep('99999999')


class TestEnrichmentApi:
    """Tests for the /api/enrichment endpoints."""

    def test_cnpj_endpoint(self, client, creator_headers):
        session = make_session({'brasilapi': make_response(200, BRASILAPI_PAYLOAD)})
        with patch.object(enrichment_service, 'http', session):
            response = client.get(f'/api/enrichment/cnpj/{CNPJ}', headers=creator_headers)

        assert response.status_code == 200
        assert response.get_json()['data']['uf'] == 'SP'

    def test_cnpj_rate_limited(self, client, creator_headers):
        session = make_session({})
        valid = ['11222333000181', '11444777000161', '04252011000110', '19131243000197']
        with patch.object(enrichment_service, 'http', session):
            responses = [client.get(f'/api/enrichment/cnpj/{c}', headers=creator_headers) for c in valid]

        assert [r.status_code for r in responses] == [404, 404, 404, 429]
        assert responses[-1].get_json()['error']['code'] == 'RATE_LIMITED'
        assert int(responses[-1].headers['Retry-After']) > 0

    def test_cnpj_limit_is_per_user(self, client, creator_headers, sample_company_user, headers_for):
        session = make_session({})
        with patch.object(enrichment_service, 'http', session):
            for _ in range(3):
                client.get(f'/api/enrichment/cnpj/{CNPJ}', headers=creator_headers)
            blocked = client.get(f'/api/enrichment/cnpj/{CNPJ}', headers=creator_headers)
            other = client.get(f'/api/enrichment/cnpj/{CNPJ}', headers=headers_for(sample_company_user))

        assert blocked.status_code == 429
        assert blocked.get_json()['error']['message'] == 'Aguarde 1 minuto antes de tentar novamente.'
        assert other.status_code == 404

    def test_invalid_cnpj(self, client, creator_headers):
        response = client.get('/api/enrichment/cnpj/123', headers=creator_headers)
        assert response.status_code == 400
        assert response.get_json()['error']['code'] == 'INVALID_CNPJ'

    def test_municipalities_bad_state(self, client):
        assert client.get('/api/enrichment/municipalities/XX').status_code == 400
