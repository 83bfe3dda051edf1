"""
Enrichment Service for CreatorConnect.

Public-registry lookups used to pre-fill and enrich company profiles:
- CNPJ via BrasilAPI, falling back to ReceitaWS
- CEP via ViaCEP
- Municipalities per state via IBGE

Lookups are cached. The per-client CNPJ limit lives on the API route
(Flask-Limiter).
"""

import unicodedata
import requests
from datetime import datetime, date
from typing import Dict, Any, Optional, List
from flask import current_app

from ..extensions import db
from ..models import Company
from ..utils.brazil import STATES
from ..utils.cache import cache
from ..utils.exceptions import (
    ValidationError,
    NotFoundError,
    CnpjNotFoundError,
    ExternalServiceError,
)
from ..utils.validators import only_digits, validate_cnpj, clean_cep

CNPJ_CACHE_SECONDS = 24 * 3600
CEP_CACHE_SECONDS = 24 * 3600
MUNICIPALITIES_CACHE_SECONDS = 7 * 24 * 3600
REQUEST_TIMEOUT = 10

CNAE_CATEGORY_KEYWORDS = (
    ('saude', ('saude', 'farmac', 'medic')),
    ('beleza', ('beleza', 'cosmet', 'estetic', 'perfum')),
    ('moda', ('moda', 'vestuario', 'roupa', 'confec', 'calcad')),
    ('tecnologia', ('tecnologia', 'informatica', 'software', 'computad')),
    ('alimentos', ('aliment', 'comida', 'restaur', 'padaria', 'chocolat')),
    ('bebidas', ('bebida', 'cervej', 'vinho')),
    ('fitness', ('fitness', 'academia', 'esport', 'suplement')),
    ('casa', ('casa', 'decoracao', 'moveis')),
    ('pets', ('pet', 'animal', 'veterinar')),
    ('infantil', ('infantil', 'crianca', 'brinquedo')),
)


def fold_accents(text: str) -> str:
    """Lower-case ASCII form: 'Cosméticos' -> 'cosmeticos'."""
    return unicodedata.normalize('NFKD', text).encode('ascii', 'ignore').decode('ascii').lower()


def match_cnae_to_category(description: str) -> str:
    """Map a CNAE activity description to a company category."""
    if not description:
        return 'outros'
    text = fold_accents(description)
    for category, keywords in CNAE_CATEGORY_KEYWORDS:
        if any(keyword in text for keyword in keywords):
            return category
    return 'outros'


def calculate_enrichment_score(company: Company) -> int:
    """
    Profile completeness from 0 to 100.

    basics 20, CNPJ 15, website 20, Instagram 15, briefing 20, e-commerce 10
    """
    score = 0

    if company.name:
        score += 5
    if company.category:
        score += 5
    if company.city or company.state:
        score += 5
    if company.cnpj:
        score += 5

    if company.cnpj_razao_social:
        score += 5
    if company.cnpj_atividade_principal:
        score += 5
    if company.cnpj_situacao or company.cnpj_data_abertura or company.cnpj_capital_social:
        score += 5

    if company.website_title:
        score += 4
    if company.website_content:
        score += 6
    if company.website_about:
        score += 5
    if company.website_keywords:
        score += 5

    if company.instagram_followers:
        score += 5
    if company.instagram_bio:
        score += 5
    if company.instagram_profile_pic:
        score += 5

    if company.structured_briefing:
        score += 8
    if company.description:
        score += 6
    if company.tagline:
        score += 6

    if company.ecommerce_product_count:
        score += 5
    if company.ecommerce_categories:
        score += 5

    return min(score, 100)


def _years_since(opening: Optional[str]) -> Optional[str]:
    """'2015-03-01' or '01/03/2015' -> 'X anos de mercado'."""
    if not opening:
        return None
    try:
        if '/' in opening:
            day, month, year = (int(p) for p in opening.split('/'))
            opened = date(year, month, day)
        else:
            opened = date.fromisoformat(opening[:10])
    except ValueError:
        return None
    years = (date.today() - opened).days // 365
    if years < 1:
        return 'Menos de 1 ano de mercado'
    return f"{years} {'ano' if years == 1 else 'anos'} de mercado"


def _finish(data: Dict[str, Any]) -> Dict[str, Any]:
    data['cep'] = only_digits(data.get('cep')) or None
    data['telefone'] = only_digits(data.get('telefone'))[:11] or None
    data['suggestedCategory'] = match_cnae_to_category(data.get('atividadePrincipal'))
    data['tempoMercado'] = _years_since(data.get('dataAbertura'))
    data['situacaoOk'] = (data.get('situacao') or '').upper() == 'ATIVA'
    return data


def normalize_brasilapi(raw: Dict[str, Any]) -> Dict[str, Any]:
    return _finish({
        'razaoSocial': raw.get('razao_social'),
        'nomeFantasia': raw.get('nome_fantasia') or None,
        'cep': raw.get('cep'),
        'logradouro': raw.get('logradouro'),
        'numero': raw.get('numero'),
        'complemento': raw.get('complemento') or None,
        'bairro': raw.get('bairro'),
        'municipio': raw.get('municipio'),
        'uf': raw.get('uf'),
        'telefone': raw.get('ddd_telefone_1'),
        'email': (raw.get('email') or '').lower() or None,
        'situacao': raw.get('descricao_situacao_cadastral'),
        'atividadePrincipal': raw.get('cnae_fiscal_descricao'),
        'dataAbertura': raw.get('data_inicio_atividade'),
        'capitalSocial': str(raw['capital_social']) if raw.get('capital_social') is not None else None,
        'naturezaJuridica': raw.get('natureza_juridica'),
        'porte': raw.get('porte'),
        'qsa': [
            {'nome': s.get('nome_socio'), 'qual': s.get('qualificacao_socio')}
            for s in raw.get('qsa') or []
        ],
        'fonte': 'brasilapi',
    })


def normalize_receitaws(raw: Dict[str, Any]) -> Dict[str, Any]:
    activities = raw.get('atividade_principal') or []
    return _finish({
        'razaoSocial': raw.get('nome'),
        'nomeFantasia': raw.get('fantasia') or None,
        'cep': raw.get('cep'),
        'logradouro': raw.get('logradouro'),
        'numero': raw.get('numero'),
        'complemento': raw.get('complemento') or None,
        'bairro': raw.get('bairro'),
        'municipio': raw.get('municipio'),
        'uf': raw.get('uf'),
        'telefone': raw.get('telefone'),
        'email': (raw.get('email') or '').lower() or None,
        'situacao': raw.get('situacao'),
        'atividadePrincipal': activities[0].get('text') if activities else None,
        'dataAbertura': raw.get('abertura'),
        'capitalSocial': raw.get('capital_social'),
        'naturezaJuridica': raw.get('natureza_juridica'),
        'porte': raw.get('porte'),
        'qsa': [{'nome': s.get('nome'), 'qual': s.get('qual')} for s in raw.get('qsa') or []],
        'fonte': 'receitaws',
    })


class EnrichmentService:
    """
    Registry lookups and company enrichment.

    Usage:
        service = EnrichmentService()
        data = service.lookup_cnpj('11222333000181')
    """

    def __init__(self, session=None):
        self.http = session or requests

    @property
    def config(self):
        return current_app.config

    # ==================== CNPJ ====================

    def _get_json(self, service: str, url: str, params: Optional[Dict[str, Any]] = None):
        """GET a JSON document. Returns None on 404; raises ExternalServiceError on failure."""
        try:
            response = self.http.get(url, params=params, timeout=REQUEST_TIMEOUT)
        except requests.RequestException as e:
            current_app.logger.warning(f"{service} request failed: {e}")
            raise ExternalServiceError(service, 'request failed', e)

        if response.status_code == 404:
            return None
        if response.status_code != 200:
            current_app.logger.warning(f"{service} answered {response.status_code} for {url}")
            raise ExternalServiceError(service, f'HTTP {response.status_code}')
        try:
            return response.json()
        except ValueError as e:
            raise ExternalServiceError(service, 'invalid JSON', e)

    def _fetch_brasilapi(self, digits: str) -> Optional[Dict[str, Any]]:
        raw = self._get_json('BrasilAPI', f"{self.config['BRASILAPI_URL']}/cnpj/v1/{digits}")
        return normalize_brasilapi(raw) if raw else None

    def _fetch_receitaws(self, digits: str) -> Optional[Dict[str, Any]]:
        raw = self._get_json('ReceitaWS', f"{self.config['RECEITAWS_URL']}/cnpj/{digits}")
        if not raw or raw.get('status') == 'ERROR':
            return None
        return normalize_receitaws(raw)

    def fetch_cnpj(self, digits: str) -> Dict[str, Any]:
        """Query BrasilAPI, then ReceitaWS when BrasilAPI fails or does not know the CNPJ."""
        upstream_error = None
        try:
            data = self._fetch_brasilapi(digits)
            if data:
                return data
        except ExternalServiceError as e:
            upstream_error = e

        try:
            data = self._fetch_receitaws(digits)
        except ExternalServiceError:
            if upstream_error:
                raise
            raise CnpjNotFoundError(digits)

        if not data:
            raise CnpjNotFoundError(digits)
        return data

    def lookup_cnpj(self, cnpj: str) -> Dict[str, Any]:
        """
        Look up a CNPJ.

        Args:
            cnpj: Formatted or bare CNPJ

        Raises:
            ValidationError: invalid check digits
            CnpjNotFoundError: unknown to both registries
            ExternalServiceError: registries unavailable
        """
        digits = only_digits(cnpj)
        if not validate_cnpj(digits):
            raise ValidationError('CNPJ inválido', 'cnpj')

        cache_key = f'cnpj:{digits}'
        cached = cache.get(cache_key)
        if cached:
            return cached

        data = self.fetch_cnpj(digits)
        cache.set(cache_key, data, timeout=CNPJ_CACHE_SECONDS)
        return data

    def enrich_company_cnpj(self, company: Company, force: bool = False) -> bool:
        """
        Copy registry data onto the company.

        Skips companies refreshed in the last CNPJ_REFRESH_DAYS unless forced.
        Blank profile fields are filled from the registry; filled ones are kept.

        Returns:
            True when the company was updated
        """
        if not company.cnpj:
            return False

        refresh_days = self.config.get('CNPJ_REFRESH_DAYS', 30)
        if not force and company.cnpj_last_updated and \
                (datetime.utcnow() - company.cnpj_last_updated).days < refresh_days:
            return False

        data = self.lookup_cnpj(company.cnpj)

        company.cnpj_razao_social = data.get('razaoSocial')
        company.cnpj_nome_fantasia = data.get('nomeFantasia')
        company.cnpj_situacao = data.get('situacao')
        company.cnpj_atividade_principal = data.get('atividadePrincipal')
        company.cnpj_data_abertura = data.get('dataAbertura')
        company.cnpj_capital_social = data.get('capitalSocial')
        company.cnpj_natureza_juridica = data.get('naturezaJuridica')
        company.cnpj_qsa = data.get('qsa') or []
        company.cnpj_last_updated = datetime.utcnow()

        fill = {
            'trade_name': data.get('nomeFantasia') or data.get('razaoSocial'),
            'phone': data.get('telefone'),
            'cep': data.get('cep'),
            'street': data.get('logradouro'),
            'number': data.get('numero'),
            'neighborhood': data.get('bairro'),
            'complement': data.get('complemento'),
            'city': data.get('municipio'),
            'state': data.get('uf') if data.get('uf') in STATES else None,
        }
        for field, value in fill.items():
            if value and not getattr(company, field):
                setattr(company, field, value)
        if not company.category and data.get('atividadePrincipal'):
            company.category = data['suggestedCategory']

        company.enrichment_score = calculate_enrichment_score(company)
        company.last_enriched_at = datetime.utcnow()
        db.session.commit()

        current_app.logger.info(f"CNPJ enrichment updated company {company.id} (score {company.enrichment_score})")
        return True

    def refresh_score(self, company: Company) -> int:
        company.enrichment_score = calculate_enrichment_score(company)
        db.session.commit()
        return company.enrichment_score

    # ==================== CEP & IBGE ====================

    def lookup_cep(self, cep: str) -> Dict[str, Any]:
        digits = clean_cep(cep)
        if not digits:
            raise ValidationError('CEP inválido', 'cep')

        cache_key = f'cep:{digits}'
        cached = cache.get(cache_key)
        if cached:
            return cached

        raw = self._get_json('ViaCEP', f"{self.config['VIACEP_URL']}/{digits}/json/")
        if not raw or raw.get('erro'):
            raise NotFoundError('CEP', digits)

        data = {
            'cep': digits,
            'street': raw.get('logradouro') or None,
            'complement': raw.get('complemento') or None,
            'neighborhood': raw.get('bairro') or None,
            'city': raw.get('localidade'),
            'state': raw.get('uf'),
            'ibge': raw.get('ibge'),
        }
        cache.set(cache_key, data, timeout=CEP_CACHE_SECONDS)
        return data

    def list_municipalities(self, uf: str) -> List[Dict[str, Any]]:
        uf = (uf or '').upper()
        if uf not in STATES:
            raise ValidationError(f'Invalid state: {uf}', 'uf')

        cache_key = f'municipios:{uf}'
        cached = cache.get(cache_key)
        if cached:
            return cached

        raw = self._get_json(
            'IBGE',
            f"{self.config['IBGE_URL']}/localidades/estados/{uf}/municipios",
            params={'orderBy': 'nome'},
        ) or []
        municipalities = [{'id': m.get('id'), 'nome': m.get('nome')} for m in raw]
        cache.set(cache_key, municipalities, timeout=MUNICIPALITIES_CACHE_SECONDS)
        return municipalities


enrichment_service = EnrichmentService()
