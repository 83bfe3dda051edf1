"""
Companies (brands) and their staff.
"""
from datetime import datetime

from ..extensions import db
from ..utils.validators import format_cnpj


class Company(db.Model):
    """A brand running campaigns. Enrichment fields are filled by EnrichmentService."""
    __tablename__ = 'companies'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(200), nullable=False)
    trade_name = db.Column(db.String(200))
    slug = db.Column(db.String(120), unique=True, index=True)
    cnpj = db.Column(db.String(14), index=True)
    description = db.Column(db.Text)
    tagline = db.Column(db.String(200))
    category = db.Column(db.String(30))
    logo_url = db.Column(db.String(500))
    website = db.Column(db.String(300))
    instagram = db.Column(db.String(100))
    email = db.Column(db.String(255))
    phone = db.Column(db.String(20))

    # Address
    cep = db.Column(db.String(9))
    street = db.Column(db.String(200))
    number = db.Column(db.String(20))
    neighborhood = db.Column(db.String(100))
    city = db.Column(db.String(100))
    state = db.Column(db.String(2))
    complement = db.Column(db.String(100))

    # Discovery / community settings
    is_discoverable = db.Column(db.Boolean, default=True)
    is_featured = db.Column(db.Boolean, default=False)
    auto_join_community = db.Column(db.Boolean, default=True)
    onboarding_completed = db.Column(db.Boolean, default=False)
    instagram_access_token = db.Column(db.Text)
    instagram_business_id = db.Column(db.String(50))

    # Receita Federal data
    cnpj_razao_social = db.Column(db.String(300))
    cnpj_nome_fantasia = db.Column(db.String(300))
    cnpj_situacao = db.Column(db.String(50))
    cnpj_atividade_principal = db.Column(db.String(300))
    cnpj_data_abertura = db.Column(db.String(20))
    cnpj_capital_social = db.Column(db.String(50))
    cnpj_natureza_juridica = db.Column(db.String(200))
    cnpj_qsa = db.Column(db.JSON)
    cnpj_last_updated = db.Column(db.DateTime)

    # Website / social / e-commerce enrichment
    website_title = db.Column(db.String(300))
    website_description = db.Column(db.Text)
    website_content = db.Column(db.Text)
    website_about = db.Column(db.Text)
    website_keywords = db.Column(db.JSON)
    instagram_followers = db.Column(db.Integer)
    instagram_bio = db.Column(db.Text)
    instagram_profile_pic = db.Column(db.String(500))
    structured_briefing = db.Column(db.JSON)
    ecommerce_product_count = db.Column(db.Integer)
    ecommerce_categories = db.Column(db.JSON)
    enrichment_score = db.Column(db.Integer, default=0)
    last_enriched_at = db.Column(db.DateTime)

    created_by_user_id = db.Column(db.Integer, db.ForeignKey('users.id'))
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    members = db.relationship('CompanyMember', backref='company', lazy='dynamic',
                              cascade='all, delete-orphan')

    def to_dict(self, include_enrichment=False):
        data = {
            'id': self.id,
            'name': self.name,
            'trade_name': self.trade_name,
            'slug': self.slug,
            'cnpj': format_cnpj(self.cnpj) if self.cnpj else None,
            'description': self.description,
            'tagline': self.tagline,
            'category': self.category,
            'logo_url': self.logo_url,
            'website': self.website,
            'instagram': self.instagram,
            'city': self.city,
            'state': self.state,
            'is_discoverable': self.is_discoverable,
            'is_featured': self.is_featured,
            'auto_join_community': self.auto_join_community,
            'onboarding_completed': self.onboarding_completed,
            'enrichment_score': self.enrichment_score or 0,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }
        if include_enrichment:
            data.update({
                'email': self.email,
                'phone': self.phone,
                'cep': self.cep,
                'street': self.street,
                'number': self.number,
                'neighborhood': self.neighborhood,
                'complement': self.complement,
                'cnpj_razao_social': self.cnpj_razao_social,
                'cnpj_nome_fantasia': self.cnpj_nome_fantasia,
                'cnpj_situacao': self.cnpj_situacao,
                'cnpj_atividade_principal': self.cnpj_atividade_principal,
                'cnpj_data_abertura': self.cnpj_data_abertura,
                'cnpj_capital_social': self.cnpj_capital_social,
                'cnpj_natureza_juridica': self.cnpj_natureza_juridica,
                'cnpj_qsa': self.cnpj_qsa or [],
                'cnpj_last_updated': self.cnpj_last_updated.isoformat() if self.cnpj_last_updated else None,
                'website_title': self.website_title,
                'instagram_followers': self.instagram_followers,
                'ecommerce_product_count': self.ecommerce_product_count,
            })
        return data

    def __repr__(self):
        return f'<Company {self.name}>'


class CompanyMember(db.Model):
    """Staff link between a user and a company."""
    __tablename__ = 'company_members'

    ROLES = ('owner', 'admin', 'member', 'reader')

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(db.Integer, db.ForeignKey('companies.id'), nullable=False)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)
    role = db.Column(db.String(20), nullable=False, default='member')
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    user = db.relationship('User')

    __table_args__ = (
        db.UniqueConstraint('company_id', 'user_id', name='uq_company_member'),
    )

    @property
    def can_manage(self):
        return self.role in ('owner', 'admin')

    @property
    def can_write(self):
        return self.role != 'reader'

    def to_dict(self):
        return {
            'id': self.id,
            'company_id': self.company_id,
            'user_id': self.user_id,
            'role': self.role,
            'user': {
                'id': self.user.id,
                'name': self.user.name,
                'email': self.user.email,
                'avatar_url': self.user.avatar_url,
            } if self.user else None,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }


class CompanyUserInvite(db.Model):
    """Pending staff invite sent by e-mail."""
    __tablename__ = 'company_user_invites'

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(db.Integer, db.ForeignKey('companies.id'), nullable=False)
    email = db.Column(db.String(255), nullable=False)
    role = db.Column(db.String(20), default='member')
    token = db.Column(db.String(64), unique=True, nullable=False)
    status = db.Column(db.String(20), default='pending')  # pending, accepted, cancelled
    invited_by_user_id = db.Column(db.Integer, db.ForeignKey('users.id'))
    expires_at = db.Column(db.DateTime, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    company = db.relationship('Company')

    @property
    def is_expired(self):
        return self.expires_at < datetime.utcnow()

    def to_dict(self):
        return {
            'id': self.id,
            'company_id': self.company_id,
            'company_name': self.company.name if self.company else None,
            'email': self.email,
            'role': self.role,
            'status': self.status,
            'expires_at': self.expires_at.isoformat() if self.expires_at else None,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }
