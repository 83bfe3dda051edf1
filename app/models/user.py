"""
User accounts: creators, company staff and admins.
"""
from datetime import datetime
from werkzeug.security import generate_password_hash, check_password_hash

from ..extensions import db
from ..utils.validators import calculate_age


class User(db.Model):
    """A marketplace account. `role` decides which dashboards it sees."""
    __tablename__ = 'users'

    id = db.Column(db.Integer, primary_key=True)
    role = db.Column(db.String(20), nullable=False, default='creator')  # company, creator, admin

    # Identity
    name = db.Column(db.String(200), nullable=False)
    email = db.Column(db.String(255), nullable=False, unique=True, index=True)
    password_hash = db.Column(db.String(255))
    avatar_url = db.Column(db.String(500))
    bio = db.Column(db.Text)
    date_of_birth = db.Column(db.Date)
    gender = db.Column(db.String(30))  # masculino, feminino, outro, prefiro_nao_informar
    niche = db.Column(db.JSON, default=list)
    portfolio_url = db.Column(db.String(500))

    # Social accounts
    instagram = db.Column(db.String(100))
    instagram_user_id = db.Column(db.String(50))
    instagram_followers = db.Column(db.Integer)
    instagram_following = db.Column(db.Integer)
    instagram_posts = db.Column(db.Integer)
    instagram_engagement_rate = db.Column(db.Float)
    instagram_verified = db.Column(db.Boolean, default=False)
    instagram_last_updated = db.Column(db.DateTime)
    tiktok = db.Column(db.String(100))
    tiktok_followers = db.Column(db.Integer)
    youtube = db.Column(db.String(100))
    youtube_subscribers = db.Column(db.Integer)

    # Payments
    pix_key = db.Column(db.String(150))
    cpf = db.Column(db.String(14))
    phone = db.Column(db.String(20))

    # Address
    cep = db.Column(db.String(9))
    street = db.Column(db.String(200))
    number = db.Column(db.String(20))
    neighborhood = db.Column(db.String(100))
    city = db.Column(db.String(100))
    state = db.Column(db.String(2))
    complement = db.Column(db.String(100))

    # Status
    is_verified = db.Column(db.Boolean, default=False)
    is_banned = db.Column(db.Boolean, default=False)

    # Company staff: the company the dashboard is currently scoped to
    active_company_id = db.Column(db.Integer)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def set_password(self, password: str) -> None:
        self.password_hash = generate_password_hash(password)

    def check_password(self, password: str) -> bool:
        if not self.password_hash:
            return False
        return check_password_hash(self.password_hash, password)

    @property
    def age(self):
        if not self.date_of_birth:
            return None
        return calculate_age(self.date_of_birth)

    def to_dict(self, include_private=False):
        data = {
            'id': self.id,
            'role': self.role,
            'name': self.name,
            'avatar_url': self.avatar_url,
            'bio': self.bio,
            'gender': self.gender,
            'age': self.age,
            'niche': self.niche or [],
            'portfolio_url': self.portfolio_url,
            'instagram': self.instagram,
            'instagram_followers': self.instagram_followers,
            'instagram_engagement_rate': self.instagram_engagement_rate,
            'instagram_verified': self.instagram_verified,
            'tiktok': self.tiktok,
            'tiktok_followers': self.tiktok_followers,
            'youtube': self.youtube,
            'youtube_subscribers': self.youtube_subscribers,
            'city': self.city,
            'state': self.state,
            'is_verified': self.is_verified,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }
        if include_private:
            data.update({
                'email': self.email,
                'date_of_birth': self.date_of_birth.isoformat() if self.date_of_birth else None,
                'pix_key': self.pix_key,
                'cpf': self.cpf,
                'phone': self.phone,
                'cep': self.cep,
                'street': self.street,
                'number': self.number,
                'neighborhood': self.neighborhood,
                'complement': self.complement,
                'is_banned': self.is_banned,
                'active_company_id': self.active_company_id,
            })
        return data

    def __repr__(self):
        return f'<User {self.email} ({self.role})>'


class FavoriteCreator(db.Model):
    """A creator bookmarked by a company."""
    __tablename__ = 'favorite_creators'

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(db.Integer, db.ForeignKey('companies.id'), nullable=False)
    creator_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    creator = db.relationship('User')

    __table_args__ = (
        db.UniqueConstraint('company_id', 'creator_id', name='uq_favorite_creator'),
    )

    def to_dict(self):
        return {
            'id': self.id,
            'company_id': self.company_id,
            'creator_id': self.creator_id,
            'creator': self.creator.to_dict() if self.creator else None,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }
