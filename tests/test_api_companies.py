"""
Tests for companies, staff management and creator discovery.
"""
import pytest

from app.models import Company, CompanyMember, CompanyUserInvite, FavoriteCreator, User


@pytest.fixture
def second_staff(db):
    user = User(name='Rafa Novo', email='rafa@marcabela.com.br', role='company')
    db.session.add(user)
    db.session.commit()
    return user


class TestCompanies:
    """Tests for creating and editing companies."""

    def test_create_company(self, client, db, headers_for):
        owner = User(name='Joana Café', email='joana@cafe.com.br', role='company')
        db.session.add(owner)
        db.session.commit()

        response = client.post('/api/companies', headers=headers_for(owner), json={
            'name': 'Café São João',
            'cnpj': '11.444.777/0001-61',
            'category': 'alimentos',
            'state': 'mg',
        })

        assert response.status_code == 201
        data = response.get_json()
        assert data['slug'] == 'cafe-sao-joao'
        assert data['cnpj'] == '11.444.777/0001-61'
        assert data['enrichment_score'] > 0
        assert owner.active_company_id == data['id']
        assert CompanyMember.query.filter_by(company_id=data['id'], user_id=owner.id).one().role == 'owner'

    def test_slug_is_unique(self, client, sample_company, sample_company_user, headers_for):
        response = client.post('/api/companies', headers=headers_for(sample_company_user),
                               json={'name': 'Marca Bela'})
        assert response.get_json()['slug'] == 'marca-bela-2'

    def test_creator_cannot_create(self, client, creator_headers):
        response = client.post('/api/companies', headers=creator_headers, json={'name': 'Minha marca'})
        assert response.status_code == 403

    @pytest.mark.parametrize('payload, code', [
        ({'name': 'X', 'cnpj': '11.444.777/0001-62'}, 'INVALID_CNPJ'),
        ({'name': 'X', 'category': 'eletronicos'}, 'INVALID_CATEGORY'),
        ({'name': 'X', 'state': 'ZZ'}, 'INVALID_STATE'),
        ({'name': '   '}, 'INVALID_NAME'),
    ])
    def test_invalid_fields(self, client, sample_company_user, headers_for, payload, code):
        response = client.post('/api/companies', headers=headers_for(sample_company_user), json=payload)
        assert response.status_code == 400
        assert response.get_json()['error']['code'] == code

    def test_update_renames_slug(self, client, auth_headers, sample_company):
        response = client.patch('/api/company', headers=auth_headers, json={'name': 'Marca Bela Pro'})
        assert response.status_code == 200
        assert response.get_json()['slug'] == 'marca-bela-pro'

    def test_public_listing_and_slug(self, client, db, sample_company):
        hidden = Company(name='Oculta', slug='oculta', is_discoverable=False)
        db.session.add(hidden)
        db.session.commit()

        names = [c['name'] for c in client.get('/api/companies/public').get_json()['companies']]
        assert names == ['Marca Bela']
        assert client.get('/api/companies/slug/marca-bela').get_json()['id'] == sample_company.id
        response = client.get('/api/companies/slug/nao-existe')
        assert response.status_code == 404
        assert response.get_json()['error']['code'] == 'COMPANY_NOT_FOUND'


class TestActiveCompany:

    def test_get_active_company(self, client, sample_company, sample_company_user, headers_for):
        data = client.get('/api/active-company', headers=headers_for(sample_company_user)).get_json()
        assert data['activeCompany']['id'] == sample_company.id
        assert data['role'] == 'owner'

    def test_cannot_switch_to_foreign_company(self, client, db, sample_company_user, headers_for):
        other = Company(name='Outra', slug='outra')
        db.session.add(other)
        db.session.commit()
        response = client.post('/api/active-company', headers=headers_for(sample_company_user),
                               json={'companyId': other.id})
        assert response.status_code == 403

    def test_company_id_required(self, client, sample_company_user, headers_for):
        response = client.post('/api/active-company', headers=headers_for(sample_company_user), json={})
        assert response.get_json()['error']['code'] == 'MISSING_FIELD'


class TestStaff:
    """Tests for staff roles and staff invites."""

    def test_invite_and_accept(self, client, auth_headers, sample_company, second_staff, headers_for):
        response = client.post('/api/company/staff-invites', headers=auth_headers,
                               json={'email': ' Rafa@MarcaBela.com.br ', 'role': 'admin'})
        assert response.status_code == 201
        token = CompanyUserInvite.query.one().token

        preview = client.get(f'/api/staff-invites/{token}').get_json()
        assert preview['company']['name'] == 'Marca Bela'

        response = client.post(f'/api/staff-invites/{token}/accept', headers=headers_for(second_staff))
        assert response.status_code == 200
        assert response.get_json()['member']['role'] == 'admin'
        assert second_staff.active_company_id == sample_company.id

        response = client.post(f'/api/staff-invites/{token}/accept', headers=headers_for(second_staff))
        assert response.status_code == 409

    def test_invite_for_another_email(self, client, auth_headers, creator_headers):
        client.post('/api/company/staff-invites', headers=auth_headers,
                    json={'email': 'rafa@marcabela.com.br', 'role': 'member'})
        token = CompanyUserInvite.query.one().token
        response = client.post(f'/api/staff-invites/{token}/accept', headers=creator_headers)
        assert response.status_code == 403

    def test_owner_role_cannot_be_invited(self, client, auth_headers):
        response = client.post('/api/company/staff-invites', headers=auth_headers,
                               json={'email': 'rafa@marcabela.com.br', 'role': 'owner'})
        assert response.get_json()['error']['code'] == 'INVALID_ROLE'

    def test_duplicate_pending_invite(self, client, auth_headers):
        body = {'email': 'rafa@marcabela.com.br', 'role': 'member'}
        client.post('/api/company/staff-invites', headers=auth_headers, json=body)
        response = client.post('/api/company/staff-invites', headers=auth_headers, json=body)
        assert response.status_code == 409

    def test_last_owner_is_protected(self, client, auth_headers, sample_company, sample_company_user):
        member = CompanyMember.query.filter_by(user_id=sample_company_user.id).one()
        response = client.patch(f'/api/company/members/{member.id}', headers=auth_headers, json={'role': 'admin'})
        assert response.status_code == 409
        response = client.delete(f'/api/company/members/{member.id}', headers=auth_headers)
        assert response.status_code == 409

    def test_member_cannot_manage(self, client, db, sample_company, second_staff, headers_for):
        db.session.add(CompanyMember(company_id=sample_company.id, user_id=second_staff.id, role='member'))
        db.session.commit()
        response = client.post('/api/company/staff-invites', headers=headers_for(second_staff, sample_company),
                               json={'email': 'x@y.com', 'role': 'member'})
        assert response.status_code == 403


class TestDiscovery:
    """Tests for creator search, favorites and saved profiles."""

    def test_search_filters(self, client, auth_headers, sample_creator, other_creator):
        data = client.get('/api/creators/discovery-stats', headers=auth_headers,
                          query_string={'niche': 'Beauty'}).get_json()
        assert [c['id'] for c in data['data']] == [sample_creator.id]

        data = client.get('/api/creators/discovery-stats', headers=auth_headers,
                          query_string={'minFollowers': 100000}).get_json()
        assert [c['id'] for c in data['data']] == [other_creator.id]

    def test_default_sort_and_paging(self, client, auth_headers, sample_creator, other_creator):
        data = client.get('/api/creators/discovery-stats', headers=auth_headers,
                          query_string={'limit': 1}).get_json()
        assert data['total'] == 2
        assert data['totalPages'] == 2
        assert data['data'][0]['id'] == other_creator.id

    def test_invalid_number(self, client, auth_headers):
        response = client.get('/api/creators/discovery-stats', headers=auth_headers,
                              query_string={'minFollowers': 'muitos'})
        assert response.status_code == 400

    def test_favorites(self, client, auth_headers, sample_creator, other_creator):
        assert client.post(f'/api/favorites/{sample_creator.id}', headers=auth_headers).status_code == 201
        client.post(f'/api/favorites/{sample_creator.id}', headers=auth_headers)
        assert FavoriteCreator.query.count() == 1
        assert client.get('/api/favorites', headers=auth_headers).get_json() == [sample_creator.id]

        data = client.get('/api/creators/discovery-stats', headers=auth_headers,
                          query_string={'favoritesOnly': 'true'}).get_json()
        assert [(c['id'], c['isFavorite']) for c in data['data']] == [(sample_creator.id, True)]

        response = client.delete(f'/api/favorites/{sample_creator.id}', headers=auth_headers)
        assert response.get_json() == {'success': True}

    def test_favorite_must_be_creator(self, client, auth_headers, sample_company_user):
        response = client.post(f'/api/favorites/{sample_company_user.id}', headers=auth_headers)
        assert response.status_code == 404

    def test_saved_profile_links_creator(self, client, auth_headers, sample_creator):
        response = client.post('/api/discovery-profiles', headers=auth_headers,
                               json={'instagram_handle': '@Ana.Cria', 'followers': 15000})
        assert response.status_code == 201
        assert response.get_json()['linked_user_id'] == sample_creator.id

        response = client.post('/api/discovery-profiles', headers=auth_headers,
                               json={'instagram_handle': 'ana.cria'})
        assert response.status_code == 409
