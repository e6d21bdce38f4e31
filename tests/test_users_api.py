"""
Users API: listing, creation, profile edits and deletion (including /api/deleteUser).
"""
import pytest

from conftest import PASSWORD, WORKER_EMAIL
from models import db, User, Profile, Project, Team


class TestListUsers:

    def test_manager_lists_everyone_else(self, manager_client, accounts):
        body = manager_client.get('/api/users/').get_json()

        assert [u['id'] for u in body['users']] == [accounts.leader, accounts.worker]
        assert body['users'][0]['role_display_name'] == 'Team Leader'
        assert body['users'][1]['team'] is None

    def test_worker_is_forbidden(self, worker_client):
        assert worker_client.get('/api/users/').status_code == 403


class TestCreateUser:

    def test_manager_creates_worker_account(self, app, client, manager_client):
        response = manager_client.post('/api/users/', json={
            'email': 'new.hire@example.com',
            'password': 'welcome123',
            'first_name': 'Nina',
            'last_name': 'Hire',
        })

        assert response.status_code == 201
        assert response.get_json()['user']['role'] == 'worker'

        fresh = app.test_client()
        assert fresh.post('/auth/login', json={
            'email': 'new.hire@example.com', 'password': 'welcome123'
        }).status_code == 200

    def test_worker_cannot_create(self, worker_client):
        response = worker_client.post('/api/users/', json={
            'email': 'sneaky@example.com', 'password': PASSWORD
        })
        assert response.status_code == 403


class TestGetUser:

    def test_worker_reads_own_profile(self, worker_client, accounts):
        response = worker_client.get(f'/api/users/{accounts.worker}')
        assert response.status_code == 200
        assert response.get_json()['user']['email'] == WORKER_EMAIL

    def test_worker_cannot_read_others(self, worker_client, accounts):
        assert worker_client.get(f'/api/users/{accounts.manager}').status_code == 403

    def test_unknown_user(self, manager_client):
        assert manager_client.get('/api/users/999').status_code == 404


class TestUpdateUser:

    def test_manager_changes_role_and_team(self, app, manager_client, accounts, make_team):
        with app.app_context():
            team_id = make_team('Ops').id

        response = manager_client.put(f'/api/users/{accounts.worker}', json={
            'role': 'leader', 'team_id': team_id, 'first_name': 'Wen'
        })

        assert response.status_code == 200
        user = response.get_json()['user']
        assert user['role'] == 'leader'
        assert user['team'] == {'id': team_id, 'name': 'Ops'}
        assert user['first_name'] == 'Wen'

    def test_leaving_team_gives_up_leadership(self, app, manager_client, accounts, make_team):
        with app.app_context():
            leader = db.session.get(Profile, accounts.leader)
            team_id = make_team('Ops', members=[leader], leader=leader).id

        response = manager_client.put(f'/api/users/{accounts.leader}', json={'team_id': None})

        assert response.status_code == 200
        with app.app_context():
            assert db.session.get(Team, team_id).leader_id is None
            assert db.session.get(Profile, accounts.leader).team_id is None

    def test_invalid_role(self, manager_client, accounts):
        response = manager_client.put(f'/api/users/{accounts.worker}', json={'role': 'admin'})
        assert response.status_code == 400

    def test_unknown_team(self, manager_client, accounts):
        response = manager_client.put(f'/api/users/{accounts.worker}', json={'team_id': 4040})
        assert response.status_code == 404

    def test_worker_cannot_edit(self, worker_client, accounts):
        response = worker_client.put(f'/api/users/{accounts.worker}', json={'role': 'manager'})
        assert response.status_code == 403

    def test_worker_with_non_object_body_is_forbidden(self, worker_client, accounts):
        response = worker_client.put(f'/api/users/{accounts.worker}', json='manager')
        assert response.status_code == 403


class TestDeleteUser:

    def test_legacy_delete_removes_profile_and_identity(self, app, manager_client, accounts):
        response = manager_client.delete('/api/deleteUser', json={'userId': accounts.worker})

        assert response.status_code == 200
        with app.app_context():
            assert db.session.get(Profile, accounts.worker) is None
            assert db.session.get(User, accounts.worker) is None

    def test_delete_clears_leadership_and_keeps_projects(
        self, app, manager_client, accounts, make_team, make_project
    ):
        with app.app_context():
            leader = db.session.get(Profile, accounts.leader)
            team_id = make_team('Ops', members=[leader], leader=leader).id
            project_id = make_project(leader, 'Inherited', ['A']).id

        response = manager_client.delete(f'/api/users/{accounts.leader}')

        assert response.status_code == 200
        with app.app_context():
            team = db.session.get(Team, team_id)
            assert team.leader_id is None
            assert team.members == []
            project = db.session.get(Project, project_id)
            assert project.owner_id is None
            assert project.owner_email == 'leo.leader@example.com'

    @pytest.mark.parametrize('payload', [{}, {'userId': None}, {'userId': ''}, {'userId': 'abc'}])
    def test_legacy_delete_requires_valid_id(self, manager_client, payload):
        assert manager_client.delete('/api/deleteUser', json=payload).status_code == 400

    def test_unknown_user(self, manager_client):
        assert manager_client.delete('/api/deleteUser', json={'userId': 9999}).status_code == 404

    def test_cannot_delete_self(self, manager_client, accounts):
        assert manager_client.delete(f'/api/users/{accounts.manager}').status_code == 400

    def test_worker_cannot_delete(self, app, worker_client, accounts):
        response = worker_client.delete('/api/deleteUser', json={'userId': accounts.leader})

        assert response.status_code == 403
        with app.app_context():
            assert db.session.get(User, accounts.leader) is not None

    def test_deleted_user_cannot_log_in(self, app, manager_client, accounts):
        manager_client.delete(f'/api/users/{accounts.worker}')

        response = app.test_client().post('/auth/login', json={'email': WORKER_EMAIL, 'password': PASSWORD})
        assert response.status_code == 401
