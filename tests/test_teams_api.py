"""
Teams API: CRUD, membership edits, leader assignment and member visibility.
"""
from conftest import LEADER_EMAIL, WORKER_EMAIL
from models import db, Profile, Role, Team


def _team_state(app, team_id):
    with app.app_context():
        team = db.session.get(Team, team_id)
        if team is None:
            return None
        return {
            'leader_id': team.leader_id,
            'member_ids': sorted(member.id for member in team.members),
        }


class TestCreateTeam:

    def test_manager_creates_team(self, manager_client):
        response = manager_client.post('/api/teams/', json={'name': '  Platform ', 'description': 'Infra'})

        assert response.status_code == 201
        team = response.get_json()['team']
        assert team['name'] == 'Platform'
        assert team['member_count'] == 0
        assert team['leader_id'] is None

    def test_name_is_required(self, manager_client):
        assert manager_client.post('/api/teams/', json={'name': ' '}).status_code == 400

    def test_worker_is_forbidden(self, worker_client):
        assert worker_client.post('/api/teams/', json={'name': 'Rogue'}).status_code == 403


class TestMembership:

    def test_add_members_and_assign_leader(self, app, manager_client, accounts):
        team_id = manager_client.post('/api/teams/', json={'name': 'Ops'}).get_json()['team']['id']

        response = manager_client.put(f'/api/teams/{team_id}', json={
            'added_member_ids': [accounts.worker, accounts.leader, accounts.manager],
        })
        assert response.status_code == 200

        response = manager_client.put(f'/api/teams/{team_id}/leader', json={'profile_id': accounts.leader})
        assert response.status_code == 200

        team = manager_client.get(f'/api/teams/{team_id}').get_json()['team']
        assert team['leader_email'] == LEADER_EMAIL
        assert team['member_count'] == 3
        # Sorted by role priority: manager, leader, worker
        assert [m['role'] for m in team['members']] == ['manager', 'leader', 'worker']
        assert team['members'][0]['role_display_name'] == 'Project Manager'

    def test_removing_leader_clears_leadership(self, app, manager_client, accounts, make_team):
        with app.app_context():
            leader = db.session.get(Profile, accounts.leader)
            worker = db.session.get(Profile, accounts.worker)
            team_id = make_team('Ops', members=[leader, worker], leader=leader).id

        response = manager_client.put(f'/api/teams/{team_id}', json={'removed_member_ids': [accounts.leader]})

        assert response.status_code == 200
        assert _team_state(app, team_id) == {'leader_id': None, 'member_ids': [accounts.worker]}
        with app.app_context():
            assert db.session.get(Profile, accounts.leader).team_id is None

    def test_member_of_another_team_conflicts(self, app, manager_client, accounts, make_team):
        with app.app_context():
            worker = db.session.get(Profile, accounts.worker)
            make_team('Ops', members=[worker])
            other_id = make_team('Sales').id

        response = manager_client.put(f'/api/teams/{other_id}', json={'added_member_ids': [accounts.worker]})

        assert response.status_code == 409
        assert _team_state(app, other_id)['member_ids'] == []

    def test_unknown_profile(self, manager_client):
        team_id = manager_client.post('/api/teams/', json={'name': 'Ops'}).get_json()['team']['id']
        response = manager_client.put(f'/api/teams/{team_id}', json={'added_member_ids': [4040]})
        assert response.status_code == 404

    def test_leader_must_be_member(self, manager_client, accounts):
        team_id = manager_client.post('/api/teams/', json={'name': 'Ops'}).get_json()['team']['id']

        response = manager_client.put(f'/api/teams/{team_id}/leader', json={'profile_id': accounts.worker})

        assert response.status_code == 400

    def test_clear_leader(self, app, manager_client, accounts, make_team):
        with app.app_context():
            leader = db.session.get(Profile, accounts.leader)
            team_id = make_team('Ops', members=[leader], leader=leader).id

        response = manager_client.put(f'/api/teams/{team_id}/leader', json={'profile_id': None})

        assert response.status_code == 200
        assert _team_state(app, team_id) == {'leader_id': None, 'member_ids': [accounts.leader]}

    def test_unassigned_profiles(self, app, manager_client, accounts, make_team):
        with app.app_context():
            make_team('Ops', members=[db.session.get(Profile, accounts.worker)])

        profiles = manager_client.get('/api/teams/unassigned').get_json()['profiles']

        assert [p['id'] for p in profiles] == [accounts.manager, accounts.leader]

    def test_worker_with_malformed_edit_is_still_forbidden(self, app, worker_client, make_team):
        with app.app_context():
            team_id = make_team('Ops').id

        response = worker_client.put(f'/api/teams/{team_id}', json={'added_member_ids': 'everyone'})
        assert response.status_code == 403

        response = worker_client.put(f'/api/teams/{team_id}/leader', json={'profile_id': 'me'})
        assert response.status_code == 403
        assert _team_state(app, team_id) == {'leader_id': None, 'member_ids': []}

    def test_unassigned_is_manager_only(self, worker_client):
        response = worker_client.get('/api/teams/unassigned')
        assert response.status_code == 403
        assert response.get_json()['message'] == 'Insufficient privileges'


class TestDeleteTeam:

    def test_delete_releases_members(self, app, manager_client, accounts, make_team):
        with app.app_context():
            leader = db.session.get(Profile, accounts.leader)
            worker = db.session.get(Profile, accounts.worker)
            team_id = make_team('Ops', members=[leader, worker], leader=leader).id

        response = manager_client.delete(f'/api/teams/{team_id}')

        assert response.status_code == 200
        assert _team_state(app, team_id) is None
        with app.app_context():
            for profile_id in (accounts.leader, accounts.worker):
                profile = db.session.get(Profile, profile_id)
                assert profile.team_id is None
                assert profile.led_teams == []

    def test_worker_cannot_delete(self, app, worker_client, make_team):
        with app.app_context():
            team_id = make_team('Ops').id
        assert worker_client.delete(f'/api/teams/{team_id}').status_code == 403
        assert _team_state(app, team_id) is not None


class TestTeamVisibility:

    def test_outsider_sees_team_without_members(self, app, client, accounts, login, make_team):
        with app.app_context():
            team_id = make_team('Ops', members=[db.session.get(Profile, accounts.leader)]).id

        login(WORKER_EMAIL)
        team = client.get(f'/api/teams/{team_id}').get_json()['team']

        assert team['member_count'] == 1
        assert 'members' not in team

    def test_member_sees_own_team(self, app, client, accounts, login, make_team):
        with app.app_context():
            worker = db.session.get(Profile, accounts.worker)
            team_id = make_team('Ops', members=[worker]).id

        login(WORKER_EMAIL)
        team = client.get(f'/api/teams/{team_id}').get_json()['team']

        assert [m['id'] for m in team['members']] == [accounts.worker]

    def test_list_teams(self, app, worker_client, make_team, make_user):
        with app.app_context():
            boss = make_user('boss@example.com', Role.MANAGER)
            make_team('Beta', members=[boss], leader=boss)
            make_team('Alpha')

        teams = worker_client.get('/api/teams/').get_json()['teams']

        assert [t['name'] for t in teams] == ['Alpha', 'Beta']
        assert teams[1]['leader_email'] == 'boss@example.com'
