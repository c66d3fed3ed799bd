import io
from datetime import date

import pytest
from openpyxl import load_workbook

from it_inventory.app import db, mail
from it_inventory.app.models import Asset, AssetHistory, Assignment


def assign(client, employee_id='EMP001', asset_id='HW001', **extra):
    return client.post('/assignments/', json=dict(employee_id=employee_id, asset_id=asset_id, **extra))


def test_create_returns_hydrated_record(admin_client, app):
    response = assign(admin_client, notes='Onboarding laptop')
    assert response.status_code == 201
    data = response.get_json()
    assert data['id'] == 'AS001'
    assert data['status'] == 'in_use'
    assert data['asset_type'] == 'hardware'
    assert data['assigned_date'] == date.today().isoformat()
    assert data['assigned_by'] == 'admin'
    assert data['employee_name'] == '김철수'
    assert data['asset_description'] == 'Laptop Dell Latitude 5420'
    assert data['employee']['department'] == 'IT'

    with app.app_context():
        assert db.session.get(Asset, 'HW001').status == 'in_use'
        history = AssetHistory.query.filter_by(asset_id='HW001').all()
        assert [h.event_type for h in history] == ['Asset Assigned']
        assert history[0].assignment_id == 'AS001'


def test_software_uses_license_counter(admin_client, app):
    assert assign(admin_client, asset_id='SW001').status_code == 201
    assert assign(admin_client, employee_id='EMP002', asset_id='SW001').status_code == 201
    with app.app_context():
        assert db.session.get(Asset, 'SW001').used_licenses == 2

    response = assign(admin_client, employee_id='EMP002', asset_id='SW001')
    assert response.status_code == 409


def test_conflict_response(admin_client):
    assign(admin_client)
    response = assign(admin_client, employee_id='EMP002')
    assert response.status_code == 409
    data = response.get_json()
    assert data['type'] == 'AssignmentConflictError'
    assert data['details']['conflicts'] == [
        {'type': 'resource', 'message': 'Asset HW001 is already assigned to EMP001'}]


def test_validate_is_a_dry_run(admin_client, app):
    response = admin_client.post('/assignments/validate', json={'employee_id': 'EMP001', 'asset_id': 'HW001'})
    assert response.get_json() == {'valid': True, 'conflicts': []}

    response = admin_client.post('/assignments/validate', json={'employee_id': 'EMP404', 'asset_id': 'HW001'})
    assert response.get_json()['valid'] is False
    with app.app_context():
        assert Assignment.query.count() == 0


def test_create_rejects_returned_status(admin_client):
    response = assign(admin_client, status='returned')
    assert response.status_code == 400


def test_pending_assignment_does_not_hold_asset(admin_client, app):
    response = assign(admin_client, status='대기중')
    assert response.get_json()['status'] == 'pending'
    with app.app_context():
        assert db.session.get(Asset, 'HW001').status == 'available'


def test_return_releases_asset(admin_client, app):
    assign(admin_client, assigned_date='2024-01-15')
    response = admin_client.put('/assignments/AS001/return', json={
        'return_date': '2024-02-01', 'return_condition': 'good', 'return_notes': 'ok'})
    assert response.status_code == 200
    data = response.get_json()
    assert data['status'] == 'returned'
    assert data['return_date'] == '2024-02-01'
    assert data['return_condition'] == 'good'
    assert data['returned_by'] == 'admin'

    with app.app_context():
        assert db.session.get(Asset, 'HW001').status == 'available'

    # already returned
    assert admin_client.put('/assignments/AS001/return', json={}).status_code == 409


def test_return_date_before_assigned_date(admin_client):
    assign(admin_client, assigned_date='2024-01-15')
    response = admin_client.put('/assignments/AS001/return', json={'return_date': '2024-01-14'})
    assert response.status_code == 400


def test_update_moves_checkout(admin_client, app):
    assign(admin_client, asset_id='SW001')
    response = admin_client.put('/assignments/AS001', json={'asset_id': 'HW001', 'notes': 'swapped'})
    assert response.status_code == 200
    data = response.get_json()
    assert data['asset_id'] == 'HW001'
    assert data['asset_type'] == 'hardware'
    assert data['notes'] == 'swapped'

    with app.app_context():
        assert db.session.get(Asset, 'SW001').used_licenses == 0
        assert db.session.get(Asset, 'HW001').status == 'in_use'


def test_update_status_to_lost_keeps_asset(admin_client, app):
    assign(admin_client)
    response = admin_client.put('/assignments/AS001', json={'status': 'Lost'})
    assert response.get_json()['status'] == 'lost'
    with app.app_context():
        assert db.session.get(Asset, 'HW001').status == 'in_use'

    # lost assignments cannot be returned or deleted
    assert admin_client.put('/assignments/AS001/return', json={}).status_code == 409
    assert admin_client.delete('/assignments/AS001').status_code == 409


def test_update_to_pending_releases_asset(admin_client, app):
    assign(admin_client)
    admin_client.put('/assignments/AS001', json={'status': 'pending'})
    with app.app_context():
        assert db.session.get(Asset, 'HW001').status == 'available'


def test_update_rejects_bad_values(admin_client):
    assign(admin_client)
    assert admin_client.put('/assignments/AS001', json={'status': 'borrowed'}).status_code == 400
    assert admin_client.put('/assignments/AS001', json={'status': 'returned'}).status_code == 400
    assert admin_client.put('/assignments/AS001', json={'assigned_date': '2019-05-01'}).status_code == 400
    assert admin_client.put('/assignments/AS001', json={'notes': 'x' * 501}).status_code == 400
    assert admin_client.put('/assignments/AS404', json={}).status_code == 404


def test_reopening_checks_hardware_holder(admin_client, app):
    assign(admin_client, status='pending')
    assert assign(admin_client, employee_id='EMP002').status_code == 201

    response = admin_client.put('/assignments/AS001', json={'status': 'in_use'})
    assert response.status_code == 409
    assert response.get_json()['details']['conflicts'] == [
        {'type': 'resource', 'message': 'Asset HW001 is already assigned to EMP002'}]

    with app.app_context():
        assert db.session.get(Assignment, 'AS001').status == 'pending'
        assert db.session.get(Asset, 'HW001').status == 'in_use'
        holders = [a.employee_id for a in Assignment.query.all() if a.holds_asset]
        assert holders == ['EMP002']


def test_reopening_checks_free_licenses(admin_client, app):
    assign(admin_client, asset_id='SW001', status='pending')
    assert assign(admin_client, employee_id='EMP002', asset_id='SW001').status_code == 201
    assert assign(admin_client, asset_id='SW001').status_code == 201

    response = admin_client.put('/assignments/AS001', json={'status': 'overdue'})
    assert response.status_code == 409
    messages = [c['message'] for c in response.get_json()['details']['conflicts']]
    assert 'No free licenses left for SW001 (2/2)' in messages

    with app.app_context():
        assert db.session.get(Asset, 'SW001').used_licenses == 2
        assert db.session.get(Assignment, 'AS001').status == 'pending'


def test_reopening_free_asset_checks_it_out(admin_client, app):
    assign(admin_client, status='pending')
    response = admin_client.put('/assignments/AS001', json={'status': 'in_use'})
    assert response.status_code == 200
    with app.app_context():
        assert db.session.get(Asset, 'HW001').status == 'in_use'


def test_malformed_dates_are_rejected(admin_client, app):
    response = assign(admin_client, expected_return_date='next week')
    assert response.status_code == 400
    assert response.get_json()['error'] == 'Invalid expected return date: next week'
    with app.app_context():
        assert Assignment.query.count() == 0

    assign(admin_client, assigned_date='2024-01-15', expected_return_date='2024-06-30')
    response = admin_client.put('/assignments/AS001', json={'expected_return_date': 'soon'})
    assert response.status_code == 400
    assert response.get_json()['error'] == 'Invalid expected return date: soon'
    assert admin_client.get('/assignments/AS001').get_json()['expected_return_date'] == '2024-06-30'

    response = admin_client.put('/assignments/AS001/return', json={'return_date': 'not-a-date'})
    assert response.status_code == 400
    assert response.get_json()['error'] == 'Invalid return date: not-a-date'
    with app.app_context():
        assignment = db.session.get(Assignment, 'AS001')
        assert assignment.status == 'in_use'
        assert assignment.return_date is None
        assert db.session.get(Asset, 'HW001').status == 'in_use'

    # an empty value clears the expected return date
    response = admin_client.put('/assignments/AS001', json={'expected_return_date': ''})
    assert response.get_json()['expected_return_date'] is None


def test_delete_requires_admin_and_deletable_status(client, login, make_user, inventory, app):
    manager = make_user('manager', role='manager')
    admin = make_user('admin', role='admin')

    login(manager)
    assign(client)
    assert client.delete('/assignments/AS001').status_code == 403
    client.post('/logout')

    login(admin)
    assert client.delete('/assignments/AS001').status_code == 409
    client.put('/assignments/AS001/return', json={})
    response = client.delete('/assignments/AS001')
    assert response.status_code == 200
    assert response.get_json()['deleted']['id'] == 'AS001'

    with app.app_context():
        assert db.session.get(Assignment, 'AS001') is None
        assert db.session.get(Asset, 'HW001').status == 'available'


def test_delete_pending_assignment(admin_client, app):
    assign(admin_client, asset_id='SW001', status='pending')
    assert admin_client.delete('/assignments/AS001').status_code == 200
    with app.app_context():
        assert db.session.get(Asset, 'SW001').used_licenses == 0


@pytest.fixture
def populated(admin_client):
    assign(admin_client, assigned_date='2024-01-15')
    assign(admin_client, employee_id='EMP002', asset_id='SW001', assigned_date='2024-02-01')
    assign(admin_client, asset_id='SW001', assigned_date='2024-03-01')
    admin_client.put('/assignments/AS002/return', json={'return_date': '2024-03-05'})
    return admin_client


def test_list_pipeline(populated):
    data = populated.get('/assignments/').get_json()
    assert data['total'] == 3
    assert [a['id'] for a in data['assignments']] == ['AS003', 'AS002', 'AS001']

    data = populated.get('/assignments/?sort=assigned_date&order=asc&limit=2&page=2').get_json()
    assert [a['id'] for a in data['assignments']] == ['AS003']
    assert data['pages'] == 2

    data = populated.get('/assignments/?status=returned').get_json()
    assert [a['id'] for a in data['assignments']] == ['AS002']

    data = populated.get('/assignments/?q=office&department=IT').get_json()
    assert [a['id'] for a in data['assignments']] == ['AS003']

    data = populated.get('/assignments/?sort=colour').get_json()
    assert data['total'] == 3


def test_list_rejects_bad_paging(populated):
    assert populated.get('/assignments/?page=0').status_code == 400
    assert populated.get('/assignments/?limit=abc').status_code == 400
    assert populated.get('/assignments/?q=' + 'x' * 101).status_code == 400
    assert populated.get('/assignments/?limit=500').get_json()['limit'] == 100


def test_view_assignment(populated):
    assert populated.get('/assignments/AS002').get_json()['status'] == 'returned'
    response = populated.get('/assignments/AS404')
    assert response.status_code == 404
    assert response.get_json()['type'] == 'ResourceNotFoundError'


def test_stats_endpoint(populated):
    stats = populated.get('/assignments/stats').get_json()
    assert stats['total'] == 3
    assert stats['by_status']['in_use'] == 2
    assert stats['by_asset_type'] == {'hardware': 1, 'software': 2}
    assert stats['by_department'] == {'HR': 1, 'IT': 2}

    stats = populated.get('/assignments/stats?asset_type=software').get_json()
    assert stats['total'] == 2


def test_export_xlsx(populated):
    response = populated.get('/assignments/export?file_name=march&locale=en&include_history=false')
    assert response.status_code == 200
    assert 'march.xlsx' in response.headers['Content-Disposition']
    workbook = load_workbook(io.BytesIO(response.data))
    assert workbook.sheetnames == ['Assignment List', 'Summary Statistics', 'Asset Utilization',
                                   'Per-Employee Breakdown']


def test_export_csv_uses_filters(populated):
    response = populated.get('/assignments/export?format=csv&status=returned')
    assert response.mimetype == 'text/csv'
    lines = response.data.decode('utf-8-sig').splitlines()
    assert len(lines) == 2
    assert lines[1].startswith('AS002,')


def test_export_errors(populated, monkeypatch):
    assert populated.get('/assignments/export?format=pdf').status_code == 400

    def broken_encode(header, rows):
        raise ValueError('malformed row')

    from it_inventory.app.pipeline import export as export_module
    monkeypatch.setattr(export_module, 'encode_csv', broken_encode)
    response = populated.get('/assignments/export?format=csv')
    assert response.status_code == 500
    assert response.get_json()['error'] == 'export failed: malformed row'


def test_user_sees_only_own_assignments(client, login, make_user, inventory):
    admin = make_user('admin', role='admin')
    user = make_user('lee', employee_id='EMP002')

    login(admin)
    assign(client)
    assign(client, employee_id='EMP002', asset_id='SW001')
    client.post('/logout')

    login(user)
    data = client.get('/assignments/').get_json()
    assert [a['id'] for a in data['assignments']] == ['AS002']
    assert client.get('/assignments/AS001').status_code == 404
    assert assign(client, employee_id='EMP002', asset_id='HW001').status_code == 403


def test_assignment_email_sent_to_employee(admin_client, app):
    app.config['MAIL_SERVER'] = 'localhost'
    with mail.record_messages() as outbox:
        assign(admin_client)
    assert len(outbox) == 1
    assert outbox[0].recipients == ['kim@example.com']
    assert 'HW001' in outbox[0].body


def test_mail_failure_keeps_assignment(admin_client, app, monkeypatch):
    app.config['MAIL_SERVER'] = 'localhost'

    def refuse(message):
        raise ConnectionRefusedError('no smtp')

    monkeypatch.setattr(mail, 'send', refuse)
    assert assign(admin_client).status_code == 201
    with app.app_context():
        assert Assignment.query.count() == 1


def test_assignment_model_validation(app, inventory):
    with app.app_context():
        with pytest.raises(ValueError):
            Assignment(employee_id='EMP001', asset_id='HW001', asset_type='furniture')
        assignment = Assignment(employee_id='EMP001', asset_id='HW001', asset_type='하드웨어',
                                assigned_date='2024-01-15', status='사용중')
        assert assignment.id == 'AS001'
        assert assignment.asset_type == 'hardware'
        assert assignment.status == 'in_use'
        assert assignment.holds_asset
        with pytest.raises(ValueError):
            assignment.mark_returned(return_date='2024-01-01')
        with pytest.raises(ValueError):
            assignment.mark_returned(return_date='2024-02-01', condition='shiny')
        with pytest.raises(ValueError, match='Invalid return date'):
            assignment.mark_returned(return_date='02/01/2024')
        assert assignment.return_date is None
        with pytest.raises(ValueError, match='Invalid assigned date'):
            Assignment(employee_id='EMP001', asset_id='HW001', asset_type='hardware', assigned_date='yesterday')
        assignment.mark_returned(return_date='2024-02-01', condition='Fair')
        assert assignment.status == 'returned'
        assert assignment.return_condition == 'fair'
        assert not assignment.holds_asset
