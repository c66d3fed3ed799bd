from datetime import date

from it_inventory.app.pipeline import detect_conflicts

TODAY = date(2024, 3, 10)
EMPLOYEE = {'is_active': True}
LAPTOP = {'asset_type': 'hardware', 'status': 'available', 'total_licenses': None, 'used_licenses': 0}
OFFICE = {'asset_type': 'software', 'status': 'available', 'total_licenses': 2, 'used_licenses': 1}


def candidate(**overrides):
    values = {'employee_id': 'EMP001', 'asset_id': 'HW001', 'asset_type': 'hardware',
              'assigned_date': '2024-03-01', 'notes': ''}
    values.update(overrides)
    return values


def kinds(conflicts):
    return [c['type'] for c in conflicts]


def test_clean_candidate_has_no_conflicts():
    assert detect_conflicts(candidate(), [], employee=EMPLOYEE, asset=LAPTOP, today=TODAY) == []


def test_missing_and_inactive_entities():
    conflicts = detect_conflicts(candidate(), [], employee=None, asset=None, today=TODAY)
    assert kinds(conflicts) == ['data_integrity', 'data_integrity']

    conflicts = detect_conflicts(candidate(), [], employee={'is_active': False}, asset=LAPTOP, today=TODAY)
    assert 'inactive' in conflicts[0]['message']


def test_hardware_held_by_someone_else(make_record):
    existing = [make_record('AS001', employee_id='EMP002')]
    conflicts = detect_conflicts(candidate(), existing, employee=EMPLOYEE, asset=LAPTOP, today=TODAY)
    assert conflicts == [{'type': 'resource', 'message': 'Asset HW001 is already assigned to EMP002'}]


def test_returned_assignments_do_not_block(make_record):
    existing = [make_record('AS001', status='반납완료', return_date='2024-02-01')]
    assert detect_conflicts(candidate(), existing, employee=EMPLOYEE, asset=LAPTOP, today=TODAY) == []


def test_duplicate_software_assignment(make_record):
    existing = [make_record('AS001', asset_id='SW001', asset_type='software')]
    conflicts = detect_conflicts(candidate(asset_id='SW001', asset_type='software'), existing,
                                 employee=EMPLOYEE, asset=OFFICE, today=TODAY)
    assert conflicts == [{'type': 'resource', 'message': 'Asset SW001 is already assigned to EMP001'}]


def test_licenses_exhausted():
    full = dict(OFFICE, used_licenses=2)
    conflicts = detect_conflicts(candidate(asset_id='SW001', asset_type='software'), [],
                                 employee=EMPLOYEE, asset=full, today=TODAY)
    assert 'No free licenses' in conflicts[0]['message']


def test_asset_state_and_type_mismatch():
    conflicts = detect_conflicts(candidate(), [], employee=EMPLOYEE, asset=dict(LAPTOP, status='retired'),
                                 today=TODAY)
    assert conflicts[0]['message'] == 'Asset HW001 is retired'

    conflicts = detect_conflicts(candidate(asset_type='software'), [], employee=EMPLOYEE, asset=LAPTOP,
                                 today=TODAY)
    assert kinds(conflicts)[0] == 'data_integrity'


def test_per_employee_limit(make_record):
    existing = [make_record(f'AS{i:03d}', asset_id=f'HW{i:03d}') for i in range(2, 4)]
    conflicts = detect_conflicts(candidate(), existing, employee=EMPLOYEE, asset=LAPTOP,
                                 limits={'max_hardware_per_employee': 2}, today=TODAY)
    assert kinds(conflicts) == ['policy']


def test_date_and_notes_rules():
    for assigned in ('2019-12-31', '2024-03-11', None):
        conflicts = detect_conflicts(candidate(assigned_date=assigned), [], employee=EMPLOYEE, asset=LAPTOP,
                                     today=TODAY)
        assert kinds(conflicts) == ['business_rule']

    conflicts = detect_conflicts(candidate(notes='x' * 501), [], employee=EMPLOYEE, asset=LAPTOP, today=TODAY)
    assert conflicts == [{'type': 'business_rule', 'message': 'Notes exceed 500 characters'}]
