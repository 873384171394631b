import pytest

from ketchup_tracker import config
from web.app import app


@pytest.fixture
def client(tmp_path):
    app.config.update(
        TESTING=True,
        DB_PATH=tmp_path / "web.db",
        DIARY_PATH=tmp_path / "dagbok.xlsx",
        EXPORT_DIR=tmp_path / "exports",
        SYNC_COOLDOWN=0,
    )
    app.extensions.pop('ketchup', None)
    with app.test_client() as client:
        yield client
    app.extensions.pop('ketchup', None)


@pytest.fixture
def logged_in(client):
    client.post('/login', data={'password': config.ACCESS_PASSWORD})
    return client


def test_pages_need_login(client):
    response = client.get('/')
    assert response.status_code == 302
    assert '/login' in response.headers['Location']


def test_api_needs_login(client):
    assert client.get('/api/status').status_code == 401


def test_wrong_password(client):
    response = client.post('/login', data={'password': 'nope'}, follow_redirects=True)
    assert 'Fel lösenord' in response.get_data(as_text=True)
    assert client.get('/').status_code == 302


def test_correct_password_opens_dashboard(logged_in):
    response = logged_in.get('/')
    assert response.status_code == 200
    assert 'Registrera Dos' in response.get_data(as_text=True)


def test_log_dose_updates_status(logged_in):
    response = logged_in.post('/dose/log', follow_redirects=True)
    assert 'Dose logged (cycle day 1)' in response.get_data(as_text=True)

    status = logged_in.get('/api/status').get_json()
    assert status == {
        'cycleDay': 2,
        'phase': 'Follicular',
        'isWarning': False,
        'totalLogs': 1,
        'isSyncing': False,
    }


def test_api_logs_newest_first(logged_in):
    logged_in.post('/dose/log')
    logged_in.post('/dose/log')
    logs = logged_in.get('/api/logs').get_json()['logs']
    assert [log['cycleDay'] for log in logs] == [2, 1]
    assert logs[0]['status'] == 'confirmed'
    assert len(logged_in.get('/api/logs?limit=1').get_json()['logs']) == 1


def test_analysis_page(logged_in):
    logged_in.post('/dose/log')
    page = logged_in.get('/analysis').get_data(as_text=True)
    assert 'Doseringslogg #1' in page
    assert 'DAG 1' in page

    trend = logged_in.get('/api/trend').get_json()['trend']
    assert len(trend) == 7
    assert trend[-1]['val'] == 1


def test_logout(logged_in):
    logged_in.post('/logout')
    assert logged_in.get('/').status_code == 302


def test_diary_add(logged_in):
    response = logged_in.post('/diary/add', data={
        'datum': '2026-03-02', 'tid': '07:30', 'typ': 'Aktiv', 'humor': 'Glad',
    }, follow_redirects=True)
    page = response.get_data(as_text=True)
    assert 'Sparat' in page
    assert 'Glad' in page


def test_diary_add_needs_date(logged_in):
    response = logged_in.post('/diary/add', data={'tid': '07:30'}, follow_redirects=True)
    assert 'Datum saknas' in response.get_data(as_text=True)


def test_generate_report_on_empty_log(logged_in, tmp_path):
    response = logged_in.post('/reports/generate', data={'format': 'pdf'}, follow_redirects=True)
    assert 'Report generated' in response.get_data(as_text=True)
    assert list((tmp_path / "exports").glob("*.pdf"))


def test_logout_closes_the_gate(logged_in):
    logged_in.post('/logout')
    with logged_in.session_transaction() as sess:
        assert sess['authenticated'] is False
    assert logged_in.get('/api/status').status_code == 401


def test_diary_shows_calendar_cycle_day(logged_in, monkeypatch):
    monkeypatch.setattr(config, "CYCLE_START", "2026-01-05")
    logged_in.post('/diary/add', data={'datum': '2026-01-30', 'tid': '08:00', 'typ': 'Placebo'})
    page = logged_in.get('/diary').get_data(as_text=True)
    assert '<td>2026-01-30</td><td>08:00</td><td>26</td>' in page


def test_diary_without_cycle_start(logged_in, monkeypatch):
    monkeypatch.setattr(config, "CYCLE_START", None)
    logged_in.post('/diary/add', data={'datum': '2026-01-30', 'tid': '08:00'})
    page = logged_in.get('/diary').get_data(as_text=True)
    assert '<td>2026-01-30</td><td>08:00</td><td>-</td>' in page


def test_generate_report_with_unwritable_export_dir(logged_in, tmp_path):
    blocked = tmp_path / "blocked"
    blocked.write_text("not a directory")
    app.config['EXPORT_DIR'] = blocked

    response = logged_in.post('/reports/generate', data={'format': 'csv'}, follow_redirects=True)
    assert response.status_code == 200
    assert 'Error generating report' in response.get_data(as_text=True)
