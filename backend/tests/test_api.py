"""
Application-level tests: health, version, stats, middleware headers and
error mapping.
"""
import os
from starlette.testclient import TestClient

from tblib.store import DOCUMENT_NAME


def _corrupt(db_path):
    with open(os.path.join(db_path, DOCUMENT_NAME), 'w', encoding='utf-8') as f:
        f.write('{"revision": ')


class TestHealth:
    def test_health_ok(self, client: TestClient):
        res = client.get('/api/health')
        assert res.status_code == 200
        body = res.json()
        assert body['status'] == 'ok'
        assert body['db'] == {'status': 'connected'}
        assert body['uptime_seconds'] >= 0

    def test_health_reports_store_error(self, client: TestClient, db_path):
        _corrupt(db_path)
        res = client.get('/api/health')
        assert res.status_code == 200
        assert res.json()['db'] == {'status': 'error'}

    def test_version(self, client: TestClient):
        body = client.get('/api/version').json()
        assert body['service'] == 'Timeboard API'
        assert body['version'] == client.get('/api/health').json()['version']

    def test_stats(self, client: TestClient):
        assert client.get('/api/stats').json() == {
            'employees': 3, 'projects': 3, 'activities': 5, 'revision': 1,
        }

    def test_empty_database(self, client: TestClient, db_path):
        os.remove(os.path.join(db_path, DOCUMENT_NAME))
        assert client.get('/api/employees').json() == {'data': []}
        dashboard = client.get('/api/reports/dashboard').json()['data']
        assert dashboard['project_costs'] == []
        assert dashboard['employee_workload'] == {'data': [], 'weeks': []}


class TestMiddleware:
    def test_security_headers(self, client: TestClient):
        res = client.get('/api/version')
        assert res.headers['X-Content-Type-Options'] == 'nosniff'
        assert res.headers['X-Frame-Options'] == 'DENY'
        assert 'Strict-Transport-Security' not in res.headers

    def test_hsts_opt_in(self, client: TestClient, monkeypatch):
        monkeypatch.setenv('TB_HSTS', '1')
        res = client.get('/api/version')
        assert res.headers['Strict-Transport-Security'].startswith('max-age=')

    def test_request_id_header(self, client: TestClient):
        first = client.get('/api/version').headers['X-Request-ID']
        second = client.get('/api/version').headers['X-Request-ID']
        assert len(first) == 8
        assert first != second

    def test_cors_preflight(self, client: TestClient):
        res = client.options('/api/employees', headers={
            'Origin': 'http://localhost:3000',
            'Access-Control-Request-Method': 'POST',
        })
        assert res.headers['access-control-allow-origin'] == 'http://localhost:3000'


class TestErrorMapping:
    def test_store_error_returns_503(self, client: TestClient, db_path):
        _corrupt(db_path)
        res = client.get('/api/employees')
        assert res.status_code == 503
        assert res.json()['detail'] == 'Almacén de datos no disponible'

    def test_write_on_corrupt_store_returns_503(self, client: TestClient, db_path):
        _corrupt(db_path)
        res = client.delete('/api/projects/1')
        assert res.status_code == 503

    def test_unhandled_error_is_sanitized(self, lenient_client: TestClient, monkeypatch):
        from tblib.database import TimeboardDatabase

        def _boom(self):
            raise KeyError('secret internals')
        monkeypatch.setattr(TimeboardDatabase, 'get_stats', _boom)
        res = lenient_client.get('/api/stats')
        assert res.status_code == 500
        assert 'secret' not in res.text
        assert res.json()['detail'].startswith('Error interno del servidor')

    def test_validation_detail_is_spanish(self, client: TestClient):
        res = client.post('/api/activities', json={'minutes': 'mucho'})
        assert res.status_code == 422
        body = res.json()
        assert body['fields']['minutes'] == 'Debe ser un número entero'
        assert 'minutes: Debe ser un número entero' in body['detail']
