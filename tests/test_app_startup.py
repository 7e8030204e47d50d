"""Tests for app startup helpers and production configuration checks."""
import json

import pytest

from gamenight.app import _parse_allowed_origins, create_app
from gamenight.config import DEFAULT_SECRET_KEY, ProductionConfig, _normalize_database_url


def test_parse_allowed_origins():
    assert _parse_allowed_origins(None) == '*'
    assert _parse_allowed_origins(' * ') == '*'
    assert _parse_allowed_origins('https://a.example.com, https://b.example.com,') == [
        'https://a.example.com', 'https://b.example.com',
    ]
    assert _parse_allowed_origins(['https://a.example.com', '']) == ['https://a.example.com']
    assert _parse_allowed_origins([]) == '*'


def test_normalize_database_url():
    assert _normalize_database_url('postgres://u:p@db/app') == 'postgresql://u:p@db/app'
    assert _normalize_database_url('sqlite:///x.db') == 'sqlite:///x.db'
    assert _normalize_database_url(None) is None


def _production(monkeypatch, secret, origins):
    monkeypatch.setattr(ProductionConfig, 'SECRET_KEY', secret)
    monkeypatch.setattr(ProductionConfig, 'CORS_ALLOWED_ORIGINS', origins)
    monkeypatch.setattr(ProductionConfig, 'SQLALCHEMY_DATABASE_URI', 'sqlite:///:memory:')
    monkeypatch.setattr(ProductionConfig, 'AUTO_CREATE_TABLES', False)


def test_production_requires_real_secret(monkeypatch):
    _production(monkeypatch, DEFAULT_SECRET_KEY, 'https://app.example.com')
    with pytest.raises(RuntimeError, match='SECRET_KEY'):
        create_app('production')


def test_production_requires_explicit_origins(monkeypatch):
    _production(monkeypatch, 'a-real-secret', '*')
    with pytest.raises(RuntimeError, match='CORS_ALLOWED_ORIGINS'):
        create_app('production')


def test_production_app_rejects_foreign_origin(monkeypatch):
    _production(monkeypatch, 'a-real-secret', 'https://app.example.com')
    app = create_app('production')
    client = app.test_client()
    res = client.post('/api/auth/login', json={}, headers={'Origin': 'https://evil.example.com'})
    assert res.status_code == 403
    assert json.loads(res.data)['error'] == 'Invalid request origin'


def test_health_and_json_404(client):
    assert json.loads(client.get('/api/health').data) == {'status': 'ok'}
    res = client.get('/api/nothing-here')
    assert res.status_code == 404
    assert 'error' in json.loads(res.data)
