"""Tests for file store API endpoints."""

import sqlite3

import pytest
from fastapi.testclient import TestClient

from api.main import app
from common.checksum import compute_checksum


@pytest.fixture
def client(catalog):
    """Create FastAPI test client over the temporary catalog."""
    app.state.catalog = catalog
    with TestClient(app) as test_client:
        yield test_client
    app.state.catalog = None


def upload(client, content=b"ABCDEFGHI", **form):
    data = {"file_date": "2024-03-01T12:00:00", "hierarchy": "reports,2024"}
    data.update(form)
    return client.post(
        "/files",
        files={"file": ("report.txt", content, "text/plain")},
        data=data,
    )


def test_root_endpoint(client):
    """Test health check endpoint."""
    response = client.get('/')
    assert response.status_code == 200
    assert response.json()['status'] == 'running'
    assert 'X-Request-ID' in response.headers


def test_upload_stores_file(client):
    response = upload(client)

    assert response.status_code == 201
    data = response.json()
    assert data['deduplicated'] is False
    assert data['chunks_written'] == 3
    assert data['bytes_received'] == 9
    assert data['file']['status'] == 'finished'
    assert data['file']['file_size'] == 9
    assert data['file']['file_checksum'] == compute_checksum(b"ABCDEFGHI")
    assert data['file']['file_hierarchy'] == ['reports', '2024']
    assert data['file']['file_extension'] == 'txt'
    assert data['file']['mime_type'] == 'text/plain'


def test_upload_same_content_is_deduplicated(client):
    first = upload(client).json()
    second = upload(client, generated_name='copy.txt').json()

    assert second['deduplicated'] is True
    assert second['chunks_written'] == 0
    assert second['file']['file_id'] == first['file']['file_id']
    assert client.get('/files').json()['total_count'] == 1


def test_upload_without_dedup(client):
    first = upload(client).json()
    second = upload(client, deduplicate='false').json()

    assert second['deduplicated'] is False
    assert second['file']['file_id'] != first['file']['file_id']


def test_upload_rejects_bad_attributes(client):
    response = upload(client, attributes='{not json')

    assert response.status_code == 400
    assert response.json()['code'] == 'INVALID_METADATA'


def test_upload_rejects_non_object_attributes(client):
    response = upload(client, attributes='[1, 2]')

    assert response.status_code == 400
    assert response.json()['code'] == 'INVALID_METADATA'


def test_list_files_with_filters(client):
    upload(client, content=b"one", hierarchy="a")
    upload(client, content=b"three", hierarchy="b", file_date="2024-05-01T00:00:00")

    all_files = client.get('/files').json()
    by_hierarchy = client.get('/files', params={'hierarchy': 'b'}).json()
    by_date = client.get('/files', params={'end_date': '2024-04-01T00:00:00'}).json()

    assert all_files['total_count'] == 2
    assert all_files['total_size'] == 8
    assert [f['file_hierarchy'] for f in by_hierarchy['files']] == [['b']]
    assert [f['file_size'] for f in by_date['files']] == [3]


def test_get_file_metadata(client):
    file_id = upload(client).json()['file']['file_id']

    response = client.get(f'/files/{file_id}')

    assert response.status_code == 200
    assert response.json()['chunk_count'] == 3


def test_get_missing_file(client):
    response = client.get('/files/missing')

    assert response.status_code == 404
    assert response.json()['code'] == 'FILE_NOT_FOUND'


def test_download_streams_content(client):
    file_id = upload(client).json()['file']['file_id']

    response = client.get(f'/files/{file_id}/download')

    assert response.status_code == 200
    assert response.content == b"ABCDEFGHI"
    assert response.headers['X-File-Checksum'] == compute_checksum(b"ABCDEFGHI")
    assert 'report.txt' in response.headers['Content-Disposition']


def test_download_empty_file(client):
    file_id = upload(client, content=b"").json()['file']['file_id']

    response = client.get(f'/files/{file_id}/download')

    assert response.status_code == 200
    assert response.content == b""


def test_download_missing_file(client):
    response = client.get('/files/missing/download')

    assert response.status_code == 404


def test_download_with_missing_first_chunk(client, db_path):
    file_id = upload(client).json()['file']['file_id']
    conn = sqlite3.connect(str(db_path))
    try:
        conn.execute('DELETE FROM file_chunks WHERE file_id = ? AND chunk_number = 0', (file_id,))
        conn.commit()
    finally:
        conn.close()

    response = client.get(f'/files/{file_id}/download')

    assert response.status_code == 500
    assert response.json()['code'] == 'MISSING_CHUNK'


def test_update_file(client):
    file_id = upload(client).json()['file']['file_id']

    response = client.patch(f'/files/{file_id}', json={
        'generated_name': 'renamed.txt',
        'file_hierarchy': ['archive'],
    })

    assert response.status_code == 200
    data = response.json()
    assert data['generated_name'] == 'renamed.txt'
    assert data['file_hierarchy'] == ['archive']
    assert data['original_name'] == 'report.txt'


def test_update_missing_file(client):
    response = client.patch('/files/missing', json={'generated_name': 'x'})

    assert response.status_code == 404
    assert response.json()['code'] == 'FILE_NOT_FOUND'


def test_missing_catalog_is_reported():
    app.state.catalog = None
    client = TestClient(app)

    response = client.get('/files')

    assert response.status_code == 503
    assert response.json()['code'] == 'CONFIGURATION_ERROR'
