"""Tests for the upload script."""

import os
import importlib.util
from pathlib import Path
from unittest.mock import Mock, patch

import pytest


SCRIPT_PATH = Path(__file__).parent.parent / "scripts" / "upload.py"


def make_response(status_code, content=b""):
    response = Mock()
    response.status_code = status_code
    response.content = content
    response.text = content.decode("utf-8")
    return response


@pytest.fixture
def upload_script():
    """Load scripts/upload.py as a module."""
    spec = importlib.util.spec_from_file_location("upload_script", SCRIPT_PATH)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    with patch.object(module, "load_dotenv"):
        yield module


@pytest.fixture
def mock_env_vars():
    env = {
        'BUNNY_STORAGE_ACCESS_KEY': 'test-access-key',
        'BUNNY_API_KEY': 'test-api-key',
        'BUNNY_STORAGE_ZONE': 'test-zone',
    }
    with patch.dict(os.environ, env, clear=True):
        yield env


def test_format_size(upload_script):
    assert upload_script.format_size(512) == "512.00 B"
    assert upload_script.format_size(1536) == "1.50 KB"


def test_upload_and_purge(upload_script, mock_env_vars, tmp_path):
    """Should upload the file under its base name and purge the CDN copy."""
    local_file = tmp_path / "logo.png"
    local_file.write_bytes(b"png bytes")

    with patch('bunny_storage.client.requests') as mock_requests:
        mock_requests.request.side_effect = [make_response(201), make_response(200)]

        assert upload_script.main([str(local_file), "--purge"]) == 0

    put_call, purge_call = mock_requests.request.call_args_list
    assert put_call[0][:2] == ('PUT', 'https://storage.bunnycdn.com/test-zone/logo.png')
    assert put_call[1]['data'] == b"png bytes"
    assert purge_call[0][1] == (
        'https://api.bunny.net/purge?url=https://test-zone.b-cdn.net/logo.png&async=true'
    )


def test_upload_custom_remote_name_and_zone(upload_script, mock_env_vars, tmp_path):
    local_file = tmp_path / "index.html"
    local_file.write_text("<html></html>")

    with patch('bunny_storage.client.requests') as mock_requests:
        mock_requests.request.return_value = make_response(201)

        assert upload_script.main([str(local_file), "site/index.html", "--zone", "web"]) == 0

    assert mock_requests.request.call_args[0][1] == 'https://storage.bunnycdn.com/web/site/index.html'


def test_missing_file(upload_script, mock_env_vars, tmp_path):
    assert upload_script.main([str(tmp_path / "nope.txt")]) == 1


def test_storage_error_exit_code(upload_script, mock_env_vars, tmp_path):
    """Should exit with 1 when the upload is rejected."""
    local_file = tmp_path / "a.txt"
    local_file.write_text("data")

    with patch('bunny_storage.client.requests') as mock_requests:
        mock_requests.request.return_value = make_response(401, b"Unauthorized")

        assert upload_script.main([str(local_file)]) == 1


def test_usage_error_exit_code(upload_script, mock_env_vars):
    """Should exit with 1 when no file is given."""
    assert upload_script.main([]) == 1
