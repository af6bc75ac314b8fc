import pytest
from unittest.mock import patch, AsyncMock, MagicMock
from fastapi import FastAPI
import httpx

# Module to test - importing the specific event handlers and the app object
from bami_service.app.main import startup_event, shutdown_event, app as main_app_instance
from bami_service.app.config import settings


@pytest.fixture
def mock_app():
    """Provides a mock FastAPI app instance with a state."""
    app = FastAPI()
    app.state = MagicMock()
    if hasattr(app.state, 'http_client'):
        del app.state.http_client
    return app

@pytest.mark.asyncio
@patch('bami_service.app.main.httpx.AsyncClient')
@patch('bami_service.app.main.HTTPXClientInstrumentor')
@patch('bami_service.app.main.get_case_repository')
@patch('bami_service.app.main.get_event_channel')
@patch('bami_service.app.main.get_pipeline_scheduler')
@patch('bami_service.app.main.logger')
async def test_startup_event_success(
    mock_logger,
    mock_get_pipeline_scheduler,
    mock_get_event_channel,
    mock_get_case_repository,
    mock_httpx_instrumentor,
    mock_async_client_constructor,
    mock_app
):
    mock_async_client_instance = AsyncMock(spec=httpx.AsyncClient)
    mock_async_client_constructor.return_value = mock_async_client_instance

    with patch('bami_service.app.main.app', mock_app):
        await startup_event()

    mock_async_client_constructor.assert_called_once_with(timeout=settings.DEFAULT_HTTP_TIMEOUT)
    assert mock_app.state.http_client == mock_async_client_instance
    mock_httpx_instrumentor.return_value.instrument.assert_called_once()
    mock_get_case_repository.assert_called_once()
    mock_get_event_channel.assert_called_once()
    mock_get_pipeline_scheduler.assert_called_once()

    mock_logger.info.assert_any_call("FastAPI application startup...")
    mock_logger.info.assert_any_call(f"HTTPX AsyncClient initialized with timeout {settings.DEFAULT_HTTP_TIMEOUT} and instrumented.")
    mock_logger.info.assert_any_call("Case repository, event channel and pipeline scheduler ready.")

@pytest.mark.asyncio
@patch('bami_service.app.main.httpx.AsyncClient')
@patch('bami_service.app.main.HTTPXClientInstrumentor')
@patch('bami_service.app.main.logger')
async def test_startup_event_warns_without_openai_key(mock_logger, mock_httpx_instrumentor, mock_async_client_constructor, mock_app, mocker):
    mocker.patch.object(settings, "OPENAI_API_KEY", None)

    with patch('bami_service.app.main.app', mock_app):
        await startup_event()

    mock_logger.warning.assert_called_once()
    assert "OPENAI_API_KEY" in mock_logger.warning.call_args[0][0]

@pytest.mark.asyncio
@patch('bami_service.app.main.httpx.AsyncClient')
@patch('bami_service.app.main.HTTPXClientInstrumentor')
@patch('bami_service.app.main.get_case_repository')
@patch('bami_service.app.main.logger')
async def test_startup_event_failure_is_logged(
    mock_logger,
    mock_get_case_repository,
    mock_httpx_instrumentor,
    mock_async_client_constructor,
    mock_app
):
    mock_get_case_repository.side_effect = Exception("repository unavailable")

    with patch('bami_service.app.main.app', mock_app):
        await startup_event()

    mock_async_client_constructor.assert_called_once()
    mock_logger.error.assert_called_once()
    assert "Failed during startup: repository unavailable" in mock_logger.error.call_args[0][0]

@pytest.mark.asyncio
@patch('bami_service.app.main.shutdown_services', new_callable=AsyncMock)
@patch('bami_service.app.main.logger')
async def test_shutdown_event_success(mock_logger, mock_shutdown_services, mock_app):
    mock_http_client_instance = AsyncMock(spec=httpx.AsyncClient)
    mock_app.state.http_client = mock_http_client_instance

    with patch('bami_service.app.main.app', mock_app):
        await shutdown_event()

    mock_shutdown_services.assert_called_once()
    mock_http_client_instance.aclose.assert_called_once()
    mock_logger.info.assert_any_call("FastAPI application shutdown...")
    mock_logger.info.assert_any_call("HTTPX AsyncClient closed.")

@pytest.mark.asyncio
@patch('bami_service.app.main.shutdown_services', new_callable=AsyncMock)
@patch('bami_service.app.main.logger')
async def test_shutdown_event_no_http_client(mock_logger, mock_shutdown_services, mock_app):
    if hasattr(mock_app.state, 'http_client'):
        del mock_app.state.http_client

    with patch('bami_service.app.main.app', mock_app):
        await shutdown_event()

    mock_shutdown_services.assert_called_once()
    log_info_calls = [call_args[0][0] for call_args in mock_logger.info.call_args_list]
    assert "HTTPX AsyncClient closed." not in log_info_calls

def test_routes_are_registered():
    paths = {route.path for route in main_app_instance.routes}

    assert {
        "/health",
        "/api/ingest/leads",
        "/api/documents",
        "/api/documents/upload",
        "/api/tracker/{case_id}",
        "/api/tracker/{case_id}/state",
        "/api/validate/{case_id}",
        "/api/chat",
        "/api/stream/{case_id}",
        "/api/webhooks/events",
        "/api/admin/login",
        "/api/admin/analytics",
        "/api/admin/cases",
    } <= paths
