from conftest import RecordingExecutor
from fastapi.testclient import TestClient

from app.api import deps
from app.core.config import AppSettings
from app.main import create_app


def test_healthcheck_returns_ok() -> None:
    client = TestClient(create_app())
    response = client.get("/v1/health/")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_root_reports_service_metadata() -> None:
    settings = AppSettings(project_name="Table Agent", version="9.9.9")
    client = TestClient(create_app(settings))
    response = client.get("/")
    assert response.json() == {"service": "Table Agent", "version": "9.9.9"}


def test_database_check_reports_ready() -> None:
    executor = RecordingExecutor()
    application = create_app()
    application.dependency_overrides[deps.get_statement_executor] = lambda: executor

    response = TestClient(application).get("/v1/health/db")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}
    assert executor.statements[0].sql == "SELECT 1 AS ok"


def test_database_check_reports_unavailable_store() -> None:
    executor = RecordingExecutor()
    executor.fail_on.add("SELECT 1")
    application = create_app()
    application.dependency_overrides[deps.get_statement_executor] = lambda: executor

    response = TestClient(application).get("/v1/health/db")

    assert response.status_code == 503
    assert response.json() == {"status": "unavailable"}


class _RecordingLogger:
    def __init__(self) -> None:
        self.warnings: list[str] = []

    def warning(self, event: str, **kwargs) -> None:
        self.warnings.append(event)


def test_startup_warns_when_agent_has_no_api_key(monkeypatch) -> None:
    from app import main

    recorder = _RecordingLogger()
    monkeypatch.setattr(main, "logger", recorder)

    main._check_agent_configuration(AppSettings(openai_api_key=None))
    main._check_agent_configuration(AppSettings(openai_api_key="configured"))

    assert recorder.warnings == ["application.agent.unconfigured"]
