"""Unit tests for dependency wiring and logging setup."""

import logging

import httpx
import pytest

from fieldtrack.application.services import ExpenseService, TaskService
from fieldtrack.config import Settings
from fieldtrack.domain.entities import OwnerKind, ScreenContext
from fieldtrack.infrastructure.dependencies import (
    build_container,
    get_expense_media_pipeline,
    get_expense_service,
    get_task_media_pipeline,
    get_task_service,
)
from fieldtrack.infrastructure.logging.log_config import setup_logging
from fieldtrack.infrastructure.notifications.logging_notifier import RecordingNotifier


@pytest.fixture
def container():
    settings = Settings(_env_file=None, supabase_url="https://demo.supabase.co", supabase_anon_key="anon")
    client = httpx.AsyncClient(transport=httpx.MockTransport(lambda request: httpx.Response(200, json=[])))
    return build_container(settings, http_client=client)


def test_container_binds_buckets_per_owner_kind(container):
    assert container.media_stores[OwnerKind.TASK].bucket == "task-media"
    assert container.media_stores[OwnerKind.EXPENSE].bucket == "expense-media"
    assert container.attachments[OwnerKind.EXPENSE].collection == "expense_media"
    assert container.attachments[OwnerKind.EXPENSE].owner_column == "expense_id"


def test_services_get_their_own_managers(container):
    notifier = RecordingNotifier()
    context = ScreenContext(project_id=1)

    first = get_task_service(context, notifier, container)
    second = get_task_service(context, notifier, container)

    assert isinstance(first, TaskService)
    assert first.manager is not second.manager
    assert isinstance(get_expense_service(context, notifier, container), ExpenseService)


def test_pipelines_share_cache_and_orphan_ledger(container):
    notifier = RecordingNotifier()

    task_pipeline = get_task_media_pipeline(ScreenContext(project_id=1, task_id=7), notifier, container)
    expense_pipeline = get_expense_media_pipeline(5, notifier, container)

    assert task_pipeline.owner_id == 7
    assert task_pipeline.owner_kind is OwnerKind.TASK
    assert expense_pipeline.owner_kind is OwnerKind.EXPENSE
    assert task_pipeline._url_cache is expense_pipeline._url_cache
    assert task_pipeline._orphans is container.orphans


@pytest.mark.asyncio
async def test_task_service_talks_to_rest_endpoint():
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json=[])

    settings = Settings(_env_file=None, supabase_url="https://demo.supabase.co", supabase_anon_key="anon")
    container = build_container(settings, http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))

    await get_task_service(ScreenContext(project_id=3), RecordingNotifier(), container).load_tasks()
    await container.aclose()

    assert str(seen[0].url).startswith("https://demo.supabase.co/rest/v1/tasks?")
    assert seen[0].url.params["project_id"] == "eq.3"
    assert seen[0].url.params["order"] == "updated_at.desc"


def test_setup_logging_applies_category_levels():
    settings = Settings(_env_file=None, log_level_http="ERROR", log_level_pipeline="DEBUG")

    setup_logging(settings)

    assert logging.getLogger("httpx").level == logging.ERROR
    assert logging.getLogger("fieldtrack.pipeline").level == logging.DEBUG


def test_setup_logging_falls_back_to_info_for_unknown_levels():
    settings = Settings(_env_file=None, log_level_mutations="chatty")

    applied = setup_logging(settings)

    assert applied["log_level_mutations"] == logging.INFO
    assert logging.getLogger("fieldtrack.application.services.entity_queue").level == logging.INFO
