"""Dependency wiring — builds infrastructure once and hands out application services."""

from dataclasses import dataclass
from functools import lru_cache

import httpx

from fieldtrack.application.interfaces import LocalCapture, LocalTransform, Notifier
from fieldtrack.application.services import (
    ExpenseService,
    MediaAttachmentPipeline,
    MediaStore,
    OptimisticMutationManager,
    OrphanLedger,
    OutcomeReporter,
    SignedUrlCache,
    TaskService,
)
from fieldtrack.config import Settings, get_settings
from fieldtrack.domain.entities import OwnerKind, ScreenContext
from fieldtrack.infrastructure.media.file_capture import FileImageCapture
from fieldtrack.infrastructure.media.pillow_transform import PillowImageTransform
from fieldtrack.infrastructure.remote.auth_client import SupabaseAuthClient
from fieldtrack.infrastructure.remote.postgrest_client import PostgrestRemoteService
from fieldtrack.infrastructure.remote.repositories import (
    RemoteAttachmentRepository,
    RemoteCompanyRepository,
    RemoteExpenseRepository,
    RemoteProjectRepository,
    RemoteTaskRepository,
)
from fieldtrack.infrastructure.remote.storage_client import SupabaseStorageClient


@dataclass
class ClientContainer:
    """Process-wide clients, caches and repositories shared by every screen."""

    settings: Settings
    http_client: httpx.AsyncClient
    auth: SupabaseAuthClient
    remote: PostgrestRemoteService
    storage: SupabaseStorageClient
    media_stores: dict[OwnerKind, MediaStore]
    url_cache: SignedUrlCache
    orphans: OrphanLedger
    capture: LocalCapture
    transform: LocalTransform
    tasks: RemoteTaskRepository
    expenses: RemoteExpenseRepository
    companies: RemoteCompanyRepository
    projects: RemoteProjectRepository
    attachments: dict[OwnerKind, RemoteAttachmentRepository]

    async def aclose(self) -> None:
        await self.http_client.aclose()


def build_container(
    settings: Settings | None = None,
    http_client: httpx.AsyncClient | None = None,
) -> ClientContainer:
    """Wire every adapter from ``settings``; ``http_client`` is shared by all of them."""
    settings = settings or get_settings()
    http_client = http_client or httpx.AsyncClient(timeout=settings.http_timeout_seconds)

    auth = SupabaseAuthClient(
        settings.auth_url, settings.supabase_anon_key, http_client=http_client
    )
    remote = PostgrestRemoteService(
        settings.rest_url, settings.supabase_anon_key, auth=auth, http_client=http_client
    )
    storage = SupabaseStorageClient(
        settings.storage_url, settings.supabase_anon_key, auth=auth, http_client=http_client
    )
    ttl = settings.signed_url_ttl_seconds
    media_stores = {
        OwnerKind.TASK: MediaStore(storage, settings.task_media_bucket, ttl_seconds=ttl),
        OwnerKind.EXPENSE: MediaStore(storage, settings.expense_media_bucket, ttl_seconds=ttl),
    }

    return ClientContainer(
        settings=settings,
        http_client=http_client,
        auth=auth,
        remote=remote,
        storage=storage,
        media_stores=media_stores,
        url_cache=SignedUrlCache(media_stores),
        orphans=OrphanLedger(),
        capture=FileImageCapture(),
        transform=PillowImageTransform(settings.transform_dir or None),
        tasks=RemoteTaskRepository(remote),
        expenses=RemoteExpenseRepository(remote),
        companies=RemoteCompanyRepository(remote),
        projects=RemoteProjectRepository(remote),
        attachments={
            kind: RemoteAttachmentRepository(remote, kind) for kind in OwnerKind
        },
    )


@lru_cache
def get_container() -> ClientContainer:
    """Cached container — one set of clients and caches per process."""
    return build_container()


def get_media_pipeline(
    owner_kind: OwnerKind,
    owner_id: int | None,
    notifier: Notifier,
    container: ClientContainer | None = None,
) -> MediaAttachmentPipeline:
    """Provides a MediaAttachmentPipeline for one owner, sharing the URL cache and orphan ledger."""
    container = container or get_container()
    settings = container.settings
    return MediaAttachmentPipeline(
        owner_id,
        owner_kind,
        capture=container.capture,
        transform=container.transform,
        store=container.media_stores[owner_kind],
        repository=container.attachments[owner_kind],
        auth=container.auth,
        url_cache=container.url_cache,
        reporter=OutcomeReporter(notifier),
        orphans=container.orphans,
        max_edge=settings.image_max_edge,
        quality=settings.image_quality,
    )


def get_task_media_pipeline(
    context: ScreenContext, notifier: Notifier, container: ClientContainer | None = None
) -> MediaAttachmentPipeline:
    return get_media_pipeline(OwnerKind.TASK, context.task_id, notifier, container)


def get_expense_media_pipeline(
    expense_id: int, notifier: Notifier, container: ClientContainer | None = None
) -> MediaAttachmentPipeline:
    return get_media_pipeline(OwnerKind.EXPENSE, expense_id, notifier, container)


def get_task_service(
    context: ScreenContext, notifier: Notifier, container: ClientContainer | None = None
) -> TaskService:
    """Provides a TaskService with its own mutation manager for one project screen."""
    container = container or get_container()
    reporter = OutcomeReporter(notifier)
    manager = OptimisticMutationManager(container.tasks, reporter)
    return TaskService(manager, context, reporter)


def get_expense_service(
    context: ScreenContext, notifier: Notifier, container: ClientContainer | None = None
) -> ExpenseService:
    """Provides an ExpenseService whose photos go through the expense media pipeline."""
    container = container or get_container()
    reporter = OutcomeReporter(notifier)
    manager = OptimisticMutationManager(container.expenses, reporter)
    return ExpenseService(
        manager,
        context,
        reporter,
        auth=container.auth,
        projects=container.projects,
        pipeline_factory=lambda expense_id: get_expense_media_pipeline(
            expense_id, notifier, container
        ),
        currency=container.settings.default_currency,
    )
