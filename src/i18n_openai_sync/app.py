"""Composition root wiring stores, chains and the watcher together."""

from __future__ import annotations

import asyncio

from openai import AsyncOpenAI

from .cache import SqliteKeyValueStore, TranslationResultCache
from .chain import ChangeHandlerChain, KeyScanModule, KeyScanner, ReadJsonFileModule
from .config import SyncSettings
from .locks import FileLockStore
from .logger import get_logger
from .status import LoggingStatusIndicator, StatusIndicator
from .stores import FileCategory, FileContentStore, FileLocationStore
from .sync import TranslationSyncModule
from .translator import OpenAITranslationProvider, TranslationProvider
from .watcher import FileWatchOrchestrator
from .workspace import Workspace

logger = get_logger(__name__)


class SyncApplication:
    """
    Owns every piece of shared state for one watched workspace.

    Stores and caches are created here and handed to their consumers
    explicitly; nothing is looked up globally.
    """

    def __init__(
        self,
        settings: SyncSettings,
        provider: TranslationProvider | None = None,
        status: StatusIndicator | None = None,
        scanner: KeyScanner | None = None,
        workspace: Workspace | None = None,
        lock_store: FileLockStore | None = None,
        cache: TranslationResultCache | None = None,
    ):
        self.settings = settings
        self.workspace = workspace or Workspace(settings.workspace, settings.exclude_dirs)
        self.lock_store = lock_store or FileLockStore(grace_delay=settings.grace_delay)
        self.location_store = FileLocationStore()
        self.content_store = FileContentStore(self.workspace)
        self.status = status or LoggingStatusIndicator()

        self.cache = cache
        if self.cache is None and provider is None:
            self.cache = TranslationResultCache(
                SqliteKeyValueStore(settings.resolved_cache_file),
                default_ttl=settings.cache_ttl,
            )

        self.provider = provider or OpenAITranslationProvider(
            client=AsyncOpenAI(api_key=settings.openai_api_key) if settings.openai_api_key else None,
            model=settings.translation_model,
            cache=self.cache,
            cache_ttl=settings.cache_ttl,
            max_concurrent_requests=settings.max_concurrent_requests,
            initial_retry_delay=settings.initial_retry_delay,
            max_backoff_resets=settings.max_backoff_resets,
        )

        chains = {
            FileCategory.TRANSLATION: ChangeHandlerChain([
                ReadJsonFileModule(self.workspace),
                TranslationSyncModule(
                    self.workspace,
                    self.content_store,
                    self.location_store,
                    self.lock_store,
                    self.provider,
                    self.status,
                    indentation=settings.indentation,
                ),
            ]),
        }
        patterns = {FileCategory.TRANSLATION: settings.locales_globs}
        if scanner is not None and settings.code_globs:
            chains[FileCategory.CODE] = ChangeHandlerChain([KeyScanModule(scanner)])
            patterns[FileCategory.CODE] = settings.code_globs

        self.orchestrator = FileWatchOrchestrator(
            self.workspace,
            self.location_store,
            self.content_store,
            self.lock_store,
            chains,
            patterns,
            disable_flags=[lambda: not self.settings.enabled],
        )

    async def initialize(self, watch: bool = True) -> None:
        logger.info(f"Starting translation sync for {self.workspace.root}")
        if isinstance(self.provider, OpenAITranslationProvider) and self.settings.openai_api_key:
            await self.provider.verify_model()
        await self.orchestrator.start(watch=watch)
        logger.info(
            f"Tracking {len(self.content_store)} translation files "
            f"in {self.settings.locales_globs}"
        )

    async def run_forever(self) -> None:
        await self.initialize()
        try:
            await asyncio.Event().wait()
        finally:
            await self.shutdown()

    async def shutdown(self) -> None:
        await self.orchestrator.stop()
        self.lock_store.dispose()
        if self.cache is not None:
            self.cache.close()
        logger.info("Translation sync stopped")
