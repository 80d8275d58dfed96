"""
Sync Engine -- reconciles ~/.kaya against the account server.

Presence is the only signal. For each collection:

    to_download = remote - local      fetched and written, overwriting
    to_upload   = local - remote      pushed (anga and meta only)

Nothing is ever deleted on either side. Words is download-only and is
reconciled one anga sub-directory at a time.

    sync()  ->  anga  ->  meta  ->  words/*
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, Optional

from ..config import Credentials, load_config, resolve_home
from ..errors import AuthenticationFailure, IoFailure, SaveButtonError
from .client import PushOutcome, RemoteStore
from .guard import CollectionGuard
from .listing import is_safe_name, scan_local_files
from .models import Collection, CollectionKind, SyncReport, SyncResult

logger = logging.getLogger("savebutton.sync.engine")

StoreFactory = Callable[[Credentials], RemoteStore]


class SyncEngine:
    """Orchestrates reconciliation for every collection.

    The engine keeps no state between calls; each pass recomputes both
    listings from scratch.

    Args:
        home: Kaya home directory. Defaults to ~/.kaya.
        store_factory: Builds the RemoteStore for a set of credentials.
    """

    def __init__(
        self,
        home: Optional[Path] = None,
        store_factory: StoreFactory = RemoteStore,
    ) -> None:
        self.home = resolve_home(home)
        self.store_factory = store_factory
        self._guards = {
            kind: CollectionGuard(self.home, kind.value) for kind in CollectionKind
        }

    def sync(self) -> SyncReport:
        """Run one full pass: anga, then meta, then words.

        A collection whose listing fails is recorded in the report and
        the remaining collections still run. Missing credentials make
        this a no-op.

        Returns:
            SyncReport with per-collection counts and errors.

        Raises:
            CryptoFailure: If the stored password cannot be decrypted.
            DecodeFailure: If the config file is unreadable.
        """
        credentials = load_config(self.home).credentials()
        report = SyncReport()
        if credentials is None:
            return report

        store = self.store_factory(credentials)
        try:
            for collection in (Collection.anga(), Collection.meta()):
                self._run(
                    report,
                    collection.label,
                    lambda result, c=collection: self.reconcile(store, c, result),
                )
            self._run(
                report,
                CollectionKind.WORDS.value,
                lambda result: self.sync_words(store, result),
            )
        finally:
            store.close()

        if report.total_downloaded or report.total_uploaded:
            logger.info(
                "Sync complete: %d downloaded, %d uploaded",
                report.total_downloaded,
                report.total_uploaded,
            )
        return report

    def _run(
        self,
        report: SyncReport,
        label: str,
        step: Callable[[SyncResult], SyncResult],
    ) -> None:
        # Partial counts stay in the report when the step fails.
        result = report.results[label] = SyncResult(collection=label)
        try:
            step(result)
        except SaveButtonError as exc:
            logger.error("Sync of %s failed: %s", label, exc)
            report.errors[label] = str(exc)

    def reconcile(
        self,
        store: RemoteStore,
        collection: Collection,
        result: Optional[SyncResult] = None,
    ) -> SyncResult:
        """Reconcile one flat collection under its guard.

        Args:
            store: Remote client for the current account.
            collection: Anga or Meta.
            result: Result to accumulate into; a new one if omitted.

        Returns:
            SyncResult; ``skipped`` if another pass holds the guard.

        Raises:
            TransportFailure: If the remote listing cannot be fetched.
            IoFailure: If the guard or the local directory is unusable.
        """
        if result is None:
            result = SyncResult(collection=collection.label)
        with self._guards[collection.kind].try_hold() as held:
            if not held:
                logger.info("Skipping %s: pass already in progress", collection.label)
                result.skipped = True
                return result
            self._reconcile(store, collection, result)
        return result

    def sync_words(
        self, store: RemoteStore, result: Optional[SyncResult] = None
    ) -> SyncResult:
        """Download words for every anga the server lists.

        A sub-directory whose listing fails is skipped; the rest continue.
        """
        if result is None:
            result = SyncResult(collection=CollectionKind.WORDS.value)
        with self._guards[CollectionKind.WORDS].try_hold() as held:
            if not held:
                logger.info("Skipping words: pass already in progress")
                result.skipped = True
                return result

            for anga in sorted(store.list_words()):
                if not is_safe_name(anga):
                    logger.warning("Ignoring unsafe words directory name: %r", anga)
                    continue
                collection = Collection.words(anga)
                partial = SyncResult(collection=collection.label)
                try:
                    self._reconcile(store, collection, partial)
                except AuthenticationFailure:
                    raise
                except SaveButtonError as exc:
                    logger.warning("Skipping %s: %s", collection.label, exc)
                finally:
                    result.merge(partial)
        return result

    def _reconcile(
        self, store: RemoteStore, collection: Collection, result: SyncResult
    ) -> None:
        remote = {name for name in store.list_files(collection) if collection.accepts(name)}
        directory = collection.local_dir(self.home)
        try:
            local = scan_local_files(directory, collection)
        except OSError as exc:
            raise IoFailure(f"Cannot list {directory}: {exc}") from exc

        to_download = sorted(remote - local)
        to_upload = sorted(local - remote) if collection.uploads else []

        for filename in to_download:
            if self._download(store, collection, directory, filename):
                result.downloaded += 1
            else:
                result.failed += 1
        for filename in to_upload:
            if self._upload(store, collection, directory, filename):
                result.uploaded += 1
            else:
                result.failed += 1

    def _download(
        self, store: RemoteStore, collection: Collection, directory: Path, filename: str
    ) -> bool:
        if not is_safe_name(filename):
            logger.warning("Ignoring unsafe %s filename: %r", collection.label, filename)
            return False
        logger.info("  downloading %s: %s", collection.label, filename)
        try:
            content = store.fetch(collection, filename)
            directory.mkdir(parents=True, exist_ok=True)
            (directory / filename).write_bytes(content)
        except AuthenticationFailure:
            raise
        except (SaveButtonError, OSError) as exc:
            logger.error("Failed to download %s %s: %s", collection.label, filename, exc)
            return False
        return True

    def _upload(
        self, store: RemoteStore, collection: Collection, directory: Path, filename: str
    ) -> bool:
        logger.info("  uploading %s: %s", collection.label, filename)
        try:
            content = (directory / filename).read_bytes()
            outcome = store.push(collection, filename, content)
        except AuthenticationFailure:
            raise
        except (SaveButtonError, OSError) as exc:
            logger.error("Failed to upload %s %s: %s", collection.label, filename, exc)
            return False
        if outcome == PushOutcome.DUPLICATE:
            logger.debug("%s %s already on server", collection.label, filename)
        return True
