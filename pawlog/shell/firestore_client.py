"""Firestore Client - Persistence for daily pet logs.

This module handles all database I/O for the day documents.
All I/O is contained here; business logic is in the core module.
Storage errors (``google.api_core.exceptions.GoogleAPIError``) propagate to
the calling service, which decides how to degrade.
"""

import logging
from dataclasses import dataclass
from datetime import date
from typing import Any, Callable

from google.api_core.exceptions import AlreadyExists
from google.cloud import firestore
from google.cloud.firestore_v1.field_path import FieldPath

from ..core.calendar import MAIN_KEY, document_key, should_archive
from ..core.entries import empty_day
from ..core.models import DayHandle


logger = logging.getLogger(__name__)

DayTransform = Callable[[dict[str, Any]], dict[str, Any]]
SnapshotCallback = Callable[[dict[str, Any]], None]


@dataclass
class FirestoreConfig:
    """Configuration for Firestore client.

    Attributes:
        project_id: GCP project ID (None for default)
        database: Firestore database name (None for default database)
        collection: Collection holding one document per day
    """

    project_id: str | None = None
    database: str | None = None
    collection: str = "puppyData"


class DayLogFirestoreClient:
    """Client for persisting day logs to Firestore.

    Document structure:
        {collection}/main: { walks: [...], meals: [...], snacks: [...] }
        {collection}/{YYYY-MM-DD}: same shape, one per past day
    """

    def __init__(self, config: FirestoreConfig | None = None) -> None:
        """Initialize Firestore client.

        Args:
            config: Firestore configuration
        """
        self.config = config or FirestoreConfig()
        self._client: firestore.Client | None = None

    @property
    def client(self) -> firestore.Client:
        """Lazy initialization of Firestore client."""
        if self._client is None:
            kwargs: dict[str, Any] = {}
            if self.config.project_id:
                kwargs["project"] = self.config.project_id
            if self.config.database:
                kwargs["database"] = self.config.database
            self._client = firestore.Client(**kwargs)
        return self._client

    def _collection(self) -> firestore.CollectionReference:
        return self.client.collection(self.config.collection)

    def _day_ref(self, key: str) -> firestore.DocumentReference:
        """Get reference to a day document."""
        return self._collection().document(key)

    # ==================== Document Resolution ====================

    def resolve(self, day: date, today: date) -> DayHandle:
        """Map a calendar day to its document, creating past days lazily.

        Today always maps to 'main' without I/O. Any other day costs one
        existence check and, if the document is missing, one create.

        Args:
            day: Day to resolve
            today: Current local day

        Returns:
            DayHandle with the key and whether this call created the document
        """
        key = document_key(day, today)
        if key == MAIN_KEY:
            return DayHandle(key=key, day=day, is_today=True)

        created = False
        if not self._day_ref(key).get().exists:
            created = self.ensure_day(key)
        return DayHandle(key=key, day=day, is_today=False, created=created)

    def ensure_day(self, key: str) -> bool:
        """Create an empty day document unless one already exists.

        Returns:
            True if the document was created by this call
        """
        try:
            self._day_ref(key).create(empty_day())
        except AlreadyExists:
            logger.debug("Day document already exists: %s", key)
            return False
        logger.info("Created day document: %s", key)
        return True

    # ==================== Day Operations ====================

    def get_day(self, key: str) -> dict[str, Any] | None:
        """Fetch a day document.

        Returns:
            Stored data if the document exists, None otherwise
        """
        logger.debug("Fetching day document: %s", key)
        doc = self._day_ref(key).get()
        if not doc.exists:
            return None
        return doc.to_dict() or empty_day()

    def mutate_day(self, key: str, transform: DayTransform) -> dict[str, Any]:
        """Read-modify-write a day document inside a transaction.

        Exceptions raised by ``transform`` abort the transaction and propagate.

        Args:
            key: Document key
            transform: Receives the current data (empty shape if absent) and
                returns the full document to write

        Returns:
            The written document
        """
        ref = self._day_ref(key)

        @firestore.transactional
        def _apply(transaction: firestore.Transaction) -> dict[str, Any]:
            snapshot = ref.get(transaction=transaction)
            current = (snapshot.to_dict() or empty_day()) if snapshot.exists else empty_day()
            updated = transform(current)
            transaction.set(ref, updated)
            return updated

        logger.info("Updating day document: %s", key)
        return _apply(self.client.transaction())

    def archive_main(self, ended_key: str) -> bool:
        """Move 'main' into the ended day's document and clear it.

        Runs as one transaction. Does nothing when 'main' is empty or the
        ended day already has a document, so repeated calls are harmless.

        Args:
            ended_key: YYYY-MM-DD key of the day that just ended

        Returns:
            True if data was archived
        """
        main_ref = self._day_ref(MAIN_KEY)
        ended_ref = self._day_ref(ended_key)

        @firestore.transactional
        def _apply(transaction: firestore.Transaction) -> bool:
            main_snap = main_ref.get(transaction=transaction)
            ended_snap = ended_ref.get(transaction=transaction)
            main_data = main_snap.to_dict() if main_snap.exists else None
            if not should_archive(main_data, ended_snap.exists):
                return False
            transaction.set(ended_ref, main_data)
            transaction.set(main_ref, empty_day())
            return True

        archived = _apply(self.client.transaction())
        if archived:
            logger.info("Archived 'main' into history document: %s", ended_key)
        else:
            logger.info("No data to archive or %s already exists", ended_key)
        return archived

    # ==================== Queries & Watches ====================

    def list_day_keys(self, limit: int, start_after: str | None = None) -> list[str]:
        """List document keys in descending order.

        Args:
            limit: Maximum number of keys
            start_after: Return only keys strictly after this one

        Returns:
            Raw keys, including 'main' if it falls in the page
        """
        document_id = FieldPath.document_id()
        query = self._collection().order_by(document_id, direction=firestore.Query.DESCENDING)
        if start_after:
            query = query.start_after({document_id: self._day_ref(start_after)})

        keys = [doc.id for doc in query.limit(limit).stream()]
        logger.debug("Listed %d day keys after %s", len(keys), start_after)
        return keys

    def watch_day(self, key: str, callback: SnapshotCallback) -> Callable[[], None]:
        """Subscribe to changes of a day document.

        ``callback`` runs on Firestore's watch thread with the document data;
        deleted or missing documents are not delivered.

        Returns:
            Function that cancels the subscription
        """

        def _on_snapshot(snapshots, changes, read_time) -> None:
            for snapshot in snapshots:
                if snapshot.exists:
                    callback(snapshot.to_dict() or empty_day())

        watch = self._day_ref(key).on_snapshot(_on_snapshot)
        logger.debug("Watching day document: %s", key)
        return watch.unsubscribe
