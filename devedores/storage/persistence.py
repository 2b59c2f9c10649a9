"""Whole-document persistence over a local key-value medium."""

from datetime import datetime
from typing import Callable

from devedores.exceptions import StorageWriteError
from devedores.logging import get_logger
from devedores.models import DOCUMENT_VERSION, Document
from devedores.storage.medium import KeyValueMedium
from devedores.storage.serialization import DECODE_ERRORS, dumps, loads
from devedores.utils import utcnow

logger = get_logger(__name__)

DEFAULT_STORAGE_KEY = "devedores_dados"
WRITE_FAILED_MESSAGE = "Unable to save local data"


class PersistenceAdapter:
    """Read and write the entire document under a single medium key."""

    def __init__(
        self,
        medium: KeyValueMedium,
        key: str = DEFAULT_STORAGE_KEY,
        clock: Callable[[], datetime] = utcnow,
        version: str = DOCUMENT_VERSION,
        owner: str = "",
    ) -> None:
        """Initialize persistence adapter.

        Parameters
        ----------
        medium : KeyValueMedium
            Durable store (file-backed in production, memory in tests).
        key : str
            Key the serialized document lives under.
        clock : Callable[[], datetime]
            Source of "now" for the ``last_updated`` stamp.
        version : str
            Version written into freshly seeded documents.
        owner : str
            Owner written into freshly seeded documents.
        """
        self.medium = medium
        self.key = key
        self.clock = clock
        self.version = version
        self.owner = owner

    def load(self) -> Document:
        """Return the stored document, seeding a default one if needed.

        A missing or unreadable value is treated as "no data": a default
        document is written and returned. Nothing is raised to the caller.
        """
        try:
            raw = self.medium.get_item(self.key)
        except (OSError, UnicodeDecodeError):
            logger.exception("Failed to read local data, starting from defaults")
            raw = None

        if raw is None:
            logger.info("No local data found, initializing")
            return self._initialize()

        try:
            document = loads(raw)
        except DECODE_ERRORS:
            logger.exception("Stored local data is corrupt, starting from defaults")
            return self._initialize()

        logger.debug("Loaded local data", extra={"clients": len(document.clients)})
        return document

    def save(self, document: Document, touch: bool = True) -> None:
        """Write the whole document.

        Parameters
        ----------
        document : Document
            Document to write.
        touch : bool
            Stamp ``settings.last_updated`` with the current time first.
            Reconciliation passes False so a document pulled from the sync
            file keeps the file's timestamp.

        Raises
        ------
        StorageWriteError
            When the medium rejects the write (quota, I/O error).
        """
        if touch:
            document.settings.last_updated = self.clock()
        try:
            self.medium.set_item(self.key, dumps(document))
        except OSError as e:
            logger.error("Failed to save local data: %s", e)
            raise StorageWriteError(WRITE_FAILED_MESSAGE) from e
        logger.debug("Saved local data", extra=document.summary())

    def _initialize(self) -> Document:
        document = Document.empty(self.clock(), version=self.version, owner=self.owner)
        try:
            self.medium.set_item(self.key, dumps(document))
        except OSError:
            # Still usable in memory; the next successful save persists it.
            logger.exception("Failed to write default local data")
        return document
