"""Remote store clients for device records"""
from typing import Any, Callable, Dict, List, Optional, Tuple
from google.cloud import firestore
from config.store_config import StoreConfig
from utils.clock import Clock
from utils.exceptions import RemoteReadError, RemoteWriteError
import logging

logger = logging.getLogger(__name__)


class RemoteStore:
    """
    Key-path addressed store the device and controller talk to.

    Paths are slash separated, e.g. devices/esp32_001/current/temp.
    Implementations raise RemoteReadError / RemoteWriteError on failure and
    must bound every call so callers on the device loop never block for long.
    """

    def is_ready(self) -> bool:
        """Whether the store can currently serve requests"""
        raise NotImplementedError

    def get(self, path: str) -> Any:
        """Return the value at path, or None if nothing is stored there"""
        raise NotImplementedError

    def set(self, path: str, value: Any):
        """Store value at path, replacing what was there"""
        raise NotImplementedError

    def push(self, path: str, value: Dict[str, Any]) -> str:
        """Append value to the list at path and return the new entry's key"""
        raise NotImplementedError

    def watch(self, path: str, callback: Callable[[Any], None]) -> Callable[[], None]:
        """Call callback with the value at path whenever it changes; returns an unsubscribe function"""
        raise NotImplementedError


class FirestoreStore(RemoteStore):
    """
    RemoteStore backed by Firestore.

    Path mapping:
    - The first two segments name a document:   devices/{device_id}
    - Remaining segments are a nested field:     current/temp -> current.temp
    - push() appends to the sub-collection named by the full path:
      devices/{device_id}/errors/{auto_id}

    Document structure:
    {
        "current": {"temp": 22.5, "hum": 48.0, "timestamp": 1760084970, "override": false},
        "metadata": {"last_online": 1760084970}
    }

    Writes use set(..., merge=True) so a single leaf can be written without
    the document having to exist first, and without touching sibling fields.
    Every call passes an explicit timeout (StoreConfig.REMOTE_TIMEOUT_SECONDS).

    The client is created lazily. If that fails (e.g. missing credentials) the
    store reports not ready, and calls fail fast, until retry_interval has
    passed; only then is creating the client tried again.
    """

    def __init__(self,
                 project_id: str = None,
                 timeout: float = None,
                 client: firestore.Client = None,
                 retry_interval: float = None,
                 clock: Clock = None):
        """
        Initialize store

        Args:
            project_id: GCP project, defaults to StoreConfig.PROJECT_ID
            timeout: Per-call timeout in seconds, defaults to StoreConfig.REMOTE_TIMEOUT_SECONDS
            client: Pre-built Firestore client (mainly for tests)
            retry_interval: Seconds to wait after a failed client creation,
                defaults to StoreConfig.CLIENT_RETRY_SECONDS
            clock: Time source for the retry interval
        """
        self.project_id = project_id or StoreConfig.PROJECT_ID
        self.timeout = timeout if timeout is not None else StoreConfig.REMOTE_TIMEOUT_SECONDS
        self.retry_interval = retry_interval if retry_interval is not None else StoreConfig.CLIENT_RETRY_SECONDS
        self.clock = clock or Clock()
        self.db = client
        self._retry_at_ms: Optional[int] = None

    def is_ready(self) -> bool:
        if self.db is not None:
            return True

        now = self.clock.monotonic_ms()
        if self._retry_at_ms is not None and now < self._retry_at_ms:
            return False

        try:
            self.db = firestore.Client(project=self.project_id or None)
            self._retry_at_ms = None
            logger.info(f"Firestore client initialized for project {self.project_id or '(default)'}")
            return True
        except Exception as e:
            self._retry_at_ms = now + int(self.retry_interval * 1000)
            logger.warning(f"Firestore client not available, retrying in {self.retry_interval}s: {e}")
            return False

    def get(self, path: str) -> Any:
        document_path, field_path = self._split_path(path)

        try:
            self._require_client()
            doc_ref = self.db.document(document_path)

            if field_path:
                snapshot = doc_ref.get(field_paths=[field_path], timeout=self.timeout)
            else:
                snapshot = doc_ref.get(timeout=self.timeout)

            if not snapshot.exists:
                return None

            if not field_path:
                return snapshot.to_dict()

            try:
                return snapshot.get(field_path)
            except KeyError:
                return None

        except Exception as e:
            logger.error(f"Failed to read {path}: {e}", exc_info=True)
            raise RemoteReadError(f"Failed to read {path}: {str(e)}") from e

    def set(self, path: str, value: Any):
        document_path, field_path = self._split_path(path)

        if field_path:
            data = self._nest(field_path.split('.'), value)
        elif isinstance(value, dict):
            data = value
        else:
            raise RemoteWriteError(f"Cannot store a scalar as document {path}")

        try:
            self._require_client()
            self.db.document(document_path).set(data, merge=True, timeout=self.timeout)
            logger.debug(f"Wrote {path}")
        except Exception as e:
            logger.error(f"Failed to write {path}: {e}", exc_info=True)
            raise RemoteWriteError(f"Failed to write {path}: {str(e)}") from e

    def push(self, path: str, value: Dict[str, Any]) -> str:
        try:
            self._require_client()
            _, doc_ref = self.db.collection(path.strip('/')).add(value, timeout=self.timeout)
            logger.debug(f"Appended {doc_ref.id} to {path}")
            return doc_ref.id
        except Exception as e:
            logger.error(f"Failed to append to {path}: {e}", exc_info=True)
            raise RemoteWriteError(f"Failed to append to {path}: {str(e)}") from e

    def watch(self, path: str, callback: Callable[[Any], None]) -> Callable[[], None]:
        document_path, field_path = self._split_path(path)

        def on_snapshot(doc_snapshots: List[Any], changes: Any, read_time: Any):
            for snapshot in doc_snapshots:
                data = snapshot.to_dict() if snapshot.exists else None
                if data is not None and field_path:
                    for part in field_path.split('.'):
                        data = data.get(part) if isinstance(data, dict) else None
                try:
                    callback(data)
                except Exception as e:
                    logger.error(f"Watch callback for {path} failed: {e}", exc_info=True)

        try:
            self._require_client()
            watch = self.db.document(document_path).on_snapshot(on_snapshot)
        except Exception as e:
            logger.error(f"Failed to watch {path}: {e}", exc_info=True)
            raise RemoteReadError(f"Failed to watch {path}: {str(e)}") from e

        logger.info(f"Watching {path}")
        return watch.unsubscribe

    def _require_client(self):
        if not self.is_ready():
            raise ConnectionError("Firestore client is not initialized")

    @staticmethod
    def _split_path(path: str) -> Tuple[str, Optional[str]]:
        """
        Split a store path into a document path and a dotted field path

        Args:
            path: Slash separated store path

        Returns:
            Tuple of (document_path: str, field_path: Optional[str])
        """
        segments = [segment for segment in path.split('/') if segment]
        if len(segments) < 2:
            raise ValueError(f"Path must name at least a document: {path}")

        document_path = '/'.join(segments[:2])
        field_path = '.'.join(segments[2:]) or None
        return document_path, field_path

    @staticmethod
    def _nest(parts: List[str], value: Any) -> Dict[str, Any]:
        data = value
        for part in reversed(parts):
            data = {part: data}
        return data
