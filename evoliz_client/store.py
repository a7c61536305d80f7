"""
File-backed key-value store and client directory.

:class:`JsonFileStore` keeps a small JSON object on disk.  It is meant
for scripts and local experiments, not as a database: there is no
cross-process locking and every write rewrites the whole file.

:class:`ClientDirectory` uses such a store to link your own customer
identifiers to Evoliz ``clientid`` values so that a client is created on
the provider only once.
"""

from __future__ import annotations

import copy
import json
import logging
import os
import tempfile
import threading
from pathlib import Path
from typing import TYPE_CHECKING, Any, Dict, Mapping, Optional, Union

from .exceptions import EvolizError

if TYPE_CHECKING:
    from .client import EvolizClient

logger = logging.getLogger(__name__)


class JsonFileStore:
    """A dictionary persisted as a single JSON file."""

    def __init__(self, path: Union[str, Path]) -> None:
        self.path = Path(path)
        self._lock = threading.Lock()
        self._data: Dict[str, Any] = self._load()

    def _load(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}
        text = self.path.read_text(encoding="utf-8")
        if not text.strip():
            return {}
        data = json.loads(text)
        if not isinstance(data, dict):
            raise ValueError(f"{self.path} does not contain a JSON object")
        return data

    def _save(self, data: Dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=str(self.path.parent), suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(data, handle, indent=2, sort_keys=True)
            os.replace(tmp_name, self.path)
        except BaseException:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise

    def get(self, key: str, default: Any = None) -> Any:
        """Return a copy of the value stored under ``key``."""
        with self._lock:
            if key not in self._data:
                return default
            return copy.deepcopy(self._data[key])

    def has(self, key: str) -> bool:
        with self._lock:
            return key in self._data

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            data = dict(self._data)
            data[key] = copy.deepcopy(value)
            self._save(data)
            self._data = data

    def delete(self, key: str) -> bool:
        """Remove ``key``; return whether it was present."""
        with self._lock:
            if key not in self._data:
                return False
            data = dict(self._data)
            del data[key]
            self._save(data)
            self._data = data
            return True

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and self.has(key)

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)


class ClientDirectory:
    """Map caller-owned customer keys to Evoliz clients.

    Parameters
    ----------
    client : EvolizClient
        Used to create missing clients.
    store : JsonFileStore
        Where the ``key -> record`` links are kept.
    defaults : mapping, optional
        Fields merged into every ``create_client`` body, typically
        ``type`` and ``address`` which the provider requires.
    """

    def __init__(
        self,
        client: "EvolizClient",
        store: JsonFileStore,
        *,
        defaults: Optional[Mapping[str, Any]] = None,
    ) -> None:
        self.client = client
        self.store = store
        self.defaults = dict(defaults or {})

    def get_or_create(self, key: str, name: str, email: str, **fields: Any) -> Dict[str, Any]:
        """Return the record stored for ``key``, creating the client if needed.

        The record has the form ``{"clientid": int, "name": str,
        "email": str}``.
        """
        existing = self.store.get(key)
        if existing is not None:
            logger.debug("Client %r already linked to Evoliz client %s", key, existing["clientid"])
            return dict(existing)

        body: Dict[str, Any] = {"type": "Particulier"}
        body.update(self.defaults)
        body.update(fields)
        body["name"] = name
        response = self.client.create_client(body)
        client_id = response.get("clientid") if isinstance(response, dict) else None
        if client_id is None:
            raise EvolizError(f"create_client response has no clientid: {response!r}")

        record = {"clientid": client_id, "name": name, "email": email}
        self.store.set(key, record)
        logger.info("Linked client %r to Evoliz client %s", key, client_id)
        return record
