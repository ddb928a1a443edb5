"""
Model registry backed by the models.dev provider catalogue.

Harnesses may list ``provider:<id>`` (every model of one provider) or
``discover:active`` (every model of every provider whose API credentials
are set) instead of concrete model ids. The registry resolves those
tokens from a cached copy of https://models.dev/api.json.
"""

import json
import logging
import os
import threading
import time
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional
from urllib.error import HTTPError, URLError
from urllib.request import Request, urlopen

from .exceptions import DiscoveryError
from .protocols import ModelResolver

logger = logging.getLogger(__name__)

MODELS_API_URL = "https://models.dev/api.json"
DEFAULT_CACHE_DIR = Path.home() / ".cache" / "blunderbuss"
CACHE_FILENAME = "models-api.json"

PROVIDER_PREFIX = "provider:"
DISCOVER_ACTIVE = "discover:active"


class ModelRegistry:
    """Provider catalogue with a JSON file cache.

    Loaded from a worker thread and read from the UI thread, so access to
    the provider map is guarded by a lock.
    """

    def __init__(
        self,
        cache_dir: Optional[Path] = None,
        attempts: int = 3,
        backoff: float = 1.0,
        timeout: float = 30.0,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.cache_path = Path(cache_dir or DEFAULT_CACHE_DIR) / CACHE_FILENAME
        self.attempts = max(1, attempts)
        self.backoff = backoff
        self.timeout = timeout
        self._sleep = sleep
        self._lock = threading.Lock()
        self._providers: Dict[str, Dict[str, Any]] = {}

    def set_providers(self, providers: Dict[str, Dict[str, Any]]) -> None:
        with self._lock:
            self._providers = dict(providers)

    @property
    def provider_count(self) -> int:
        with self._lock:
            return len(self._providers)

    def load(self) -> None:
        """Load the cache, refreshing from the network if it is missing or unusable.

        Raises:
            DiscoveryError: if neither the cache nor the network yields a catalogue
        """
        try:
            data = json.loads(self.cache_path.read_text())
        except FileNotFoundError:
            logger.info("No model cache at %s, fetching", self.cache_path)
            self.refresh()
            return
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("Model cache unreadable (%s), fetching", e)
            self.refresh()
            return

        if not isinstance(data, dict) or not data:
            logger.warning("Model cache is empty, fetching")
            self.refresh()
            return

        self.set_providers(data)

    def refresh(self) -> None:
        """Fetch the catalogue and rewrite the cache."""
        data = self._fetch()
        _validate_catalogue(data)
        try:
            self.cache_path.parent.mkdir(parents=True, exist_ok=True)
            self.cache_path.write_text(json.dumps(data, indent=2))
        except OSError as e:
            raise DiscoveryError(f"writing model cache: {e}") from e
        self.set_providers(data)
        logger.info("Fetched %d providers from models.dev", len(data))

    def _fetch(self) -> Any:
        req = Request(MODELS_API_URL, headers={"Accept": "application/json"})
        last_error: Optional[Exception] = None
        for attempt in range(self.attempts):
            try:
                with urlopen(req, timeout=self.timeout) as resp:
                    return json.loads(resp.read().decode("utf-8"))
            except HTTPError as e:
                raise DiscoveryError(f"unexpected status from models.dev: HTTP {e.code}") from e
            except (json.JSONDecodeError, UnicodeDecodeError) as e:
                raise DiscoveryError(f"decoding api.json: {e}") from e
            except (URLError, OSError) as e:
                last_error = e
                logger.debug("models.dev fetch attempt %d failed: %s", attempt + 1, e)
                if attempt + 1 < self.attempts:
                    self._sleep(self.backoff)
        raise DiscoveryError(f"fetching models.dev/api.json: {last_error}")

    def models_for_provider(self, provider_id: str) -> List[str]:
        with self._lock:
            provider = self._providers.get(provider_id)
            if provider is None:
                return []
            return sorted(_model_ids(provider))

    def active_models(self) -> List[str]:
        with self._lock:
            providers = list(self._providers.values())
        models: List[str] = []
        for provider in providers:
            if _is_active(provider):
                models.extend(_model_ids(provider))
        return sorted(models)


def _validate_catalogue(data: Any) -> None:
    if not isinstance(data, dict) or not data:
        raise DiscoveryError("validation error: decoded JSON is empty")
    for key, provider in data.items():
        if not isinstance(provider, dict) or not provider.get("id"):
            raise DiscoveryError(f"validation error: provider {key!r} missing id")


def _model_ids(provider: Dict[str, Any]) -> List[str]:
    provider_id = provider.get("id", "")
    models = provider.get("models") or {}
    return [f"{provider_id}/{m.get('id', key)}" for key, m in models.items()]


def _is_active(provider: Dict[str, Any]) -> bool:
    env_vars = provider.get("env") or []
    if not env_vars:
        return False
    return all(os.environ.get(var) for var in env_vars)


def expand_models(tokens: Iterable[str], resolver: Optional[ModelResolver]) -> List[str]:
    """Resolve wildcard tokens and drop duplicates, keeping first-seen order.

    A ``resolver`` of None leaves wildcard tokens unresolved (dropped).
    """
    expanded: List[str] = []
    seen = set()
    for token in tokens:
        if token.startswith(PROVIDER_PREFIX):
            found = resolver.models_for_provider(token[len(PROVIDER_PREFIX):]) if resolver else []
        elif token == DISCOVER_ACTIVE:
            found = resolver.active_models() if resolver else []
        else:
            found = [token]
        for model in found:
            if model not in seen:
                seen.add(model)
                expanded.append(model)
    return expanded


def dedupe(items: Iterable[str]) -> List[str]:
    seen = set()
    result = []
    for item in items:
        if item not in seen:
            seen.add(item)
            result.append(item)
    return result
