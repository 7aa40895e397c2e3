"""Name-keyed provider registry."""
from contextlib import contextmanager
from typing import Dict, Iterator, List
import threading
import logging

from .base import CloudProvider
from ..errors import ProviderNotFoundError, ProviderRegistrationError

logger = logging.getLogger(__name__)


class ReadWriteLock:
    """Many concurrent readers or one exclusive writer."""

    def __init__(self):
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False

    @contextmanager
    def read(self) -> Iterator[None]:
        with self._cond:
            while self._writer:
                self._cond.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if self._readers == 0:
                    self._cond.notify_all()

    @contextmanager
    def write(self) -> Iterator[None]:
        with self._cond:
            while self._writer or self._readers:
                self._cond.wait()
            self._writer = True
        try:
            yield
        finally:
            with self._cond:
                self._writer = False
                self._cond.notify_all()


class ProviderRegistry:
    """
    Maps provider names to constructed providers.

    Construct one per process and pass it to whatever needs it. Lookups
    may run concurrently with registration; readers never observe a
    half-registered entry.
    """

    def __init__(self):
        self._providers: Dict[str, CloudProvider] = {}
        self._lock = ReadWriteLock()

    def register(self, name: str, provider: CloudProvider) -> None:
        """
        Register a provider under a name.

        Raises:
            ProviderRegistrationError: If the name is empty, the provider is
                None or the name is already taken
        """
        if not name:
            raise ProviderRegistrationError('provider name cannot be empty')
        if provider is None:
            raise ProviderRegistrationError(f"provider '{name}' cannot be None")
        with self._lock.write():
            if name in self._providers:
                raise ProviderRegistrationError(f"provider '{name}' is already registered")
            self._providers[name] = provider
        logger.debug(f"Registered provider {name}")

    def unregister(self, name: str) -> None:
        """
        Raises:
            ProviderNotFoundError: If nothing is registered under the name
        """
        with self._lock.write():
            if name not in self._providers:
                raise ProviderNotFoundError(name)
            del self._providers[name]
        logger.debug(f"Unregistered provider {name}")

    def get(self, name: str) -> CloudProvider:
        """
        Raises:
            ProviderNotFoundError: If nothing is registered under the name
        """
        with self._lock.read():
            provider = self._providers.get(name)
        if provider is None:
            raise ProviderNotFoundError(name)
        return provider

    def list(self) -> List[str]:
        """Return registered names, sorted."""
        with self._lock.read():
            return sorted(self._providers)

    def exists(self, name: str) -> bool:
        with self._lock.read():
            return name in self._providers

    def count(self) -> int:
        with self._lock.read():
            return len(self._providers)

    def get_all(self) -> Dict[str, CloudProvider]:
        """Return a snapshot copy of the registry."""
        with self._lock.read():
            return dict(self._providers)

    def provider_info(self) -> List[Dict[str, object]]:
        """Describe each registered provider for display."""
        info = []
        for name, provider in sorted(self.get_all().items()):
            info.append({
                'name': name,
                'description': provider.description,
                'authenticated': provider.is_authenticated,
                'supported_kinds': provider.list_supported_kinds(),
            })
        return info
