"""Base provider interface."""
from abc import ABC, abstractmethod
from typing import Any, List, Optional

from ..cancellation import CancellationToken
from ..filters import ResourceFilters
from ..types import InventoryResult, ResourceStatus


class CloudProvider(ABC):
    """Query surface every cloud provider exposes."""

    def __init__(self, max_workers: int = 5):
        """
        Initialize provider.

        Args:
            max_workers: Maximum collectors running concurrently
        """
        self.max_workers = max_workers

    @property
    @abstractmethod
    def name(self) -> str:
        """Return the provider name."""
        pass

    @property
    @abstractmethod
    def description(self) -> str:
        pass

    @property
    @abstractmethod
    def is_authenticated(self) -> bool:
        pass

    @classmethod
    @abstractmethod
    def validate_config(cls, config: Any) -> None:
        """
        Check a provider configuration without touching the network.

        Raises:
            ValidationError: If the configuration is invalid
        """
        pass

    @abstractmethod
    def authenticate(self, token: CancellationToken, config: Any) -> None:
        """
        Resolve and validate credentials, then initialize collectors.

        Raises:
            AuthenticationError: If authentication fails
        """
        pass

    @abstractmethod
    def get_resources(self, token: CancellationToken, filters: Optional[ResourceFilters] = None) -> InventoryResult:
        """
        Collect every resource kind concurrently.

        Raises:
            NotAuthenticatedError: If the provider is not authenticated
            OperationCancelledError: If the token is cancelled
        """
        pass

    @abstractmethod
    def get_resources_by_type(
        self,
        token: CancellationToken,
        kind: str,
        filters: Optional[ResourceFilters] = None
    ) -> InventoryResult:
        """
        Collect a single resource kind.

        Raises:
            UnsupportedResourceKindError: If no collector handles the kind
        """
        pass

    @abstractmethod
    def get_resource_status(self, token: CancellationToken, resource_id: str) -> ResourceStatus:
        """
        Look up one resource's status.

        Raises:
            ResourceNotFoundError: If no collector finds the resource
        """
        pass

    @abstractmethod
    def list_supported_kinds(self) -> List[str]:
        pass

    @abstractmethod
    def list_supported_regions(self) -> List[str]:
        pass
