"""AWS provider: owns the collectors and fans queries out across them."""
from concurrent.futures import ThreadPoolExecutor, wait, FIRST_COMPLETED
from enum import Enum
from typing import Any, List, Optional, Sequence, Type
import threading
import time
import logging

from .base import CloudProvider
from ..auth import AWSAuthenticator
from ..cancellation import CancellationToken
from ..collectors import BaseCollector, DEFAULT_COLLECTORS
from ..config import AWSConfig
from ..errors import (
    AuthenticationError,
    CloudViewError,
    NotAuthenticatedError,
    OperationCancelledError,
    ResourceNotFoundError,
    UnsupportedResourceKindError,
    ValidationError,
)
from ..filters import ResourceFilters
from ..regions import SUPPORTED_REGIONS
from ..types import CollectionWarning, InventoryResult, ResourceStatus
from ..utils import classify_error

logger = logging.getLogger(__name__)

# Seconds between cancellation checks while waiting on collectors
CANCEL_POLL_INTERVAL = 0.1


class AuthState(Enum):
    UNAUTHENTICATED = 'unauthenticated'
    AUTHENTICATING = 'authenticating'
    AUTHENTICATED = 'authenticated'
    AUTH_FAILED = 'auth_failed'


class AWSProvider(CloudProvider):
    """
    Aggregates the EC2, S3, RDS, IAM and VPC collectors behind one query surface.

    Authentication happens once per instance. A failed authentication is
    terminal: every later call raises NotAuthenticatedError without
    touching the network.
    """

    def __init__(
        self,
        max_workers: int = 5,
        authenticator_class: Type[AWSAuthenticator] = AWSAuthenticator,
        collector_classes: Optional[Sequence[Type[BaseCollector]]] = None
    ):
        """
        Initialize provider.

        Args:
            max_workers: Maximum collectors running concurrently
            authenticator_class: Builds the authenticated session from config
            collector_classes: Collectors to own (defaults to all AWS collectors)
        """
        super().__init__(max_workers)
        self.authenticator_class = authenticator_class
        self.collector_classes = list(collector_classes or DEFAULT_COLLECTORS)
        self._state = AuthState.UNAUTHENTICATED
        self._state_lock = threading.Lock()
        self._session: Any = None
        self._config: Optional[AWSConfig] = None
        self._collectors: List[BaseCollector] = []

    @property
    def name(self) -> str:
        return 'aws'

    @property
    def description(self) -> str:
        return 'Amazon Web Services'

    @property
    def state(self) -> AuthState:
        return self._state

    @property
    def is_authenticated(self) -> bool:
        return self._state is AuthState.AUTHENTICATED

    @property
    def collectors(self) -> List[BaseCollector]:
        return list(self._collectors)

    @classmethod
    def validate_config(cls, config: Any) -> None:
        if not isinstance(config, AWSConfig):
            raise ValidationError('config', type(config).__name__, 'expected an AWSConfig')
        config.validate()

    def authenticate(self, token: CancellationToken, config: AWSConfig) -> None:
        """
        Authenticate once and build every collector with its own session.

        boto3 sessions are not thread-safe, so collectors running in
        parallel never share one.

        Args:
            token: Cancellation signal
            config: AWS configuration

        Raises:
            AuthenticationError: If credentials cannot be resolved or validated
            NotAuthenticatedError: If a previous attempt already failed
        """
        with self._state_lock:
            if self._state is AuthState.AUTHENTICATED:
                logger.debug("AWS provider already authenticated")
                return
            if self._state is not AuthState.UNAUTHENTICATED:
                raise NotAuthenticatedError(self.name, self._state.value)
            self._state = AuthState.AUTHENTICATING

        try:
            token.raise_if_cancelled()
            self.validate_config(config)
            authenticator = self.authenticator_class(config)
            session = authenticator.authenticate()
            collectors = [
                collector_class(authenticator.new_session(session), config)
                for collector_class in self.collector_classes
            ]
        except Exception as e:
            with self._state_lock:
                self._state = AuthState.AUTH_FAILED
            logger.error(f"AWS authentication failed: {e}", extra={'provider': self.name})
            if isinstance(e, CloudViewError):
                raise
            raise AuthenticationError(self.name, 'unexpected error during authentication', e) from e

        with self._state_lock:
            self._session = session
            self._config = config
            self._collectors = collectors
            self._state = AuthState.AUTHENTICATED

        logger.info(
            f"AWS provider authenticated with {len(collectors)} collectors",
            extra={'provider': self.name, 'collectors': [c.service_name for c in collectors]}
        )

    def _require_authenticated(self) -> None:
        if self._state is not AuthState.AUTHENTICATED:
            raise NotAuthenticatedError(self.name, self._state.value)

    def get_resources(self, token: CancellationToken, filters: Optional[ResourceFilters] = None) -> InventoryResult:
        """
        Run every collector concurrently and merge their output.

        A failing collector is logged and reported as a warning; it never
        fails the call.

        Args:
            token: Cancellation signal shared with every collector task
            filters: Filters applied by each collector

        Returns:
            InventoryResult with resources in completion order and warnings

        Raises:
            NotAuthenticatedError: If the provider is not authenticated
            OperationCancelledError: If the token is cancelled before all collectors finish
        """
        self._require_authenticated()
        token.raise_if_cancelled()
        filters = filters or ResourceFilters()
        collectors = self._collectors
        result = InventoryResult()
        start_time = time.time()

        logger.info(f"Collecting AWS resources with {len(collectors)} collectors")

        executor = ThreadPoolExecutor(
            max_workers=max(1, min(self.max_workers, len(collectors))),
            thread_name_prefix='cloudview-collector'
        )
        completed = False
        try:
            future_to_collector = {
                executor.submit(collector.collect, token, filters): collector
                for collector in collectors
            }
            pending = set(future_to_collector)

            while pending:
                done, pending = wait(pending, timeout=CANCEL_POLL_INTERVAL, return_when=FIRST_COMPLETED)
                if token.cancelled:
                    raise OperationCancelledError(token.reason or 'operation cancelled')

                for future in done:
                    collector = future_to_collector[future]
                    try:
                        collection = future.result()
                    except OperationCancelledError:
                        raise
                    except Exception as e:
                        category = classify_error(e)
                        logger.error(
                            f"Collector {collector.service_name} failed: {e}",
                            extra={'service': collector.service_name, 'category': category}
                        )
                        result.warnings.append(CollectionWarning(
                            collector=collector.service_name,
                            message=str(e),
                            category=category,
                        ))
                        continue

                    result.resources.extend(collection.resources)
                    result.warnings.extend(collection.warnings)
            completed = True
        finally:
            # On cancellation or interrupt, abandon in-flight collectors instead of joining them
            executor.shutdown(wait=completed, cancel_futures=not completed)

        logger.info(
            f"Collected {len(result.resources)} AWS resources with {len(result.warnings)} warnings",
            extra={
                'provider': self.name,
                'total_resources': len(result.resources),
                'warnings': len(result.warnings),
                'duration': time.time() - start_time
            }
        )
        return result

    def collector_for(self, kind: str) -> BaseCollector:
        """
        Return the collector that handles a kind or group term.

        Raises:
            UnsupportedResourceKindError: If no collector handles it
        """
        self._require_authenticated()
        for collector in self._collectors:
            if collector.matches_kind(kind):
                return collector
        raise UnsupportedResourceKindError(kind, self.name)

    def get_resources_by_type(
        self,
        token: CancellationToken,
        kind: str,
        filters: Optional[ResourceFilters] = None
    ) -> InventoryResult:
        self._require_authenticated()
        collector = self.collector_for(kind)
        narrowed = (filters or ResourceFilters()).with_kind(kind)
        collection = collector.collect(token, narrowed)
        return InventoryResult(resources=collection.resources, warnings=collection.warnings)

    def get_resource_status(self, token: CancellationToken, resource_id: str) -> ResourceStatus:
        """
        Ask each collector in order until one finds the resource.

        Raises:
            ResourceNotFoundError: If no collector knows the resource
        """
        self._require_authenticated()
        for collector in self._collectors:
            token.raise_if_cancelled()
            try:
                status = collector.get_status(token, resource_id)
            except ResourceNotFoundError:
                continue
            except OperationCancelledError:
                raise
            except Exception as e:
                logger.warning(
                    f"{collector.service_name} status lookup for {resource_id} failed: {e}",
                    extra={'service': collector.service_name}
                )
                continue
            logger.debug(f"Found {resource_id} via {collector.service_name}")
            return status
        raise ResourceNotFoundError(resource_id, self.name)

    def list_supported_kinds(self) -> List[str]:
        collectors = self._collectors or [
            collector_class(None, self._config or AWSConfig()) for collector_class in self.collector_classes
        ]
        kinds: List[str] = []
        for collector in collectors:
            kinds.extend(k for k in collector.supported_kinds if k not in kinds)
        return kinds

    def list_supported_regions(self) -> List[str]:
        return list(SUPPORTED_REGIONS)
