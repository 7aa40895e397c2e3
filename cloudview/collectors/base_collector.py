"""Base collector class for AWS resource kinds."""
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Iterator, List, Optional, TypeVar
import time
import logging

from ..cancellation import CancellationToken
from ..config import AWSConfig
from ..errors import OperationCancelledError, ResourceNotFoundError
from ..filters import ResourceFilters, matches
from ..regions import resolve_regions
from ..type_defs import BotoClient, BotoSession, Paginator
from ..types import (
    CollectionResult, CollectionWarning, RegionResult, Resource, ResourceStatus,
    kinds_for_term,
)
from ..utils import classify_error, is_not_found, translate_aws_error

logger = logging.getLogger(__name__)

T = TypeVar('T')

# Generator producing resources for one kind within one region
Listing = Callable[[CancellationToken, BotoClient, str, ResourceFilters], Iterator[Resource]]


class BaseCollector(ABC):
    """
    Base class for per-kind resource collectors.

    Subclasses declare one listing generator per canonical kind. The base
    class owns region resolution, filtering, per-region error handling and
    cancellation checks, so every collector behaves the same way.
    """

    # boto3 service name used for regional clients
    client_service: str = ''

    # Provider-wide services are listed once through the home region
    is_global: bool = False

    def __init__(self, session: BotoSession, config: AWSConfig):
        """
        Initialize collector.

        Args:
            session: Authenticated boto3 session (read-only)
            config: AWS provider configuration
        """
        self.session = session
        self.config = config

    @property
    @abstractmethod
    def service_name(self) -> str:
        """Return the name of the AWS service being collected."""
        pass

    @property
    @abstractmethod
    def category(self) -> str:
        """Return the collector category (compute, storage, ...)."""
        pass

    @abstractmethod
    def listings(self) -> Dict[str, Listing]:
        """
        Map each supported canonical kind to its listing generator.

        Returns:
            Ordered mapping of kind -> generator method
        """
        pass

    @abstractmethod
    def get_status(self, token: CancellationToken, resource_id: str) -> ResourceStatus:
        """
        Look up the current status of one resource.

        Raises:
            ResourceNotFoundError: If this collector does not know the resource
        """
        pass

    @property
    def supported_kinds(self) -> List[str]:
        return list(self.listings().keys())

    def matches_kind(self, term: str) -> bool:
        """Return True when a kind or group term selects any of this collector's kinds."""
        return bool(kinds_for_term(term) & set(self.supported_kinds))

    def create_client(self, region: str) -> BotoClient:
        """Create a region-scoped client; never shared across calls."""
        return self.session.client(self.client_service, region_name=region)

    def regions_for(self, filters: ResourceFilters) -> List[str]:
        regions = resolve_regions(filters.regions, self.config)
        return regions[:1] if self.is_global else regions

    def collect(self, token: CancellationToken, filters: Optional[ResourceFilters] = None) -> CollectionResult:
        """
        Collect every matching resource of this collector's kinds.

        Regions are processed in order; a failing region is logged, recorded
        as a warning and skipped.

        Args:
            token: Cancellation signal
            filters: Filters to apply (None matches everything)

        Returns:
            CollectionResult with resources and warnings

        Raises:
            OperationCancelledError: If the token is cancelled
        """
        filters = filters or ResourceFilters()
        start_time = time.time()
        result = CollectionResult(collector=self.service_name)

        kinds = [kind for kind in self.supported_kinds if filters.wants_kind(kind)]
        if not kinds:
            logger.debug(f"Skipping {self.service_name}: no requested kinds")
            return result

        regions = self.regions_for(filters)
        logger.info(f"Collecting {self.service_name} across {len(regions)} regions")

        for region in regions:
            token.raise_if_cancelled()
            region_result = self._collect_region_with_error_handling(token, region, kinds, filters)
            result.resources.extend(region_result.resources)
            result.warnings.extend(region_result.warnings)

            if region_result.resources:
                logger.info(
                    f"Found {len(region_result.resources)} {self.service_name} resources in {region}",
                    extra={
                        'region': region,
                        'service': self.service_name,
                        'resource_count': len(region_result.resources),
                        'duration': region_result.duration
                    }
                )
            else:
                logger.debug(f"No {self.service_name} resources found in {region}")

        result.duration = time.time() - start_time
        logger.info(
            f"Completed collecting {self.service_name}: found {len(result.resources)} total resources",
            extra={'service': self.service_name, 'total_resources': len(result.resources)}
        )
        return result

    def _collect_region_with_error_handling(
        self,
        token: CancellationToken,
        region: str,
        kinds: List[str],
        filters: ResourceFilters
    ) -> RegionResult:
        """
        Collect one region, converting list failures into warnings.

        A failing listing contributes nothing; other kinds in the same
        region are still collected.
        """
        start_time = time.time()
        result = RegionResult(region=region)
        listings = self.listings()

        try:
            client = self.create_client(region)
        except Exception as e:
            result.warnings.append(self._warning(region, e, 'client'))
            result.duration = time.time() - start_time
            return result

        for kind in kinds:
            token.raise_if_cancelled()
            found: List[Resource] = []
            try:
                for resource in listings[kind](token, client, region, filters):
                    token.raise_if_cancelled()
                    if matches(resource, filters):
                        found.append(resource)
            except OperationCancelledError:
                raise
            except Exception as e:
                result.warnings.append(self._warning(region, e, kind))
                continue
            result.resources.extend(found)

        result.duration = time.time() - start_time
        return result

    def _warning(self, region: str, error: Exception, what: str) -> CollectionWarning:
        translated = translate_aws_error(error, what)
        category = classify_error(translated)
        message = str(translated) if translated is not error else f'{what}: {error}'
        logger.warning(
            f"Failed to collect {self.service_name} {what} in {region}: {error}",
            extra={'region': region, 'service': self.service_name, 'category': category}
        )
        return CollectionWarning(
            collector=self.service_name,
            region=region,
            message=message,
            category=category,
        )

    def best_effort(self, description: str, func: Callable[..., T], *args: Any, **kwargs: Any) -> Optional[T]:
        """
        Run an enrichment call, returning None instead of raising.

        Cancellation is never swallowed.
        """
        try:
            return func(*args, **kwargs)
        except OperationCancelledError:
            raise
        except Exception as e:
            logger.debug(f"Skipping {description}: {e}", extra={'service': self.service_name})
            return None

    def paginate(self, token: CancellationToken, client: BotoClient, operation: str, **kwargs: Any) -> Iterator[Dict[str, Any]]:
        """Yield pages of a paginated call, checking for cancellation between pages."""
        paginator: Paginator = client.get_paginator(operation)
        for page in paginator.paginate(**kwargs):
            token.raise_if_cancelled()
            yield page

    def find_in_regions(
        self,
        token: CancellationToken,
        resource_id: str,
        lookup: Callable[[BotoClient], Optional[ResourceStatus]]
    ) -> ResourceStatus:
        """
        Try a status lookup in each configured region until one finds the resource.

        Raises:
            ResourceNotFoundError: If no region knows the resource
        """
        for region in self.regions_for(ResourceFilters()):
            token.raise_if_cancelled()
            try:
                status = lookup(self.create_client(region))
            except OperationCancelledError:
                raise
            except Exception as e:
                if not is_not_found(e):
                    logger.debug(f"{self.service_name} status lookup for {resource_id} failed in {region}: {e}")
                continue
            if status is not None:
                return status
        raise ResourceNotFoundError(resource_id, 'aws')
