"""API comparator: match endpoints of two specs by identity and diff them."""

from datetime import datetime, timezone

import structlog

from api_changelog.core.errors import AnalyticsError
from api_changelog.model.base import (
    ApiSpec,
    Change,
    ChangeCategory,
    ChangeType,
    Changelog,
    Endpoint,
)
from .endpoint import EndpointComparator

log = structlog.get_logger()


def index_endpoints(spec: ApiSpec | None) -> dict[str, Endpoint]:
    """Identity-keyed endpoint lookup in spec order.

    Duplicate identities keep the first occurrence. An endpoint without any
    identity (no path, no operation id) is malformed input.
    """
    index: dict[str, Endpoint] = {}
    if spec is None:
        return index
    for position, endpoint in enumerate(spec.endpoints):
        key = endpoint.key
        if key is None:
            raise AnalyticsError.invalid_input(
                "endpoint has no identity (path or operation id)",
                api=spec.name,
                version=spec.version,
                position=position,
            )
        if key in index:
            log.warning("comparator.duplicate_endpoint", api=spec.name, version=spec.version, endpoint=key)
            continue
        index[key] = endpoint
    return index


class ApiComparator:
    """Compare two API specs endpoint by endpoint.

    Emits removals (old order), then additions (new order), then
    modifications (old order). Renames are seen as a removal plus an addition.
    """

    def __init__(self, endpoint_comparator: EndpointComparator | None = None):
        self.endpoint_comparator = endpoint_comparator or EndpointComparator()

    def compare(
        self,
        old_spec: ApiSpec | None,
        new_spec: ApiSpec | None,
        generated_at: datetime | None = None,
    ) -> Changelog:
        old_index = index_endpoints(old_spec)
        new_index = index_endpoints(new_spec)

        changes: list[Change] = []

        for key, endpoint in old_index.items():
            if key not in new_index:
                changes.append(
                    Change(
                        type=ChangeType.REMOVED,
                        category=ChangeCategory.ENDPOINT,
                        path=endpoint.location,
                        endpoint=key,
                        description=f"Endpoint {endpoint.display_name} removed",
                        old_value=endpoint.model_dump(mode="json", by_alias=True),
                    )
                )

        for key, endpoint in new_index.items():
            if key not in old_index:
                changes.append(
                    Change(
                        type=ChangeType.ADDED,
                        category=ChangeCategory.ENDPOINT,
                        path=endpoint.location,
                        endpoint=key,
                        description=f"Endpoint {endpoint.display_name} added",
                        new_value=endpoint.model_dump(mode="json", by_alias=True),
                    )
                )

        for key, old_endpoint in old_index.items():
            new_endpoint = new_index.get(key)
            if new_endpoint is not None:
                changes.extend(self.endpoint_comparator.compare(old_endpoint, new_endpoint))

        dated = True
        if generated_at is None:
            generated_at = new_spec.parsed_at if new_spec else None
        if generated_at is None:
            generated_at = datetime.now(timezone.utc)
            dated = False

        changelog = Changelog(
            api_name=_api_name(old_spec, new_spec),
            from_version=old_spec.version if old_spec else None,
            to_version=new_spec.version if new_spec else None,
            generated_at=generated_at,
            changes=changes,
            dated=dated,
        )
        log.debug(
            "comparator.compare",
            api=changelog.api_name,
            from_version=changelog.from_version,
            to_version=changelog.to_version,
            changes=len(changes),
        )
        return changelog


def _api_name(old_spec: ApiSpec | None, new_spec: ApiSpec | None) -> str:
    if new_spec is not None and new_spec.name:
        return new_spec.name
    if old_spec is not None:
        return old_spec.name
    return ""
