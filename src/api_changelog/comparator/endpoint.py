"""Endpoint comparator: structural diff of one matched endpoint pair.

Emits raw (unclassified) changes. Severity is assigned afterwards by the
severity classifier, which reads the change type, category and the
old/new values recorded here.
"""

from typing import Any

import structlog

from api_changelog.model.base import (
    Change,
    ChangeCategory,
    ChangeType,
    Endpoint,
    Parameter,
    RequestBody,
    Response,
)

log = structlog.get_logger()


def _dump(value: Any) -> Any:
    if value is None:
        return None
    return value.model_dump(mode="json", by_alias=True)


class EndpointComparator:
    """Compare two versions of the same endpoint."""

    def compare(self, old: Endpoint | None, new: Endpoint | None) -> list[Change]:
        if old is None or new is None:
            return []

        base = new.location
        identity = new.key
        changes: list[Change] = []

        changes.extend(self._compare_deprecation(old, new, base, identity))
        changes.extend(self._compare_description(old, new, base, identity))
        changes.extend(self._compare_parameters(old.parameters, new.parameters, base, identity))
        changes.extend(self._compare_request_body(old.request_body, new.request_body, base, identity))
        changes.extend(self._compare_responses(old.responses, new.responses, base, identity))

        log.debug("comparator.endpoint", endpoint=identity, changes=len(changes))
        return changes

    def _compare_deprecation(self, old: Endpoint, new: Endpoint, base: str, identity: str | None) -> list[Change]:
        if old.deprecated == new.deprecated:
            return []
        if new.deprecated:
            return [
                Change(
                    type=ChangeType.DEPRECATED,
                    category=ChangeCategory.ENDPOINT,
                    path=base,
                    endpoint=identity,
                    description=f"Endpoint {new.display_name} deprecated",
                    old_value=False,
                    new_value=True,
                )
            ]
        return [
            Change(
                type=ChangeType.MODIFIED,
                category=ChangeCategory.ENDPOINT,
                path=f"{base}.deprecated",
                endpoint=identity,
                description=f"Endpoint {new.display_name} is no longer deprecated",
                old_value=True,
                new_value=False,
            )
        ]

    def _compare_description(self, old: Endpoint, new: Endpoint, base: str, identity: str | None) -> list[Change]:
        if old.description == new.description:
            return []
        return [
            Change(
                type=ChangeType.MODIFIED,
                category=ChangeCategory.ENDPOINT,
                path=f"{base}.description",
                endpoint=identity,
                description=f"Description of {new.display_name} changed",
                old_value=old.description,
                new_value=new.description,
            )
        ]

    def _compare_parameters(
        self,
        old_params: list[Parameter],
        new_params: list[Parameter],
        base: str,
        identity: str | None,
    ) -> list[Change]:
        old_by_key = _index_parameters(old_params)
        new_by_key = _index_parameters(new_params)

        removed: list[Change] = []
        added: list[Change] = []
        modified: list[Change] = []

        for key, param in old_by_key.items():
            if key not in new_by_key:
                kind = "required" if param.required else "optional"
                removed.append(
                    Change(
                        type=ChangeType.REMOVED,
                        category=ChangeCategory.PARAMETER,
                        path=f"{base}.parameters.{param.name}",
                        endpoint=identity,
                        description=f"Removed {kind} {param.location.value} parameter '{param.name}'",
                        old_value=_dump(param),
                    )
                )

        for key, param in new_by_key.items():
            if key not in old_by_key:
                kind = "required" if param.required else "optional"
                added.append(
                    Change(
                        type=ChangeType.ADDED,
                        category=ChangeCategory.PARAMETER,
                        path=f"{base}.parameters.{param.name}",
                        endpoint=identity,
                        description=f"Added {kind} {param.location.value} parameter '{param.name}'",
                        new_value=_dump(param),
                    )
                )

        for key, old_param in old_by_key.items():
            new_param = new_by_key.get(key)
            if new_param is None:
                continue
            param_path = f"{base}.parameters.{old_param.name}"
            if old_param.required != new_param.required:
                verb = "now required" if new_param.required else "now optional"
                modified.append(
                    Change(
                        type=ChangeType.REQUIRED_CHANGED,
                        category=ChangeCategory.PARAMETER,
                        path=f"{param_path}.required",
                        endpoint=identity,
                        description=f"Parameter '{old_param.name}' is {verb}",
                        old_value=old_param.required,
                        new_value=new_param.required,
                    )
                )
            if old_param.type != new_param.type:
                modified.append(
                    Change(
                        type=ChangeType.TYPE_CHANGED,
                        category=ChangeCategory.PARAMETER,
                        path=f"{param_path}.type",
                        endpoint=identity,
                        description=(
                            f"Parameter '{old_param.name}' type changed from "
                            f"{old_param.type} to {new_param.type}"
                        ),
                        old_value=old_param.type,
                        new_value=new_param.type,
                    )
                )

        return removed + added + modified

    def _compare_request_body(
        self,
        old_body: RequestBody | None,
        new_body: RequestBody | None,
        base: str,
        identity: str | None,
    ) -> list[Change]:
        body_path = f"{base}.requestBody"

        if old_body is None and new_body is None:
            return []
        if old_body is None:
            kind = "required" if new_body.required else "optional"
            return [
                Change(
                    type=ChangeType.ADDED,
                    category=ChangeCategory.REQUEST_BODY,
                    path=body_path,
                    endpoint=identity,
                    description=f"Added {kind} request body",
                    new_value=_dump(new_body),
                )
            ]
        if new_body is None:
            kind = "required" if old_body.required else "optional"
            return [
                Change(
                    type=ChangeType.REMOVED,
                    category=ChangeCategory.REQUEST_BODY,
                    path=body_path,
                    endpoint=identity,
                    description=f"Removed {kind} request body",
                    old_value=_dump(old_body),
                )
            ]

        changes: list[Change] = []
        if old_body.required != new_body.required:
            verb = "now required" if new_body.required else "now optional"
            changes.append(
                Change(
                    type=ChangeType.REQUIRED_CHANGED,
                    category=ChangeCategory.REQUEST_BODY,
                    path=f"{body_path}.required",
                    endpoint=identity,
                    description=f"Request body is {verb}",
                    old_value=old_body.required,
                    new_value=new_body.required,
                )
            )
        if old_body.schema_ != new_body.schema_:
            changes.append(
                Change(
                    type=ChangeType.TYPE_CHANGED,
                    category=ChangeCategory.REQUEST_BODY,
                    path=f"{body_path}.schema",
                    endpoint=identity,
                    description="Request body schema changed",
                    old_value=_dump(old_body.schema_),
                    new_value=_dump(new_body.schema_),
                )
            )
        if old_body.content_type != new_body.content_type:
            changes.append(
                Change(
                    type=ChangeType.MODIFIED,
                    category=ChangeCategory.REQUEST_BODY,
                    path=f"{body_path}.contentType",
                    endpoint=identity,
                    description=(
                        f"Request body content type changed from "
                        f"{old_body.content_type} to {new_body.content_type}"
                    ),
                    old_value=old_body.content_type,
                    new_value=new_body.content_type,
                )
            )
        return changes

    def _compare_responses(
        self,
        old_responses: dict[str, Response],
        new_responses: dict[str, Response],
        base: str,
        identity: str | None,
    ) -> list[Change]:
        removed: list[Change] = []
        added: list[Change] = []
        modified: list[Change] = []

        for code, response in old_responses.items():
            if code not in new_responses:
                removed.append(
                    Change(
                        type=ChangeType.REMOVED,
                        category=ChangeCategory.RESPONSE,
                        path=f"{base}.responses.{code}",
                        endpoint=identity,
                        description=f"Removed response {code}",
                        old_value=_dump(response),
                    )
                )

        for code, response in new_responses.items():
            if code not in old_responses:
                added.append(
                    Change(
                        type=ChangeType.ADDED,
                        category=ChangeCategory.RESPONSE,
                        path=f"{base}.responses.{code}",
                        endpoint=identity,
                        description=f"Added response {code}",
                        new_value=_dump(response),
                    )
                )

        for code, old_resp in old_responses.items():
            new_resp = new_responses.get(code)
            if new_resp is None:
                continue
            if old_resp.schema_ != new_resp.schema_:
                modified.append(
                    Change(
                        type=ChangeType.TYPE_CHANGED,
                        category=ChangeCategory.RESPONSE,
                        path=f"{base}.responses.{code}.schema",
                        endpoint=identity,
                        description=f"Response {code} schema changed",
                        old_value=_dump(old_resp.schema_),
                        new_value=_dump(new_resp.schema_),
                    )
                )
            if old_resp.content_type != new_resp.content_type:
                modified.append(
                    Change(
                        type=ChangeType.MODIFIED,
                        category=ChangeCategory.RESPONSE,
                        path=f"{base}.responses.{code}.contentType",
                        endpoint=identity,
                        description=(
                            f"Response {code} content type changed from "
                            f"{old_resp.content_type} to {new_resp.content_type}"
                        ),
                        old_value=old_resp.content_type,
                        new_value=new_resp.content_type,
                    )
                )

        return removed + added + modified


def _index_parameters(params: list[Parameter]) -> dict[tuple[str, str], Parameter]:
    # first occurrence wins, same as endpoint identities
    index: dict[tuple[str, str], Parameter] = {}
    for param in params:
        index.setdefault(param.key, param)
    return index
