"""
Push mapped Coda rows into a Framer managed collection and publish the project.

The client argument is anything exposing the ``FramerClient`` methods; the
ordering of remote calls is fixed: collection, fields read, fields written,
optional prune, items written.
"""

from __future__ import annotations
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence

from .framer_client import FramerClient
from .mapping import merge_fields_with_existing_fields
from .models import Column, NormalizedRow
from .transform import build_fields_and_items


logger = logging.getLogger(__name__)

PUBLISH_HINT = "Run PublishProject to deploy."
NO_CHANGES_MESSAGE = "No pending changes. Run PushRowToCollection or PushTableToCollection first."
NOT_DEPLOYED_MESSAGE = "Published {count} change(s), but Framer returned no deployment to deploy."


class CollectionNotFoundError(LookupError):
    def __init__(self, message: str = "Managed collection not found."):
        super().__init__(message)


@dataclass
class CollectionRef:
    id: str
    name: str
    created: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "name": self.name}


@dataclass
class PushResult:
    collection_id: str
    collection_name: str
    items_added: int
    items_skipped: int
    fields_set: int
    warnings: List[str] = field(default_factory=list)
    message: str = ""
    items_removed: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "collectionId": self.collection_id,
            "collectionName": self.collection_name,
            "itemsAdded": self.items_added,
            "itemsSkipped": self.items_skipped,
            "itemsRemoved": self.items_removed,
            "fieldsSet": self.fields_set,
            "warnings": list(self.warnings),
            "published": False,
            "deploymentId": "",
            "message": self.message,
        }


@dataclass
class PublishResult:
    published: bool
    change_count: int
    message: str
    deployment_id: str = ""
    hostnames: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "published": self.published,
            "changeCount": self.change_count,
            "deploymentId": self.deployment_id,
            "hostnames": list(self.hostnames),
            "message": self.message,
        }


def _collection_ref(raw: Mapping[str, Any], created: bool = False) -> CollectionRef:
    return CollectionRef(id=str(raw.get("id", "")), name=str(raw.get("name", "")), created=created)


def list_collections(client: FramerClient) -> List[CollectionRef]:
    return [_collection_ref(c) for c in client.list_managed_collections() if isinstance(c, dict)]


def get_or_create_collection(client: FramerClient, name: str) -> CollectionRef:
    for existing in list_collections(client):
        if existing.name == name:
            logger.debug(f"using existing collection {existing.id} ({name})")
            return existing
    created = _collection_ref(client.create_managed_collection(name), created=True)
    logger.info(f"created collection {created.id} ({name})")
    return created


def find_collection(client: FramerClient, collection_id: str) -> CollectionRef:
    for existing in list_collections(client):
        if existing.id == collection_id:
            return existing
    raise CollectionNotFoundError()


def list_item_ids(client: FramerClient, collection_id: str) -> List[str]:
    find_collection(client, collection_id)
    return client.get_item_ids(collection_id)


def _push_message(collection: CollectionRef, count: int, single_row: bool) -> str:
    body = "row" if single_row else f"{count} row(s)"
    body = f'{body} pushed to "{collection.name}".'
    if collection.created:
        return f"Collection created and {body} {PUBLISH_HINT}"
    return f"{body[0].upper()}{body[1:]} {PUBLISH_HINT}"


def push_rows(
    client: FramerClient,
    collection_name: str,
    slug_field_id: str,
    columns: Sequence[Column],
    rows: Sequence[NormalizedRow],
    reference_map: Optional[Mapping[str, str]] = None,
    use_12_hour_time: bool = False,
    prune_missing: bool = False,
    single_row: bool = False,
) -> PushResult:
    """Map rows, sync the collection's fields, then write the items.

    With ``prune_missing`` remote items whose ids are not in this payload are
    removed before the new items are added.
    """
    collection = get_or_create_collection(client, collection_name)
    result = build_fields_and_items(
        columns,
        rows,
        slug_field_id,
        reference_map=reference_map,
        use_12_hour_time=use_12_hour_time,
    )
    warnings = list(result.warnings)

    existing_fields = client.get_fields(collection.id)
    merged = merge_fields_with_existing_fields(result.fields, existing_fields, warnings)
    client.set_fields(collection.id, [f.to_dict() for f in merged])
    logger.info(f"set {len(merged)} field(s) on collection {collection.id}")

    removed = 0
    if prune_missing:
        keep = {item.id for item in result.items}
        stale = [item_id for item_id in client.get_item_ids(collection.id) if item_id not in keep]
        if stale:
            client.remove_items(collection.id, stale)
            removed = len(stale)
            logger.info(f"removed {removed} stale item(s) from collection {collection.id}")

    if result.items:
        client.add_items(collection.id, [item.to_dict() for item in result.items])
        logger.info(f"added {len(result.items)} item(s) to collection {collection.id}")

    return PushResult(
        collection_id=collection.id,
        collection_name=collection.name,
        items_added=len(result.items),
        items_skipped=result.skipped_count,
        items_removed=removed,
        fields_set=len(merged),
        warnings=warnings,
        message=_push_message(collection, len(result.items), single_row),
    )


def _change_count(changes: Mapping[str, Any]) -> int:
    total = 0
    for key in ("added", "removed", "modified"):
        paths = changes.get(key)
        if isinstance(paths, list):
            total += len(paths)
    return total


def publish_project(client: FramerClient) -> PublishResult:
    changes = client.get_changed_paths() or {}
    count = _change_count(changes)
    if count == 0:
        return PublishResult(published=False, change_count=0, message=NO_CHANGES_MESSAGE)

    published = client.publish() or {}
    deployment = published.get("deployment") or {}
    deployment_id = str(deployment.get("id") or "")
    hostnames = [
        str(h.get("hostname")) if isinstance(h, dict) else str(h)
        for h in (published.get("hostnames") or [])
    ]
    if not deployment_id:
        logger.warning(f"publish returned no deployment id; {count} change(s) published but not deployed")
        return PublishResult(
            published=True,
            change_count=count,
            hostnames=hostnames,
            message=NOT_DEPLOYED_MESSAGE.format(count=count),
        )

    client.deploy(deployment_id)
    logger.info(f"published deployment {deployment_id} with {count} change(s)")
    return PublishResult(
        published=True,
        change_count=count,
        deployment_id=deployment_id,
        hostnames=hostnames,
        message=f"Published and deployed {count} change(s).",
    )
