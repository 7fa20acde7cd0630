"""Matching child objects against the controller that owns them."""

from __future__ import annotations

from typing import Any, Optional

from nativestor.api_types import GroupVersion, ObjectMeta, OwnerReference


class OwnerError(Exception):
    """An owner relationship could not be worked out."""


class Scheme:
    """Registry mapping object types to their API group, version and kind."""

    def __init__(self) -> None:
        self._kinds: dict[type, list[tuple[GroupVersion, str]]] = {}

    def add_known_types(self, group_version: GroupVersion, *args: Any) -> None:
        """Register each type (or the type of each object) under *group_version*.

        The kind is the type's name.
        """
        for item in args:
            typ = item if isinstance(item, type) else type(item)
            entry = (group_version, typ.__name__)
            kinds = self._kinds.setdefault(typ, [])
            if entry not in kinds:
                kinds.append(entry)

    def object_kinds(self, obj: Any) -> list[tuple[GroupVersion, str]]:
        """The (group version, kind) pairs registered for the object's type."""
        typ = obj if isinstance(obj, type) else type(obj)
        kinds = self._kinds.get(typ)
        if not kinds:
            raise OwnerError(f"no kind is registered for the type {typ.__name__}")
        return list(kinds)


def parse_group_version(api_version: str) -> GroupVersion:
    """Split an API version string such as ``group/version``."""
    if not api_version or api_version == "/":
        return GroupVersion(group="", version="")
    parts = api_version.split("/")
    if len(parts) == 1:
        return GroupVersion(group="", version=api_version)
    if len(parts) == 2:
        return GroupVersion(group=parts[0], version=parts[1])
    raise OwnerError(f"unexpected GroupVersion string: {api_version}")


def get_controller_of(meta: Optional[ObjectMeta]) -> Optional[OwnerReference]:
    """The owner reference marked as controller, if any."""
    if meta is None:
        return None
    for ref in meta.owner_references:
        if ref.controller:
            return ref
    return None


def _metadata(obj: Any) -> ObjectMeta:
    meta = getattr(obj, "metadata", None)
    if not isinstance(meta, ObjectMeta):
        raise OwnerError(f"could not access object meta of {type(obj).__name__}")
    return meta


class OwnerMatcher:
    """Tells whether objects are controlled by a given owner."""

    def __init__(self, owner: Any, scheme: Scheme) -> None:
        self.owner = owner
        self.scheme = scheme
        self.owner_meta = getattr(owner, "metadata", None) or ObjectMeta()
        try:
            group_version, kind = scheme.object_kinds(owner)[0]
        except OwnerError as err:
            raise OwnerError(
                f"failed to set ownerType: could not get object kinds {owner!r}: {err}"
            ) from err
        self.owner_group = group_version.group
        self.owner_kind = kind

    def match(self, obj: Any) -> bool:
        """Whether the controller of *obj* is this owner.

        Kind and group must agree; the UID must agree too when the owner has one.
        """
        meta = _metadata(obj)
        ref = get_controller_of(meta)
        if ref is None:
            return False
        try:
            group_version = parse_group_version(ref.api_version)
        except OwnerError as err:
            raise OwnerError(f"could not parse api version {ref.api_version!r}: {err}") from err
        owner_uid = self.owner_meta.uid
        return (
            (not owner_uid or ref.uid == owner_uid)
            and ref.kind == self.owner_kind
            and group_version.group == self.owner_group
        )


def get_controller_object_owner_reference(obj: Any, scheme: Scheme) -> OwnerReference:
    """The owner reference that child objects of *obj* should carry."""
    meta = _metadata(obj)
    kinds = scheme.object_kinds(obj)
    if len(kinds) > 1:
        raise OwnerError(
            f"multiple group-version-kinds associated with type {type(obj).__name__}"
        )
    group_version, kind = kinds[0]
    return OwnerReference(
        api_version=str(group_version),
        kind=kind,
        name=meta.name,
        uid=meta.uid,
        controller=True,
        block_owner_deletion=True,
    )