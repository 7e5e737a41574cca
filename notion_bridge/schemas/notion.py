"""Typed Notion objects and object-kind narrowing.

Every Notion object carries an ``object`` discriminator (``page``,
``database``, ``block``...). Raw responses are decoded through a
discriminated union, then narrowed to the kind the caller asked for.
Fields beyond the ones declared here are preserved untouched.
"""

from __future__ import annotations

import logging
from typing import Annotated, Any, Iterable, Literal, TypeVar, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from notion_bridge.core.errors import UnexpectedObjectKindError

logger = logging.getLogger(__name__)


class NotionModel(BaseModel):
    """Base for Notion objects; unknown fields are kept as extras."""

    model_config = ConfigDict(extra="allow")

    id: str

    def to_api(self) -> dict[str, Any]:
        """Return the object as the JSON dict Notion sent."""
        return self.model_dump(mode="json", exclude_unset=True)


class Page(NotionModel):
    object: Literal["page"]
    created_time: str | None = None
    last_edited_time: str | None = None
    archived: bool = False
    in_trash: bool = False
    parent: dict[str, Any] | None = None
    properties: dict[str, Any] = Field(default_factory=dict)
    url: str | None = None


class Database(NotionModel):
    object: Literal["database"]
    created_time: str | None = None
    last_edited_time: str | None = None
    archived: bool = False
    title: list[dict[str, Any]] = Field(default_factory=list)
    parent: dict[str, Any] | None = None
    properties: dict[str, Any] = Field(default_factory=dict)
    url: str | None = None


class Block(NotionModel):
    object: Literal["block"]
    type: str | None = None
    has_children: bool = False
    archived: bool = False
    parent: dict[str, Any] | None = None


NotionObject = Annotated[Union[Page, Database, Block], Field(discriminator="object")]

ObjectModel = TypeVar("ObjectModel", Page, Database, Block)

KIND_BY_MODEL: dict[type[NotionModel], str] = {
    Page: "page",
    Database: "database",
    Block: "block",
}

_notion_object_adapter: TypeAdapter[Page | Database | Block] = TypeAdapter(NotionObject)


def _kind_of(raw: Any) -> str | None:
    if isinstance(raw, dict):
        kind = raw.get("object")
        return kind if isinstance(kind, str) else None
    return None


def decode_object(raw: Any) -> Page | Database | Block:
    """Decode a raw Notion response into its tagged model.

    Args:
        raw: Parsed JSON returned by Notion.

    Returns:
        The ``Page``, ``Database`` or ``Block`` matching the discriminator.

    Raises:
        UnexpectedObjectKindError: If the discriminator is missing, names a
            kind not modelled here, or the payload does not fit the model.
    """
    try:
        return _notion_object_adapter.validate_python(raw)
    except ValidationError as exc:
        actual = _kind_of(raw) or "unknown"
        raise UnexpectedObjectKindError(
            code="unexpected_object_kind",
            message=f"Could not decode Notion object of kind '{actual}'",
            details={"actual_kind": actual, "hint": f"{exc.error_count()} validation error(s)"},
        ) from exc


def narrow(raw: Any, expected: type[ObjectModel]) -> ObjectModel:
    """Decode ``raw`` and require it to be of the ``expected`` kind.

    Raises:
        UnexpectedObjectKindError: If Notion returned another kind of object.
    """
    expected_kind = KIND_BY_MODEL[expected]
    actual_kind = _kind_of(raw)
    if actual_kind != expected_kind:
        raise UnexpectedObjectKindError(
            code="unexpected_object_kind",
            message=f"Expected a {expected_kind} but Notion returned '{actual_kind or 'unknown'}'",
            details={"expected_kind": expected_kind, "actual_kind": actual_kind or "unknown"},
        )

    decoded = decode_object(raw)
    if not isinstance(decoded, expected):  # pragma: no cover - guarded by the discriminator
        raise UnexpectedObjectKindError(
            code="unexpected_object_kind",
            message=f"Expected a {expected_kind}",
            details={"expected_kind": expected_kind, "actual_kind": actual_kind},
        )
    return decoded


def filter_results(results: Iterable[Any], expected: type[ObjectModel]) -> list[ObjectModel]:
    """Keep the entries of a list response that are of the ``expected`` kind.

    Entries of other kinds, or that do not decode, are dropped.
    """
    expected_kind = KIND_BY_MODEL[expected]
    kept: list[ObjectModel] = []
    dropped = 0
    for entry in results:
        if _kind_of(entry) != expected_kind:
            dropped += 1
            continue
        try:
            kept.append(expected.model_validate(entry))
        except ValidationError:
            dropped += 1

    if dropped:
        logger.debug(
            "notion.results_filtered",
            extra={"expected_kind": expected_kind, "kept": len(kept), "dropped": dropped},
        )
    return kept
