"""Response envelope models.

Single resources are wrapped as ``{resource, links}``; pages as
``{resources: [{resource, links}], links}``. Errors use the RFC 7807
problem-details shape. All wire models serialize with camelCase keys.
"""

from typing import Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from app.core.links import Link

T = TypeVar("T")


class CamelModel(BaseModel):
    """Base for wire models: snake_case in Python, camelCase on the wire."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class LinkDTO(CamelModel):
    """Serialized hyperlink."""

    href: str
    rel: str
    method: str

    @classmethod
    def from_link(cls, link: Link) -> "LinkDTO":
        return cls(href=link.href, rel=link.rel, method=link.method)


class ResourceEnvelope(CamelModel, Generic[T]):
    """One resource plus its links.

    Usage:
        @router.get("/{category_id}")
        async def get_category(...) -> ResourceEnvelope[CategoryDTO]:
            return ResourceEnvelope(
                resource=CategoryDTO.model_validate(category),
                links=to_link_dtos(assembler.links_for("category", ...)),
            )
    """

    resource: T
    links: list[LinkDTO] = Field(default_factory=list)


class PageEnvelope(CamelModel, Generic[T]):
    """A page of resource envelopes plus page-level links."""

    resources: list[ResourceEnvelope[T]]
    links: list[LinkDTO] = Field(default_factory=list)


class ProblemDetails(BaseModel):
    """RFC 7807 problem-details body.

    Attributes:
        type: URI identifying the problem type.
        title: Short summary of the problem type.
        status: HTTP status code.
        detail: Explanation specific to this occurrence.
        errors: Field-level messages keyed by wire field name.
    """

    type: str
    title: str
    status: int
    detail: str | None = None
    errors: dict[str, list[str]] | None = None


def to_link_dtos(links: list[Link]) -> list[LinkDTO]:
    """Convert assembler links into wire models."""
    return [LinkDTO.from_link(link) for link in links]
