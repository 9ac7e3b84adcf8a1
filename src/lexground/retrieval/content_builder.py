"""Turn retrieval results into citations a content generator can embed."""

from __future__ import annotations

from pydantic import BaseModel, Field

from lexground.governance import GROUNDING_RULES
from lexground.memory.authority_store import AuthorityStore
from lexground.models.content import Citation
from lexground.models.retrieval import AuthorityResult

_PASSAGES_PER_AUTHORITY = 3


class GroundedContent(BaseModel):
    """Citations for one topic, or the fallback marker when none exist."""

    topic: str
    content_type: str
    citations: list[Citation] = Field(default_factory=list)
    fallback_used: bool = False
    fallback_message: str | None = None


def build_grounded_content(
    store: AuthorityStore,
    topic: str,
    authorities: list[AuthorityResult],
    content_type: str,
) -> GroundedContent:
    """Build citations from verified authorities.

    Each authority contributes up to three passages. The verbatim quote is
    only filled in where the source domain permits quoting.

    Args:
        store: Store holding the authorities and their passages.
        topic: Topic the content is about.
        authorities: Results of a successful retrieval.
        content_type: Kind of content being generated (for example ``NOTES``).

    Returns:
        Grounded content; ``fallback_used`` is set when no citation could be built.
    """

    citations: list[Citation] = []
    for auth in authorities:
        for passage in store.get_passages(auth.authority_id, limit=_PASSAGES_PER_AUTHORITY):
            citations.append(
                Citation(
                    authority_id=auth.authority_id,
                    url=auth.url,
                    locator=passage.locator,
                    passage_id=passage.id,
                    verbatim_quote=passage.passage_text if auth.verbatim_allowed else None,
                )
            )

    if not citations:
        return GroundedContent(
            topic=topic,
            content_type=content_type,
            fallback_used=True,
            fallback_message=GROUNDING_RULES.fallback_message,
        )
    return GroundedContent(topic=topic, content_type=content_type, citations=citations)
