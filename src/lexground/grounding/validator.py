"""Grounding validator: the hard gate between generated content and learners.

Fails closed. Every non-instruction item must cite a stored, verified
authority with a locator, or be an explicit fallback item.
"""

from __future__ import annotations

from typing import Any

from lexground.errors import GroundingValidationError
from lexground.governance import GROUNDING_RULES, GroundingRules
from lexground.logging import get_logger, log_exception
from lexground.memory.authority_store import AuthorityStore
from lexground.memory.missing_authority_log import MissingAuthorityLog
from lexground.models.authority import SourceTier
from lexground.models.content import (
    AssetContent,
    ContentItem,
    FixResult,
    ValidationErrorCode,
    ValidationIssue,
    ValidationOptions,
    ValidationResult,
    ValidationStats,
    ValidationWarning,
    ValidationWarningCode,
)
from lexground.models.retrieval import MissingAuthorityTag

logger = get_logger(__name__)

_MAX_LOGGED_ERRORS = 10


def is_fallback_item(item: ContentItem, rules: GroundingRules = GROUNDING_RULES) -> bool:
    """True when the item's content is exactly the fallback message."""

    content = (item.content or "").strip()
    return content.casefold() == rules.fallback_message.casefold()


def create_fallback_item(
    original: ContentItem | None = None,
    *,
    skill_name: str | None = None,
    topic: str | None = None,
    rules: GroundingRules = GROUNDING_RULES,
) -> ContentItem:
    """Build an explicit "not found" item to stand in for an ungrounded one."""

    message = rules.fallback_message
    explanation = "This content requires verification from primary sources."
    if skill_name:
        explanation += f" Consult your course materials on {skill_name}."
    return ContentItem(
        type=original.type if original is not None else "FALLBACK",
        content=message,
        prompt=f"{topic}: {message}" if topic else message,
        question=original.question if original is not None else None,
        explanation=explanation,
        citations=[],
        evidence_span_ids=[],
        is_instruction_only=False,
    )


class GroundingValidator:
    """Validate content batches against the authority store."""

    def __init__(
        self,
        store: AuthorityStore,
        missing_log: MissingAuthorityLog,
        rules: GroundingRules = GROUNDING_RULES,
    ) -> None:
        self._store = store
        self._missing_log = missing_log
        self._rules = rules

    def assert_grounded(
        self, content: AssetContent, options: ValidationOptions | None = None
    ) -> ValidationResult:
        """Check that every item in ``content`` is grounded.

        Rules, per item that is neither instruction-only nor a fallback:

        1. At least ``rules.min_citation_count`` citations.
        2. Every citation names an ``authority_id``.
        3. Every citation carries a non-empty locator.
        4. Every ``authority_id`` is a verified record in the store.

        All cited ids are checked with one batched store query.
        """

        options = options or ValidationOptions()
        errors: list[ValidationIssue] = []
        warnings: list[ValidationWarning] = []
        stats = ValidationStats(total_items=len(content.items))
        cited_authorities: set[str] = set()

        all_ids = {c.authority_id for item in content.items for c in item.citations if c.authority_id}
        tiers = self._store.verified_tiers(all_ids) if all_ids else {}

        for i, item in enumerate(content.items):
            if item.is_instruction_only:
                continue
            if is_fallback_item(item, self._rules):
                stats.fallback_items += 1
                continue

            if len(item.citations) < self._rules.min_citation_count:
                errors.append(
                    ValidationIssue(
                        code=ValidationErrorCode.MISSING_CITATION,
                        message=(
                            f"Item {i + 1} ({item.type}) has no citations"
                            if not item.citations
                            else f"Item {i + 1} ({item.type}) has {len(item.citations)} citations, "
                            f"{self._rules.min_citation_count} required"
                        ),
                        item_index=i,
                        item_type=item.type,
                    )
                )
                if not item.citations:
                    stats.uncited_items += 1
                    continue

            stats.cited_items += 1
            for citation in item.citations:
                if not citation.authority_id:
                    errors.append(
                        ValidationIssue(
                            code=ValidationErrorCode.MISSING_CITATION,
                            message=f"Item {i + 1} citation missing authority_id",
                            item_index=i,
                            item_type=item.type,
                        )
                    )
                    continue

                if citation.locator is None or citation.locator.is_empty():
                    errors.append(
                        ValidationIssue(
                            code=ValidationErrorCode.MISSING_LOCATOR,
                            message=f"Item {i + 1} citation missing locator",
                            item_index=i,
                            item_type=item.type,
                        )
                    )

                tier = tiers.get(citation.authority_id)
                if tier is None:
                    errors.append(
                        ValidationIssue(
                            code=ValidationErrorCode.INVALID_AUTHORITY,
                            message=(
                                f"Item {i + 1} references non-existent authority: "
                                f"{citation.authority_id}"
                            ),
                            item_index=i,
                            item_type=item.type,
                        )
                    )
                elif tier == SourceTier.C:
                    warnings.append(
                        ValidationWarning(
                            code=ValidationWarningCode.TIER_C_SOURCE,
                            message=(
                                f"Item {i + 1} cites restricted tier C authority "
                                f"{citation.authority_id}"
                            ),
                            item_index=i,
                        )
                    )

                cited_authorities.add(citation.authority_id)

            if not item.evidence_span_ids:
                warnings.append(
                    ValidationWarning(
                        code=ValidationWarningCode.MISSING_EVIDENCE_SPAN,
                        message=f"Item {i + 1} has no evidence_span_ids",
                        item_index=i,
                    )
                )

        if len(content.items) > 3 and stats.cited_items < len(content.items) * 0.5:
            warnings.append(
                ValidationWarning(
                    code=ValidationWarningCode.LOW_CITATION_COUNT,
                    message=(
                        "Less than 50% of items have citations "
                        f"({stats.cited_items}/{stats.total_items})"
                    ),
                )
            )

        stats.unique_authorities = len(cited_authorities)
        result = ValidationResult(
            is_valid=not errors,
            errors=errors,
            warnings=warnings,
            stats=stats,
        )
        if not result.is_valid:
            logger.info(
                "Grounding validation failed for %s: %d errors",
                content.asset_type,
                len(errors),
            )
            if options.session_id or options.asset_id:
                self._log_failure(content, result, options)
        return result

    def validate_and_fix(
        self, content: AssetContent, options: ValidationOptions | None = None
    ) -> FixResult:
        """Validate ``content``, replacing ungrounded items in soft mode.

        Raises:
            GroundingValidationError: In strict mode, when validation fails.
        """

        options = options or ValidationOptions()
        validation = self.assert_grounded(content, options)
        if validation.is_valid:
            return FixResult(content=content, validation=validation, was_fixed=False)

        if options.strict:
            raise GroundingValidationError(validation)

        fixed_items = list(content.items)
        error_indices = sorted({e.item_index for e in validation.errors})
        for idx in error_indices:
            fixed_items[idx] = create_fallback_item(
                content.items[idx],
                skill_name=options.skill_name,
                topic=options.topic,
                rules=self._rules,
            )
        fixed = content.model_copy(update={"items": fixed_items})
        logger.info(
            "Replaced %d ungrounded items with fallback in %s",
            len(error_indices),
            content.asset_type,
        )
        return FixResult(
            content=fixed,
            validation=self.assert_grounded(fixed, options),
            was_fixed=True,
        )

    def _log_failure(
        self, content: AssetContent, result: ValidationResult, options: ValidationOptions
    ) -> None:
        snapshot: dict[str, Any] = {
            "errors": [e.model_dump(mode="json") for e in result.errors[:_MAX_LOGGED_ERRORS]],
            "asset_type": content.asset_type,
            "item_count": len(content.items),
        }
        try:
            self._missing_log.append(
                claim_text=f"Grounding validation failed for {content.asset_type}",
                error_tag=MissingAuthorityTag.VALIDATION_FAILED,
                search_query=(
                    f"Validation for session {options.session_id}"
                    if options.session_id
                    else f"Validation for asset {options.asset_id}"
                ),
                requested_skill_ids=[options.skill_id] if options.skill_id else [],
                search_results=snapshot,
                session_id=options.session_id,
                asset_id=options.asset_id,
            )
        except Exception:
            log_exception(
                logger,
                "Failed to log validation failure",
                session_id=options.session_id,
                asset_id=options.asset_id,
            )
