"""Article schemas and newest-first ordering validation.

This module implements:
- Pydantic schemas for scraped articles and validation reports
- SequenceValidator, which walks adjacent article pairs and reports every
  pair whose relative ages show the older article ranked above the newer one

All schemas are frozen and use tuples for sequences so a report cannot be
changed after it is produced. Field names serialize as camelCase.
"""

from datetime import UTC, datetime
from typing import Any, Sequence

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator
from pydantic.alias_generators import to_camel

from config.settings import GlobalConfig, get_config
from src.logger import get_logger
from src.timeparse import normalize_age

log = get_logger(__name__)


class FrozenModel(BaseModel):
    """Immutable base model with camelCase serialization aliases."""

    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )


class ArticleSchema(FrozenModel):
    """Validated schema for one scraped listing item.

    Attributes:
        rank: Display rank assigned by the source (not necessarily contiguous).
        title: Article title (non-empty).
        url: Absolute link target, empty when unresolved.
        author: Submitting user, "Unknown" if absent.
        raw_time: Relative age text exactly as displayed, e.g. "3 hours ago".
        timestamp_hint: Absolute time carried by the age marker's attribute.
        score: Points, 0 if absent.
    """

    rank: int = Field(..., ge=1, description="Source display rank")
    title: str = Field(..., min_length=1, description="Article title")
    url: str = Field(default="", description="Article link")
    author: str = Field(default="Unknown", description="Submitting user")
    raw_time: str = Field(default="", description="Relative age text")
    timestamp_hint: str | None = Field(default=None, description="Absolute time attribute")
    score: int = Field(default=0, ge=0, description="Points")

    @field_validator("title", mode="before")
    @classmethod
    def clean_title(cls, value: Any) -> str:
        """Strip surrounding whitespace from the title text."""
        if not isinstance(value, str):
            raise ValueError(f"Title must be a string, got {type(value).__name__}")
        return value.strip()


class IssueSide(FrozenModel):
    """Projection of one record in a violating pair."""

    rank: int
    time: str
    title_snippet: str


class ValidationIssue(FrozenModel):
    """One adjacent pair that breaks newest-first ordering.

    Attributes:
        position: 1-based index of the earlier record of the pair.
        current: The earlier (higher-ranked) record.
        next: The following record, which is newer than ``current``.
    """

    position: int = Field(..., ge=1)
    current: IssueSide
    next: IssueSide


class ValidationResult(FrozenModel):
    """Outcome of validating one article sequence."""

    total_articles: int = Field(..., ge=0)
    valid_transitions: int = Field(..., ge=0)
    issues: tuple[ValidationIssue, ...] = ()

    @computed_field(alias="isValid")
    @property
    def is_valid(self) -> bool:
        return len(self.issues) == 0


class SequenceValidator:
    """Checks that an article sequence is ordered newest-first.

    For each adjacent pair the relative ages are resolved against one
    reference instant shared by the whole pass. A pair where either age is
    empty is skipped and counted neither as valid nor as an issue.

    Example:
        validator = SequenceValidator()
        result = validator.validate(articles)
        if not result.is_valid:
            for issue in result.issues:
                print(issue.position, issue.current.time, issue.next.time)
    """

    def __init__(self, config: GlobalConfig | None = None) -> None:
        self.config = config or get_config()

    def _snippet(self, title: str) -> str:
        return title[: self.config.title_snippet_length] + "..."

    def _side(self, article: ArticleSchema) -> IssueSide:
        return IssueSide(
            rank=article.rank,
            time=article.raw_time,
            title_snippet=self._snippet(article.title),
        )

    def validate(
        self,
        articles: Sequence[ArticleSchema],
        reference: datetime | None = None,
    ) -> ValidationResult:
        """Validate newest-first ordering of ``articles``.

        Args:
            articles: Articles in final rank order.
            reference: Instant ages are measured from. Defaults to now (UTC),
                captured once for the whole pass.

        Returns:
            ValidationResult with the valid-transition count and every issue.
        """
        now = reference or datetime.now(UTC)
        issues: list[ValidationIssue] = []
        valid_transitions = 0
        skipped = 0

        log.info("Validating article ordering", total_articles=len(articles))

        for index in range(len(articles) - 1):
            current = articles[index]
            following = articles[index + 1]

            current_time = normalize_age(current.raw_time, now)
            next_time = normalize_age(following.raw_time, now)

            if current_time is None or next_time is None:
                skipped += 1
                continue

            if current_time < next_time:
                issues.append(
                    ValidationIssue(
                        position=index + 1,
                        current=self._side(current),
                        next=self._side(following),
                    )
                )
            else:
                valid_transitions += 1

        result = ValidationResult(
            total_articles=len(articles),
            valid_transitions=valid_transitions,
            issues=tuple(issues),
        )

        if result.is_valid:
            log.info(
                "Article ordering valid",
                valid_transitions=valid_transitions,
                skipped_pairs=skipped,
            )
        else:
            log.warning(
                "Article ordering violations detected",
                issues=len(issues),
                valid_transitions=valid_transitions,
                skipped_pairs=skipped,
                first_position=issues[0].position,
            )

        return result
