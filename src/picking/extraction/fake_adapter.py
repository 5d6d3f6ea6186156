"""Fake extractor — deterministic extraction for testing and development.

Documents are expected to already contain the draft as camelCase JSON, so a
pick list can be ingested without calling an extraction model. Failures,
including the quota sub-case, can be switched on for integration testing.
"""

from pydantic import ValidationError as DraftValidationError

from picking.extraction.port import (
    DocumentExtractor,
    ExtractionError,
    ExtractionQuotaExceeded,
    OrderDraft,
)


class FakeExtractor(DocumentExtractor):
    """Fake extractor that parses JSON documents and succeeds by default."""

    def __init__(self):
        self.should_succeed = True
        self.quota_exceeded = False
        self.failure_reason = "Extraction unavailable"
        self.calls: list[tuple[int, str]] = []

    def configure(
        self,
        should_succeed: bool = True,
        quota_exceeded: bool = False,
        failure_reason: str = "Extraction unavailable",
    ):
        """Configure the fake extractor behavior for testing."""
        self.should_succeed = should_succeed
        self.quota_exceeded = quota_exceeded
        self.failure_reason = failure_reason

    def extract(self, content: bytes, mime_type: str) -> OrderDraft:
        self.calls.append((len(content), mime_type))

        if self.quota_exceeded:
            raise ExtractionQuotaExceeded("Extraction quota exceeded, try again later")
        if not self.should_succeed:
            raise ExtractionError(self.failure_reason)

        try:
            return OrderDraft.model_validate_json(content)
        except DraftValidationError as exc:
            raise ExtractionError(f"Document does not contain a valid order: {exc.error_count()} error(s)") from exc
