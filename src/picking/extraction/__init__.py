"""Document extractor factory.

Provides get_extractor() / set_extractor() to swap implementations:
- FakeExtractor for development and testing (JSON documents)
- GeminiExtractor for production (structured output from Google Gemini)
"""

import os

from picking.extraction.port import DocumentExtractor

_current_extractor: DocumentExtractor | None = None


def _default_adapter() -> str:
    return "gemini" if os.environ.get("GEMINI_API_KEY") else "fake"


def get_extractor() -> DocumentExtractor:
    """Return the configured extractor (singleton).

    Selected through the EXTRACTOR_ADAPTER environment variable; when unset,
    Gemini is used if GEMINI_API_KEY is present, the fake extractor otherwise.
    """
    global _current_extractor
    if _current_extractor is None:
        adapter = os.environ.get("EXTRACTOR_ADAPTER") or _default_adapter()
        if adapter == "fake":
            from picking.extraction.fake_adapter import FakeExtractor

            _current_extractor = FakeExtractor()
        elif adapter == "gemini":
            from picking.extraction.gemini_adapter import GeminiExtractor

            _current_extractor = GeminiExtractor(
                api_key=os.environ.get("GEMINI_API_KEY", ""),
                model=os.environ.get("GEMINI_MODEL", "gemini-2.5-flash"),
            )
        else:
            raise ValueError(f"Unknown extractor adapter: {adapter}")
    return _current_extractor


def set_extractor(extractor: DocumentExtractor) -> None:
    """Override the active extractor (useful for tests)."""
    global _current_extractor
    _current_extractor = extractor


def reset_extractor() -> None:
    """Reset the extractor singleton (useful for testing)."""
    global _current_extractor
    _current_extractor = None
