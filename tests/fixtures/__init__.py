"""Shared test doubles and builders for the cert-quiz test suite."""

from .openai import FakeOpenAIClient  # noqa: F401
from .quiz import (  # noqa: F401
    make_session,
    payload_dict,
    question_dict,
    write_bank,
)
from .weasyprint import CSSFake, GeneratedPDF, HTMLFake  # noqa: F401

__all__ = [
    "CSSFake",
    "FakeOpenAIClient",
    "GeneratedPDF",
    "HTMLFake",
    "make_session",
    "payload_dict",
    "question_dict",
    "write_bank",
]
