"""
bqcgen/docgen/numbering.py

Section numbers for the note. The first six sections are always present;
Performance Security only takes a number when it is part of the document.
"""

from __future__ import annotations

from dataclasses import dataclass
from itertools import count
from typing import Optional


@dataclass(frozen=True)
class SectionNumbers:
    preamble: int
    scope: int
    bqc: int
    other_terms: int
    evaluation: int
    emd: int
    performance_security: Optional[int]
    approval: int


def assign_section_numbers(has_performance_security: bool) -> SectionNumbers:
    counter = count(1)
    preamble = next(counter)
    scope = next(counter)
    bqc = next(counter)
    other_terms = next(counter)
    evaluation = next(counter)
    emd = next(counter)
    performance_security = next(counter) if has_performance_security else None
    return SectionNumbers(
        preamble=preamble,
        scope=scope,
        bqc=bqc,
        other_terms=other_terms,
        evaluation=evaluation,
        emd=emd,
        performance_security=performance_security,
        approval=next(counter),
    )
