"""
Segment Builder

Groups triaged pages into contiguous logical documents.

A new segment starts on every label change, and UNKNOWN pages never merge
with anything (not even other UNKNOWN pages).
"""

from typing import List, Optional

from orderflow.models.triage import DocSegment, PageLabel, PageTriage


def _segment_id(page_start: int, label: PageLabel) -> str:
    return f"seg-{page_start}-{label.value}"


def build_segments(triage: List[PageTriage]) -> List[DocSegment]:
    segments: List[DocSegment] = []
    current: Optional[List[PageTriage]] = None

    def close() -> None:
        if current:
            first, last = current[0], current[-1]
            segments.append(DocSegment(
                segment_id=_segment_id(first.page_index, first.label),
                label=first.label,
                page_start=first.page_index,
                page_end=last.page_index,
                pages=[p.page_index for p in current],
                triage=list(current),
            ))

    for page in triage:
        split = (
            current is None
            or page.label != current[0].label
            or page.label == PageLabel.UNKNOWN
            or current[0].label == PageLabel.UNKNOWN
        )
        if split:
            close()
            current = [page]
        else:
            current.append(page)

    close()
    return segments
