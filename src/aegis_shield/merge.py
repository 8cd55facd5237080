"""Combine match sets from several detectors without double-tagging a span."""

from __future__ import annotations
from dataclasses import replace
from typing import Iterable

from .types import PIIMatch


def spans_overlap(a: PIIMatch, b: PIIMatch) -> bool:
    """Start-within, end-within or containment, in either direction."""
    return a.start_index < b.end_index and b.start_index < a.end_index


def merge(primary: Iterable[PIIMatch], secondary: Iterable[PIIMatch]) -> list[PIIMatch]:
    """Merge structural (primary) and semantic (secondary) matches.

    Every primary match is kept unchanged.  A secondary match is accepted
    only if it overlaps nothing accepted so far, so regex wins on conflict
    and the semantic layer adds purely incremental coverage.  The result
    is sorted by start offset.
    """
    accepted: list[PIIMatch] = list(primary)
    for m in secondary:
        if not any(spans_overlap(m, a) for a in accepted):
            accepted.append(m)
    return sorted(accepted, key=lambda m: m.start_index)


def _cover(cluster: list[PIIMatch]) -> PIIMatch:
    """One match spanning a whole cluster, typed after its longest member."""
    lead = max(cluster, key=lambda m: m.end_index - m.start_index)
    start = cluster[0].start_index
    end = max(m.end_index for m in cluster)
    if lead.span == (start, end):
        return lead
    value, reach = cluster[0].value, cluster[0].end_index
    for m in cluster[1:]:
        if m.end_index > reach:
            value += m.value[reach - m.start_index:]
            reach = m.end_index
    return replace(lead, value=value, start_index=start, end_index=end)


def resolve_overlaps(matches: Iterable[PIIMatch]) -> list[PIIMatch]:
    """Coalesce overlapping matches from a single set.

    Overlapping spans are joined into one match covering all of them, so
    no character of any detected match survives redaction.  The joined
    match takes the type of its longest member (earliest on ties).
    """
    ranked = sorted(matches, key=lambda m: (m.start_index, -(m.end_index - m.start_index)))
    clusters: list[list[PIIMatch]] = []
    reach = 0
    for m in ranked:
        if clusters and m.start_index < reach:
            clusters[-1].append(m)
            reach = max(reach, m.end_index)
        else:
            clusters.append([m])
            reach = m.end_index
    return [_cover(c) for c in clusters]
