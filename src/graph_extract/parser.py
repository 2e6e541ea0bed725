"""Tolerant parser for the tag-delimited relationship lists returned by the model.

The model is asked to answer with::

    <nodes>
      <node><from_node>A</from_node><relationship>r</relationship><to_node>B</to_node></node>
      ...
    </nodes>

Models rarely follow this exactly, so parsing happens in three stages that
each tolerate missing pieces:

1. ``extract_nodes_span`` finds the first outer ``<nodes>`` span.
2. ``iter_node_blocks`` walks every ``<node>`` block inside it.
3. ``extract_field`` pulls one field out of a block.

A broken block only loses that block; the rest of the answer is kept.
"""

from __future__ import annotations
import re
from typing import Iterator, List, Optional

from .schemas import DEFAULT_RELATION, TripleCandidate


_NODES_RE = re.compile(r"<nodes>(.*?)</nodes>", re.DOTALL)
_NODE_BLOCK_RE = re.compile(r"<node>(.*?)</node>", re.DOTALL)

_FIELD_PATTERNS = {
    tag: re.compile(rf"<{tag}>(.*?)</{tag}>", re.DOTALL)
    for tag in ("from_node", "relationship", "to_node")
}


def extract_nodes_span(text: str) -> Optional[str]:
    """Return the trimmed content of the first <nodes> span, or None."""
    if not text:
        return None
    match = _NODES_RE.search(text)
    if match is None:
        return None
    return match.group(1).strip()


def iter_node_blocks(span: str) -> Iterator[str]:
    """Yield the inner text of every <node> block, in document order."""
    for match in _NODE_BLOCK_RE.finditer(span or ""):
        yield match.group(1)


def extract_field(block: str, tag: str) -> Optional[str]:
    pattern = _FIELD_PATTERNS.get(tag)
    if pattern is None:
        pattern = re.compile(rf"<{re.escape(tag)}>(.*?)</{re.escape(tag)}>", re.DOTALL)
    match = pattern.search(block)
    if match is None:
        return None
    return match.group(1).strip()


def parse_block(block: str) -> TripleCandidate:
    source = extract_field(block, "from_node") or None
    relation = extract_field(block, "relationship")
    target = extract_field(block, "to_node") or None
    return TripleCandidate(
        source=source,
        relation=relation if relation is not None else DEFAULT_RELATION,
        target=target,
    )


def parse_response(output: str) -> List[TripleCandidate]:
    """Parse raw model output into triple candidates (not yet validated)."""
    span = extract_nodes_span(output)
    if span is None:
        return []
    return [parse_block(block) for block in iter_node_blocks(span)]
