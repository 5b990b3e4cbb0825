"""
Reference closure resolution for schema components.

A schema component belongs to every tag whose operations reach it, directly
or through other schemas. This module holds the tag assignment that records
those memberships and the worklist resolver that propagates them across the
schema graph until nothing changes.
"""

import logging
from collections import deque
from typing import Any, Deque, Dict, Iterable, Iterator, List, Optional, Set, Tuple

logger = logging.getLogger(__name__)

SCHEMA_REF_PREFIX = '#/components/schemas/'

COMPOSITION_KEYWORDS = ('allOf', 'anyOf', 'oneOf')


def schema_component_name(ref: Optional[str]) -> Optional[str]:
    """Return the component name for a schema reference, or None for any other ref."""
    if isinstance(ref, str) and ref.startswith(SCHEMA_REF_PREFIX):
        name = ref[len(SCHEMA_REF_PREFIX):]
        return name or None
    return None


def schema_ref(name: str) -> str:
    return SCHEMA_REF_PREFIX + name


def schema_references(schema: Any) -> List[str]:
    """
    Return the references an inline schema points at.

    A reference object yields its own ``$ref``. Any other schema yields the
    references found by walking it, so wrappers such as an object with a
    referencing property, a composition or an array all count.

    Args:
        schema: A schema object or reference object

    Returns:
        Reference strings in declaration order
    """
    if not isinstance(schema, dict):
        return []
    ref = schema.get('$ref')
    if isinstance(ref, str) and ref:
        return [ref]
    return schema_edges(schema)


def schema_edges(schema: Any) -> List[str]:
    """
    Collect the references a schema definition uses.

    Edges come from properties (directly or through an array's items), the
    schema's own ``items`` and ``prefixItems``, composition members, ``not``,
    ``additionalProperties`` and the targets of a discriminator mapping.
    Inline sub-schemas in those positions are walked for their own edges.

    Args:
        schema: A schema definition from ``components.schemas``

    Returns:
        References in declaration order, without duplicates
    """
    edges: List[str] = []
    seen: Set[str] = set()
    _collect_edges(schema, edges, seen, set())
    return edges


def _add_edge(ref: str, edges: List[str], seen: Set[str]) -> None:
    if ref not in seen:
        seen.add(ref)
        edges.append(ref)


def _collect_edges(schema: Any, edges: List[str], seen: Set[str], visited: Set[int]) -> None:
    if not isinstance(schema, dict) or id(schema) in visited:
        return
    visited.add(id(schema))

    children: List[Any] = []

    properties = schema.get('properties')
    if isinstance(properties, dict):
        children.extend(properties.values())

    if 'items' in schema:
        children.append(schema['items'])

    prefix_items = schema.get('prefixItems')
    if isinstance(prefix_items, list):
        children.extend(prefix_items)

    for keyword in COMPOSITION_KEYWORDS:
        members = schema.get(keyword)
        if isinstance(members, list):
            children.extend(members)

    for keyword in ('not', 'additionalProperties'):
        child = schema.get(keyword)
        if isinstance(child, dict):
            children.append(child)

    for child in children:
        if not isinstance(child, dict):
            continue
        ref = child.get('$ref')
        if isinstance(ref, str) and ref:
            _add_edge(ref, edges, seen)
        else:
            _collect_edges(child, edges, seen, visited)

    discriminator = schema.get('discriminator')
    if isinstance(discriminator, dict) and isinstance(discriminator.get('mapping'), dict):
        for target in discriminator['mapping'].values():
            if not isinstance(target, str) or not target:
                continue
            # Bare mapping values name a schema component.
            _add_edge(target if '/' in target else schema_ref(target), edges, seen)


class TagAssignment:
    """
    Grow-only mapping from reference to the set of tags that need it.

    Pairs are only ever added, never removed, which is what bounds the
    resolver's work.
    """

    def __init__(self):
        self._tags: Dict[str, Set[str]] = {}

    def add(self, ref: Optional[str], tag: str) -> bool:
        """
        Record that ``tag`` needs ``ref``.

        Args:
            ref: Reference string; empty or missing refs are ignored
            tag: Partition tag name

        Returns:
            True if the pair was not recorded before
        """
        if not ref:
            return False
        tags = self._tags.setdefault(ref, set())
        if tag in tags:
            return False
        tags.add(tag)
        return True

    def tags_for(self, ref: str) -> Set[str]:
        return set(self._tags.get(ref, ()))

    def has(self, ref: str, tag: str) -> bool:
        return tag in self._tags.get(ref, ())

    def refs(self) -> List[str]:
        return list(self._tags)

    def items(self) -> Iterator[Tuple[str, Set[str]]]:
        for ref, tags in self._tags.items():
            yield ref, set(tags)

    def __contains__(self, ref: object) -> bool:
        return ref in self._tags

    def __len__(self) -> int:
        return sum(len(tags) for tags in self._tags.values())

    def __repr__(self) -> str:
        return f"TagAssignment({self._tags!r})"


class ReferenceClosureResolver:
    """
    Propagates tags along schema references until a fixpoint is reached.

    Every (component, tag) pair that gets recorded becomes one event on a
    worklist. Processing an event pushes the tag to each component the
    schema references, queueing the neighbours that gained it. Each pair is
    queued at most once, so cycles terminate and the total work is bounded
    by components times tags.

    References that name a schema absent from ``components.schemas`` are
    recorded but never followed. They show up in ``warnings``.
    """

    def __init__(self, schemas: Optional[Dict[str, Any]], assignment: TagAssignment):
        self.schemas = schemas or {}
        self.assignment = assignment
        self.warnings: List[str] = []
        self._queue: Deque[Tuple[str, str]] = deque()
        self._dangling: Set[str] = set()
        self._edges: Dict[str, List[str]] = {}

    @property
    def is_drained(self) -> bool:
        return not self._queue

    def resolve(self) -> int:
        """
        Run propagation to completion.

        Returns:
            Number of (component, tag) events processed
        """
        self._seed()
        processed = 0

        while self._queue:
            name, tag = self._queue.popleft()
            processed += 1
            for ref in self._edges_of(name):
                if self.assignment.add(ref, tag):
                    self._enqueue(ref, [tag])

        logger.debug(f"Closure resolved after {processed} events")
        return processed

    def _seed(self) -> None:
        for ref, tags in self.assignment.items():
            self._enqueue(ref, sorted(tags))

    def _enqueue(self, ref: str, tags: Iterable[str]) -> None:
        name = schema_component_name(ref)
        if name is None:
            # Non-schema component kinds are not followed.
            return
        if name not in self.schemas:
            self._report_dangling(ref)
            return
        for tag in tags:
            self._queue.append((name, tag))

    def _edges_of(self, name: str) -> List[str]:
        if name not in self._edges:
            self._edges[name] = schema_edges(self.schemas[name])
        return self._edges[name]

    def _report_dangling(self, ref: str) -> None:
        if ref in self._dangling:
            return
        self._dangling.add(ref)
        message = f"Reference {ref} does not name a schema component; skipped"
        self.warnings.append(message)
        logger.debug(message)

    def closure(self, tag: str) -> Set[str]:
        """Names of schema components that carry ``tag``."""
        return {
            name for name in self.schemas
            if self.assignment.has(schema_ref(name), tag)
        }
