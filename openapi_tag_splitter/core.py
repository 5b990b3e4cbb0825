"""
Core logic for OpenAPI Tag Splitter.
This module provides the SDK for splitting an OpenAPI document into one
self-contained document per tag.
"""

import copy
import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional, Set, Tuple, Union

from .loader import OpenAPITagSplitterError, URL_SCHEMES, load_spec
from .resolver import ReferenceClosureResolver, TagAssignment, schema_ref, schema_references

# Configure logger
logger = logging.getLogger(__name__)

DEFAULT_TAG = 'Default'

HTTP_METHODS = ('get', 'post', 'put', 'delete', 'options', 'head', 'patch', 'trace')

PATH_ITEM_SHARED_FIELDS = ('$ref', 'summary', 'description', 'servers', 'parameters')

OUTPUT_SUFFIX = '-APIs.json'


class TagRegistry:
    """
    Ordered set of output partitions.

    Holds every tag declared by the document, in document order, plus the
    default tag that collects untagged operations.
    """

    def __init__(self, declared_tags: Optional[List[Any]], default_tag: str = DEFAULT_TAG):
        self.default_tag = default_tag
        self.descriptors: Dict[str, Dict[str, Any]] = {}
        self.warnings: List[str] = []

        for tag in declared_tags or []:
            if not isinstance(tag, dict) or not isinstance(tag.get('name'), str):
                message = f"Ignoring malformed tag declaration: {tag!r}"
                self.warnings.append(message)
                logger.warning(message)
                continue
            self.descriptors.setdefault(tag['name'], tag)

        if default_tag not in self.descriptors:
            self.descriptors[default_tag] = {'name': default_tag}

    @property
    def names(self) -> List[str]:
        return list(self.descriptors)

    def descriptor(self, name: str) -> Dict[str, Any]:
        return self.descriptors[name]

    def __contains__(self, name: object) -> bool:
        return name in self.descriptors

    def __iter__(self):
        return iter(self.descriptors)

    def __len__(self) -> int:
        return len(self.descriptors)


class Partition:
    """One output document under construction."""

    def __init__(self, tag: str, descriptor: Dict[str, Any]):
        self.tag = tag
        self.descriptor = descriptor
        self.paths: Dict[str, Dict[str, Any]] = {}
        self.schemas: Dict[str, Any] = {}

    def path_item(self, path: str, source: Dict[str, Any]) -> Dict[str, Any]:
        """
        Return this partition's copy of a path item, creating it on first use.

        Only the verb-independent fields are copied; operations are attached
        by the caller.
        """
        item = self.paths.get(path)
        if item is None:
            item = {
                key: copy.deepcopy(value)
                for key, value in source.items()
                if key in PATH_ITEM_SHARED_FIELDS or key.startswith('x-')
            }
            self.paths[path] = item
        return item

    def to_document(self, spec: Dict[str, Any]) -> Dict[str, Any]:
        """
        Assemble the output document.

        Global metadata is taken from the source document; fields absent
        there are omitted. ``components`` only appears when schemas were
        distributed to this partition.
        """
        document: Dict[str, Any] = {}
        for key in ('openapi', 'info', 'externalDocs', 'servers', 'security'):
            if spec.get(key) is not None:
                document[key] = spec[key]
        document['tags'] = [self.descriptor]
        document['paths'] = self.paths
        if self.schemas:
            document['components'] = {'schemas': self.schemas}
        for key, value in spec.items():
            if key.startswith('x-'):
                document[key] = value
        return document


class DocumentPartitioner:
    """
    Assigns operations to partitions and seeds the tag assignment.

    Every operation lands in each partition named by its tags, or in the
    default partition when it declares none. The references the operation
    uses directly are recorded against the partition's tag.
    """

    def __init__(self, registry: TagRegistry, assignment: TagAssignment):
        self.registry = registry
        self.assignment = assignment
        self.partitions: Dict[str, Partition] = {
            name: Partition(name, registry.descriptor(name)) for name in registry
        }
        self.warnings: List[str] = []
        self._unknown_tags: Set[str] = set()

    def partition_paths(self, paths: Optional[Dict[str, Any]]) -> Dict[str, Partition]:
        """
        Walk every path and verb of the document once.

        Args:
            paths: The document's ``paths`` mapping

        Returns:
            Partitions keyed by tag, in registry order
        """
        for path, path_item in (paths or {}).items():
            if not isinstance(path_item, dict):
                logger.debug(f"Skipping path {path}: not a path item")
                continue
            for method in HTTP_METHODS:
                operation = path_item.get(method)
                if isinstance(operation, dict):
                    self.add_operation(path, path_item, method, operation)
        return self.partitions

    def target_tags(self, operation: Dict[str, Any]) -> List[str]:
        """Partitions an operation belongs to."""
        tags = operation.get('tags')
        if not isinstance(tags, list) or not tags:
            return [self.registry.default_tag]

        targets = []
        for tag in tags:
            if tag in self.registry:
                if tag not in targets:
                    targets.append(tag)
            elif tag not in self._unknown_tags:
                self._unknown_tags.add(tag)
                message = f"Operation tag {tag!r} is not declared in the document tags; skipped"
                self.warnings.append(message)
                logger.warning(message)
        return targets

    def add_operation(
        self,
        path: str,
        path_item: Dict[str, Any],
        method: str,
        operation: Dict[str, Any]
    ) -> None:
        for tag in self.target_tags(operation):
            partition = self.partitions[tag]
            item = partition.path_item(path, path_item)
            item[method] = copy.deepcopy(operation)
            self.record_references(path_item, operation, tag)

    def record_references(
        self,
        path_item: Dict[str, Any],
        operation: Dict[str, Any],
        tag: str
    ) -> None:
        """
        Record the references an operation uses directly.

        Args:
            path_item: Source path item the operation belongs to
            operation: Source operation
            tag: Tag of the partition the operation was placed in
        """
        record = self.assignment.add

        for parameter in _as_list(path_item.get('parameters')):
            self._record_parameter(parameter, tag)
        record(path_item.get('$ref'), tag)

        for parameter in _as_list(operation.get('parameters')):
            self._record_parameter(parameter, tag)

        request_body = operation.get('requestBody')
        if isinstance(request_body, dict):
            record(request_body.get('$ref'), tag)
            self._record_content(request_body.get('content'), tag)

        callbacks = operation.get('callbacks')
        if isinstance(callbacks, dict):
            for callback in callbacks.values():
                if isinstance(callback, dict):
                    record(callback.get('$ref'), tag)

        responses = operation.get('responses')
        if isinstance(responses, dict):
            for response in responses.values():
                if isinstance(response, dict):
                    record(response.get('$ref'), tag)
                    self._record_content(response.get('content'), tag)

    def _record_parameter(self, parameter: Any, tag: str) -> None:
        if isinstance(parameter, dict):
            self.assignment.add(parameter.get('$ref'), tag)
            for ref in schema_references(parameter.get('schema')):
                self.assignment.add(ref, tag)

    def _record_content(self, content: Any, tag: str) -> None:
        if not isinstance(content, dict):
            return
        for media_type in content.values():
            if isinstance(media_type, dict):
                for ref in schema_references(media_type.get('schema')):
                    self.assignment.add(ref, tag)


def _as_list(value: Any) -> List[Any]:
    return value if isinstance(value, list) else []


class ComponentDistributor:
    """Copies each schema component into every partition whose closure includes it."""

    def __init__(self, schemas: Optional[Dict[str, Any]], assignment: TagAssignment):
        self.schemas = schemas or {}
        self.assignment = assignment

    def distribute(self, partitions: Dict[str, Partition]) -> None:
        pruned = 0
        for name, definition in self.schemas.items():
            tags = self.assignment.tags_for(schema_ref(name))
            if not tags:
                pruned += 1
                continue
            for tag, partition in partitions.items():
                if tag in tags:
                    partition.schemas[name] = copy.deepcopy(definition)
        if pruned:
            logger.debug(f"Pruned {pruned} schema components not used by any operation")


class SplitResult:
    """Outcome of a split run."""

    def __init__(self):
        self.created: List[Path] = []
        self.failed: List[Tuple[str, Path, str]] = []
        self.warnings: List[str] = []

    @property
    def ok(self) -> bool:
        return not self.failed

    def __repr__(self) -> str:
        return (
            f"SplitResult(created={len(self.created)}, failed={len(self.failed)}, "
            f"warnings={len(self.warnings)})"
        )


def output_filename(tag: str) -> str:
    return tag.replace(' ', '-') + OUTPUT_SUFFIX


class OpenAPITagSplitter:
    """
    Main class for splitting an OpenAPI document by tag.

    Each declared tag, plus a default tag for untagged operations, gets its
    own document holding that tag's operations and only the schema
    components they transitively reference.
    """

    def __init__(
        self,
        input_source: Union[str, Path],
        output_dir: Union[str, Path],
        default_tag: str = DEFAULT_TAG,
        create_output_dir: bool = False
    ):
        """
        Initialize the OpenAPITagSplitter.

        Args:
            input_source: Path or http(s) URL of the OpenAPI document
            output_dir: Directory for output files
            default_tag: Name of the partition collecting untagged operations
            create_output_dir: Create the output directory if it is missing

        Raises:
            OpenAPITagSplitterError: If a local input file doesn't exist or the default tag is empty
        """
        self.input_source = str(input_source)
        self.output_dir = Path(output_dir)
        self.default_tag = default_tag
        self.create_output_dir = create_output_dir
        self.spec: Optional[Dict[str, Any]] = None
        self.warnings: List[str] = []

        if not self.input_source.startswith(URL_SCHEMES) and not Path(self.input_source).exists():
            raise OpenAPITagSplitterError(f"Input file not found: {self.input_source}")

        if not default_tag or not default_tag.strip():
            raise OpenAPITagSplitterError("Default tag name must not be empty")

    def load_spec(self) -> Dict[str, Any]:
        """
        Load the OpenAPI document.

        Returns:
            Loaded document

        Raises:
            SpecLoadError: If loading or validation fails
        """
        self.spec = load_spec(self.input_source)
        return self.spec

    def build_partitions(self) -> Dict[str, Dict[str, Any]]:
        """
        Compute the output document of every partition.

        Returns:
            Output documents keyed by tag, in partition order

        Raises:
            OpenAPITagSplitterError: If no document has been loaded
        """
        if self.spec is None:
            raise OpenAPITagSplitterError("No specification loaded")

        spec = self.spec
        schemas = (spec.get('components') or {}).get('schemas') or {}

        registry = TagRegistry(spec.get('tags'), self.default_tag)
        assignment = TagAssignment()

        partitioner = DocumentPartitioner(registry, assignment)
        partitions = partitioner.partition_paths(spec.get('paths'))

        resolver = ReferenceClosureResolver(schemas, assignment)
        resolver.resolve()

        ComponentDistributor(schemas, assignment).distribute(partitions)

        self.warnings = registry.warnings + partitioner.warnings + resolver.warnings
        for tag, partition in partitions.items():
            logger.debug(
                f"Partition {tag}: {len(partition.paths)} paths, "
                f"{len(partition.schemas)} schemas"
            )

        return {tag: partition.to_document(spec) for tag, partition in partitions.items()}

    def write_spec(self, spec: Dict[str, Any], filename: str) -> Path:
        """
        Write one output document as pretty-printed JSON.

        Args:
            spec: Document to write
            filename: Output filename

        Returns:
            Path to written file

        Raises:
            OSError: If the file cannot be written
            ValueError: If the document cannot be serialized, e.g. it contains a cycle
        """
        filepath = self.output_dir / filename
        content = json.dumps(spec, indent=2, ensure_ascii=False, default=str)

        with open(filepath, 'w', encoding='utf-8') as f:
            f.write(content)
            f.write('\n')

        logger.info(f"Created: {filepath}")
        return filepath

    def write_partitions(self, documents: Dict[str, Dict[str, Any]]) -> SplitResult:
        """
        Write every partition to its own file.

        A failed write is logged and recorded; the remaining partitions are
        still written.
        """
        result = SplitResult()

        if self.create_output_dir:
            os.makedirs(self.output_dir, exist_ok=True)

        for tag, document in documents.items():
            filename = output_filename(tag)
            try:
                result.created.append(self.write_spec(document, filename))
            except (OSError, ValueError, TypeError) as e:
                filepath = self.output_dir / filename
                logger.error(f"Failed to create {filepath}: {e}")
                result.failed.append((tag, filepath, str(e)))

        return result

    def split(self) -> SplitResult:
        """
        Main split method: load, partition, resolve, distribute and write.

        Returns:
            The created and failed files along with collected warnings

        Raises:
            SpecLoadError: If the input document cannot be loaded
        """
        self.load_spec()
        logger.info(f"Splitting {self.input_source} by tags")

        documents = self.build_partitions()
        result = self.write_partitions(documents)
        result.warnings = list(self.warnings)

        logger.info(
            f"Split complete. Created {len(result.created)} files in: {self.output_dir}"
        )
        return result

