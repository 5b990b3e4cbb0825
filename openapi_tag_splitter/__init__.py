"""
OpenAPI Tag Splitter - Split an OpenAPI document into one self-contained document per tag.

This package provides both CLI and SDK interfaces. Each output carries the
operations of one tag and only the schema components they transitively use.
"""

__version__ = "1.0.0"
__author__ = "OpenAPI Tag Splitter Contributors"
__email__ = "support@example.com"

from .loader import (
    OpenAPITagSplitterError,
    SpecLoadError,
    load_spec,
)
from .resolver import (
    ReferenceClosureResolver,
    TagAssignment,
)
from .core import (
    ComponentDistributor,
    DocumentPartitioner,
    OpenAPITagSplitter,
    SplitResult,
    TagRegistry,
)

__all__ = [
    'OpenAPITagSplitter',
    'OpenAPITagSplitterError',
    'SpecLoadError',
    'TagRegistry',
    'DocumentPartitioner',
    'ReferenceClosureResolver',
    'TagAssignment',
    'ComponentDistributor',
    'SplitResult',
    'load_spec',
    '__version__',
]
