"""
Loading and validation of OpenAPI documents.

Documents can come from a local file or an http(s) URL, serialized as JSON
or YAML. Whatever the source, the result is checked for the shape the
splitter relies on before any partitioning starts.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, Union

import httpx
import yaml

logger = logging.getLogger(__name__)

URL_SCHEMES = ('http://', 'https://')
FETCH_TIMEOUT = 30.0


class OpenAPITagSplitterError(Exception):
    """Base exception for OpenAPI Tag Splitter errors."""
    pass


class SpecLoadError(OpenAPITagSplitterError):
    """Raised when a document cannot be read, parsed or validated."""
    pass


def load_spec(source: Union[str, Path]) -> Dict[str, Any]:
    """
    Load and validate an OpenAPI document.

    Args:
        source: Local file path or http(s) URL

    Returns:
        The parsed document

    Raises:
        SpecLoadError: If the document cannot be loaded or is not OpenAPI 3.x
    """
    source = str(source)
    if source.startswith(URL_SCHEMES):
        spec = _load_from_url(source)
    else:
        spec = _load_from_file(Path(source))

    validate_spec(spec)
    logger.info(f"Loaded OpenAPI spec from {source}")
    return spec


def _load_from_url(url: str) -> Dict[str, Any]:
    try:
        response = httpx.get(url, timeout=FETCH_TIMEOUT, follow_redirects=True)
        response.raise_for_status()
    except httpx.HTTPStatusError as e:
        raise SpecLoadError(
            f"HTTP {e.response.status_code} fetching spec from {url}"
        ) from e
    except httpx.RequestError as e:
        raise SpecLoadError(f"Failed to fetch spec from {url}: {e}") from e

    content_type = response.headers.get('content-type', '')
    hint = ''
    if 'json' in content_type:
        hint = 'json'
    elif 'yaml' in content_type or 'yml' in content_type:
        hint = 'yaml'
    elif url.lower().endswith(('.yaml', '.yml')):
        hint = 'yaml'
    elif url.lower().endswith('.json'):
        hint = 'json'

    return parse_content(response.text, hint=hint)


def _load_from_file(path: Path) -> Dict[str, Any]:
    if not path.is_file():
        raise SpecLoadError(f"Input file not found: {path}")

    try:
        with open(path, 'r', encoding='utf-8') as f:
            content = f.read()
    except OSError as e:
        raise SpecLoadError(f"Error reading {path}: {e}") from e

    suffix = path.suffix.lower()
    hint = ''
    if suffix in ['.yaml', '.yml']:
        hint = 'yaml'
    elif suffix == '.json':
        hint = 'json'

    return parse_content(content, hint=hint)


def parse_content(content: str, hint: str = '') -> Dict[str, Any]:
    """
    Parse a document as JSON or YAML.

    Args:
        content: Raw document text
        hint: 'json', 'yaml' or '' to try JSON first and fall back to YAML

    Returns:
        The parsed document

    Raises:
        SpecLoadError: If the text parses as neither format or is not a mapping
    """
    if not content.strip():
        raise SpecLoadError("Spec document is empty")

    if hint == 'json':
        try:
            spec = json.loads(content)
        except json.JSONDecodeError as e:
            raise SpecLoadError(f"Invalid JSON: {e}") from e
    elif hint == 'yaml':
        try:
            spec = yaml.safe_load(content)
        except yaml.YAMLError as e:
            raise SpecLoadError(f"Invalid YAML: {e}") from e
    else:
        try:
            spec = json.loads(content)
        except json.JSONDecodeError:
            try:
                spec = yaml.safe_load(content)
            except yaml.YAMLError as e:
                raise SpecLoadError("Unable to parse document as JSON or YAML") from e

    if not isinstance(spec, dict):
        raise SpecLoadError(
            f"Spec must be a JSON/YAML object (got {type(spec).__name__})"
        )
    return spec


def validate_spec(spec: Dict[str, Any]) -> str:
    """
    Check that a parsed document is an OpenAPI 3.x description.

    Args:
        spec: Parsed document

    Returns:
        The ``openapi`` version string

    Raises:
        SpecLoadError: On Swagger 2.x, a missing or unsupported version, or
            malformed ``paths``, ``tags`` or ``components.schemas``
    """
    if 'swagger' in spec:
        raise SpecLoadError(
            f"Swagger {spec['swagger']} is not supported; only OpenAPI 3.x documents can be split"
        )

    version = spec.get('openapi')
    if version is None:
        raise SpecLoadError("Missing 'openapi' field. Is this an OpenAPI 3.x document?")
    version = str(version)
    if not version.startswith('3.'):
        raise SpecLoadError(f"Unsupported OpenAPI version: {version}")

    paths = spec.get('paths')
    if paths is not None and not isinstance(paths, dict):
        raise SpecLoadError("'paths' must be a mapping of path to path item")

    tags = spec.get('tags')
    if tags is not None and not isinstance(tags, list):
        raise SpecLoadError("'tags' must be a list")

    components = spec.get('components')
    if components is not None:
        if not isinstance(components, dict):
            raise SpecLoadError("'components' must be a mapping")
        schemas = components.get('schemas')
        if schemas is not None and not isinstance(schemas, dict):
            raise SpecLoadError("'components.schemas' must be a mapping")

    return version
