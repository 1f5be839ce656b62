"""
wompose - Docker Compose to Kubernetes converter

Converts docker-compose.yaml to Kubernetes or OpenShift manifests.
"""

__version__ = "1.0.0"

from .errors import (
    ConversionError,
    MalformedInputError,
    MissingServicesError,
)

from .types import (
    ComposeDocument,
    ComposeService,
    ConvertOptions,
    ConvertResult,
    ControllerType,
    OutputFile,
    Provider,
    VolumeType,
    normalize_service_name,
    parse_duration,
)

from .parser import (
    parse_compose_document,
    load_compose_file,
    load_convert_options,
)

from .converter import (
    convert_compose,
    convert_document,
)

__all__ = [
    # Errors
    "ConversionError",
    "MalformedInputError",
    "MissingServicesError",
    # Types
    "ComposeDocument",
    "ComposeService",
    "ConvertOptions",
    "ConvertResult",
    "ControllerType",
    "OutputFile",
    "Provider",
    "VolumeType",
    "normalize_service_name",
    "parse_duration",
    # Parser
    "parse_compose_document",
    "load_compose_file",
    "load_convert_options",
    # Converter
    "convert_compose",
    "convert_document",
]
