"""
Conversion orchestrator.

Runs the generators over every compose service, in document order, and
collects the serialized output files and warnings.
"""

import logging
from typing import Any, Dict, List

from .generators import (
    generate_ingress,
    generate_network_policy,
    generate_pvcs,
    generate_service,
    generate_workload,
)
from .parser import parse_compose_document
from .serializer import output_filename, serialize
from .types import ComposeDocument, ConvertOptions, ConvertResult, OutputFile

logger = logging.getLogger(__name__)


def _output(
    manifest: Dict[str, Any],
    name: str,
    options: ConvertOptions,
    volume_index: int = 0,
) -> OutputFile:
    kind = manifest["kind"]
    filename = output_filename(name, kind, options.generate_json, volume_index)
    logger.debug(f"Generated {kind} {filename}")
    return OutputFile(
        name=filename,
        content=serialize(manifest, options.generate_json),
        kind=kind,
    )


def convert_document(document: ComposeDocument, options: ConvertOptions) -> ConvertResult:
    """
    Generate manifests for an already parsed compose document.

    Args:
        document: Parsed compose document
        options: Conversion options

    Returns:
        ConvertResult with files in generation order
    """
    files: List[OutputFile] = []
    warnings: List[str] = []

    for name, sources in document.name_collisions().items():
        warnings.append(
            f"Services {', '.join(sources)} all map to the Kubernetes name "
            f"{name!r}; their generated files share names"
        )

    for service in document.services.values():
        name = service.name
        warnings.extend(service.warnings)

        files.append(_output(generate_workload(name, service, options), name, options))

        svc = generate_service(name, service, options, warnings)
        if svc:
            files.append(_output(svc, name, options))

        if service.volumes:
            for i, pvc in enumerate(generate_pvcs(name, service, options)):
                files.append(_output(pvc, name, options, volume_index=i))

        ingress = generate_ingress(name, service, options)
        if ingress:
            files.append(_output(ingress, name, options))

    # Second pass: policies need every service's depends_on
    if options.generate_network_policies:
        all_services = list(document.services.values())
        for service in all_services:
            policy = generate_network_policy(service.name, all_services)
            files.append(_output(policy, service.name, options))

    for warning in warnings:
        logger.warning(warning)

    logger.info(
        f"Generated {len(files)} files for {len(document.services)} services"
    )
    return ConvertResult(files=files, warnings=warnings)


def convert_compose(text: str, options: ConvertOptions) -> ConvertResult:
    """
    Convert compose text to Kubernetes manifests.

    Args:
        text: Raw compose document (YAML or JSON)
        options: Fully populated conversion options

    Returns:
        ConvertResult with one OutputFile per generated resource

    Raises:
        MalformedInputError: If the text cannot be decoded
        MissingServicesError: If the document has no services
    """
    document = parse_compose_document(text)
    return convert_document(document, options)
